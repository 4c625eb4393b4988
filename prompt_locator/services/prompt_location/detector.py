"""AI extraction of prompts from source files."""

import asyncio
import logging

from prompt_locator.clients.ai import AICompletionClient, ChatMessage
from prompt_locator.core.constants import (
    DETECTION_CONTENT_LIMIT,
    MAX_DETECTED_PROMPTS_DEFAULT,
    REPLACEMENT_MODEL_DEFAULT,
)
from prompt_locator.core.exceptions import LLMError
from prompt_locator.core.logging import get_component_logger
from prompt_locator.services.models import DetectedPrompt, FileHit, PromptDetection

DETECTION_SYSTEM_PROMPT = """You extract prompts sent to large language models from source code.

Return only prompts that are actually passed to a model: system messages, user message templates, prompt templates. Ignore comments, docstrings, log messages and test fixtures.
For each prompt give its role (system, user or assistant, or null when unclear), the prompt text with code artifacts such as quotes, concatenation and escape markers removed, the template variables it uses, and the model name passed alongside it when it is visible."""


class PromptDetector:
    """Runs the detection pass over several files concurrently."""

    def __init__(
        self,
        ai_client: AICompletionClient,
        model_name: str = REPLACEMENT_MODEL_DEFAULT,
        content_limit: int = DETECTION_CONTENT_LIMIT,
        logger: logging.Logger | None = None,
    ) -> None:
        self.ai_client = ai_client
        self.model_name = model_name
        self.content_limit = content_limit
        self.logger = get_component_logger(__name__, logger)

    async def detect(
        self,
        files: list[FileHit],
        max_prompts: int = MAX_DETECTED_PROMPTS_DEFAULT,
    ) -> list[DetectedPrompt]:
        """
        Extract at most ``max_prompts`` prompts from each file.

        Files whose detection call fails contribute nothing.
        """
        results = await asyncio.gather(
            *(self._detect_file(hit, max_prompts) for hit in files),
        )
        return [prompt for prompts in results for prompt in prompts]

    async def _detect_file(self, hit: FileHit, max_prompts: int) -> list[DetectedPrompt]:
        content = hit.content[: self.content_limit]
        messages = [
            ChatMessage(role="system", content=DETECTION_SYSTEM_PROMPT),
            ChatMessage(
                role="user",
                content=(
                    f"Return at most {max_prompts} prompts.\n\n"
                    f"File: {hit.path}\n```\n{content}\n```"
                ),
            ),
        ]
        try:
            detection = await self.ai_client.complete(
                messages, PromptDetection, model_name=self.model_name,
            )
        except LLMError as e:
            self.logger.warning("Prompt detection failed for %s: %s", hit.path, e)
            return []

        prompts = [p for p in detection.prompts if p.text.strip()][:max_prompts]
        return [p.model_copy(update={"file_path": hit.path}) for p in prompts]
