"""AI classification of candidate locations.

A candidate is kept when the classifier says it holds a real prompt
definition matching the target text with enough confidence. When the
classifier itself fails the candidate is kept at a reduced confidence:
losing a true match is worse than reviewing a false one.
"""

import asyncio
import logging

from prompt_locator.clients.ai import AICompletionClient, ChatMessage
from prompt_locator.core.constants import (
    VALIDATION_CONFIDENCE_THRESHOLD,
    VALIDATION_CONTEXT_LINES,
    VALIDATION_FAILURE_CONFIDENCE,
    VALIDATION_MODEL_DEFAULT,
)
from prompt_locator.core.exceptions import LLMError
from prompt_locator.core.logging import get_component_logger
from prompt_locator.services.models import (
    CandidateLocation,
    ValidatedLocation,
    ValidationVerdict,
)
from prompt_locator.utils.text import get_code_context

VALIDATION_SYSTEM_PROMPT = """You are an expert code analyzer. Your task is to determine if a piece of code contains a real AI prompt definition that matches the given original prompt.

A real prompt definition is typically:
- A string variable, constant, or parameter containing natural language instructions for an AI
- Used in AI/LLM API calls or prompt templates
- Contains instructional text like "You are...", "Please...", "Your task is...", etc.
- Not just comments, documentation, or unrelated strings

Analyze the code context and determine if this is a genuine prompt definition."""


def build_validation_messages(
    candidate: CandidateLocation,
    target_text: str,
    context: str,
) -> list[ChatMessage]:
    user = (
        f'Original Prompt to Match:\n"{target_text}"\n\n'
        f"File Path: {candidate.file_path}\n"
        f'Matched Query: "{candidate.matched_query}"\n\n'
        f"Code Context (showing area around the match):\n```\n{context}\n```\n\n"
        "Is this a real prompt definition that matches our original prompt? "
        "Provide your analysis."
    )
    return [
        ChatMessage(role="system", content=VALIDATION_SYSTEM_PROMPT),
        ChatMessage(role="user", content=user),
    ]


class CandidateValidator:
    """Filters ambiguous candidate sets through an AI classifier."""

    def __init__(
        self,
        ai_client: AICompletionClient,
        model_name: str = VALIDATION_MODEL_DEFAULT,
        confidence_threshold: float = VALIDATION_CONFIDENCE_THRESHOLD,
        failure_confidence: float = VALIDATION_FAILURE_CONFIDENCE,
        context_lines: int = VALIDATION_CONTEXT_LINES,
        logger: logging.Logger | None = None,
    ) -> None:
        self.ai_client = ai_client
        self.model_name = model_name
        self.confidence_threshold = confidence_threshold
        self.failure_confidence = failure_confidence
        self.context_lines = context_lines
        self.logger = get_component_logger(__name__, logger)

    async def classify(
        self,
        candidate: CandidateLocation,
        target_text: str,
    ) -> ValidatedLocation:
        """Ask the classifier about one candidate; never raises for classifier failures."""
        context = get_code_context(
            candidate.content, candidate.matched_query, self.context_lines,
        )
        messages = build_validation_messages(candidate, target_text, context)
        try:
            verdict = await self.ai_client.complete(
                messages, ValidationVerdict, model_name=self.model_name,
            )
        except LLMError as e:
            self.logger.warning(
                "Classifier failed for %s, keeping it at confidence %.2f: %s",
                candidate.file_path,
                self.failure_confidence,
                e,
            )
            return ValidatedLocation.from_candidate(
                candidate,
                is_real_match=True,
                validation_confidence=self.failure_confidence,
                reasoning="AI analysis failed, included by default",
                degraded=True,
            )

        self.logger.info(
            "%s: real_match=%s confidence=%.2f",
            candidate.file_path,
            verdict.is_real_match,
            verdict.confidence,
        )
        return ValidatedLocation.from_candidate(
            candidate,
            is_real_match=verdict.is_real_match,
            validation_confidence=verdict.confidence,
            reasoning=verdict.reasoning,
        )

    def accepts(self, location: ValidatedLocation) -> bool:
        if location.degraded:
            return True
        return (
            location.is_real_match
            and location.validation_confidence >= self.confidence_threshold
        )

    async def validate(
        self,
        candidates: list[CandidateLocation],
        target_text: str,
    ) -> list[ValidatedLocation]:
        """
        Classify candidates concurrently and keep the accepted ones.

        Args:
            candidates: Candidate locations from the search
            target_text: The prompt being located

        Returns:
            Accepted locations, in the order of ``candidates``
        """
        verdicts = await asyncio.gather(
            *(self.classify(candidate, target_text) for candidate in candidates),
        )
        accepted = [location for location in verdicts if self.accepts(location)]
        self.logger.info(
            "Validator kept %d of %d candidates", len(accepted), len(candidates),
        )
        return accepted
