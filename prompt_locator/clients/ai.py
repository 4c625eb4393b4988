"""AI completion client with structured output.

Wraps Pydantic AI agents: callers pass a message list and an output schema
(a Pydantic model) and get back a parsed instance, or an :class:`LLMError`
for any transport, validation or parsing failure.
"""

import logging
from typing import Literal, TypeVar

from pydantic import BaseModel
from pydantic_ai import Agent
from pydantic_ai.exceptions import UnexpectedModelBehavior
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.openai import OpenAIProvider
from pydantic_ai.settings import ModelSettings

from prompt_locator.core.constants import (
    LLM_API_TIMEOUT_DEFAULT,
    LLM_TEMPERATURE_DETERMINISTIC,
    MAX_RETRIES_DEFAULT,
)
from prompt_locator.core.exceptions import LLMError
from prompt_locator.core.logging import get_component_logger

OutputT = TypeVar("OutputT", bound=BaseModel)


class ChatMessage(BaseModel):
    """One message of a completion request."""

    role: Literal["system", "user"]
    content: str


class AICompletionClient:
    """Structured-output completions backed by Pydantic AI agents.

    Agents are created lazily, one per (model, output schema) pair, so that a
    missing API key surfaces as an ``LLMError`` on first use rather than at
    construction time.
    """

    def __init__(
        self,
        model_name: str,
        temperature: float = LLM_TEMPERATURE_DETERMINISTIC,
        timeout: float = LLM_API_TIMEOUT_DEFAULT,
        output_retries: int = MAX_RETRIES_DEFAULT,
        api_key: str | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.model_name = model_name
        self.api_key = api_key
        self.model_settings = ModelSettings(temperature=temperature, timeout=timeout)
        self.output_retries = output_retries
        self.logger = get_component_logger(__name__, logger)
        self._agents: dict[tuple[str, type[BaseModel], str], Agent] = {}

    def _build_model(self, model_name: str) -> OpenAIChatModel:
        if self.api_key:
            return OpenAIChatModel(
                model_name=model_name,
                provider=OpenAIProvider(api_key=self.api_key),
            )
        return OpenAIChatModel(model_name=model_name)

    def _get_agent(
        self,
        output_type: type[OutputT],
        system_prompt: str,
        model_name: str,
    ) -> Agent:
        key = (model_name, output_type, system_prompt)
        agent = self._agents.get(key)
        if agent is None:
            agent = Agent(
                model=self._build_model(model_name),
                output_type=output_type,
                system_prompt=system_prompt or (),
                output_retries=self.output_retries,
                model_settings=self.model_settings,
            )
            self._agents[key] = agent
        return agent

    async def complete(
        self,
        messages: list[ChatMessage],
        output_type: type[OutputT],
        model_name: str | None = None,
    ) -> OutputT:
        """Run a completion and return the parsed structured output.

        Args:
            messages: System messages followed by user messages
            output_type: Pydantic model describing the expected JSON
            model_name: Override the client's default model

        Returns:
            Parsed instance of ``output_type``

        Raises:
            LLMError: On transport failures, exhausted retries or bad output
        """
        system_prompt = "\n\n".join(m.content for m in messages if m.role == "system")
        user_prompt = "\n\n".join(m.content for m in messages if m.role == "user")
        model = model_name or self.model_name

        try:
            agent = self._get_agent(output_type, system_prompt, model)
            result = await agent.run(user_prompt)
        except UnexpectedModelBehavior as e:
            self.logger.error("%s output failed after retries: %s", output_type.__name__, e)
            raise LLMError(f"LLM structured output failed after retries: {e}") from e
        except Exception as e:
            self.logger.error("LLM call for %s failed: %s", output_type.__name__, e)
            raise LLMError(f"LLM call failed: {e}") from e

        output = result.output
        if not isinstance(output, output_type):
            msg = f"LLM returned {type(output).__name__}, expected {output_type.__name__}"
            raise LLMError(msg)
        return output
