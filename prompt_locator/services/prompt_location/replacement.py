"""Per-file prompt replacement.

The AI path rewrites only the prompt span and keeps template placeholders of
the original prompt. When the AI call fails or returns unusable output, a
deterministic substring replacement is used instead; it does not reconcile
placeholders and is labelled as degraded in its explanation.
"""

import logging

from prompt_locator.clients.ai import AICompletionClient, ChatMessage
from prompt_locator.core.constants import REPLACEMENT_MODEL_DEFAULT
from prompt_locator.core.exceptions import LLMError
from prompt_locator.core.logging import get_component_logger
from prompt_locator.services.models import (
    Replacement,
    ReplacementEdit,
    ValidatedLocation,
)
from prompt_locator.utils.text import (
    extract_placeholders,
    normalize_escape_sequences,
    text_contains,
    words_pattern,
)

FALLBACK_EXPLANATION = "Degraded: simple string replacement (AI generation failed)"

REPLACEMENT_SYSTEM_PROMPT = """You are an expert code editor. Your task is to replace an AI prompt in code with an optimized version while preserving all code structure, formatting, and functionality.

Rules:
1. Only replace the specific prompt text, not variable names, function calls, imports, or code structure
2. Maintain exact indentation and formatting
3. Preserve string delimiters (quotes, backticks, etc.)
4. Keep all surrounding code exactly as is
5. If the prompt spans multiple lines, maintain the line structure
6. If the original prompt contains template placeholders such as {name}, {{ name }}, ${name} or %(name)s, keep the same placeholders in the new prompt instead of concrete values
7. Turn literal escape sequences in the new prompt (such as \\n) into real line breaks
8. Ensure the replacement fits naturally in the existing code context

Provide the complete new file content with only the prompt text replaced."""


def build_replacement_messages(
    location: ValidatedLocation,
    original_text: str,
    new_text: str,
) -> list[ChatMessage]:
    placeholders = extract_placeholders(original_text)
    placeholder_note = (
        f"Placeholders that must survive: {', '.join(placeholders)}\n\n"
        if placeholders
        else ""
    )
    user = (
        f"File: {location.file_path}\n\n"
        f'Original Prompt to Replace:\n"{original_text}"\n\n'
        f'New Optimized Prompt:\n"{new_text}"\n\n'
        f"{placeholder_note}"
        f"Current File Content:\n```\n{location.content}\n```\n\n"
        "Please provide the updated file content with the prompt replaced. "
        "Also explain what changes were made."
    )
    return [
        ChatMessage(role="system", content=REPLACEMENT_SYSTEM_PROMPT),
        ChatMessage(role="user", content=user),
    ]


def deterministic_replace(
    content: str,
    original_text: str,
    new_text: str,
) -> tuple[str, str]:
    """
    Replace the first occurrence of ``original_text`` with ``new_text``.

    Tries the literal text, then the text with escape sequences turned into
    real characters, then the original's words separated by any whitespace.
    Pure: equal inputs always give equal outputs.

    Returns:
        (new_content, explanation); new_content equals content when no span matched
    """
    dropped = [
        placeholder
        for placeholder in extract_placeholders(original_text)
        if placeholder not in new_text
    ]
    explanation = FALLBACK_EXPLANATION
    if dropped:
        explanation += f"; placeholders not reconciled: {', '.join(dropped)}"

    for needle in dict.fromkeys([original_text, normalize_escape_sequences(original_text)]):
        if needle and needle in content:
            return content.replace(needle, new_text, 1), explanation

    pattern = words_pattern(original_text)
    if pattern is not None:
        new_content, count = pattern.subn(lambda _: new_text, content, count=1)
        if count:
            return new_content, f"{explanation}; matched ignoring whitespace"

    return content, f"{explanation}; original text not found"


class ReplacementGenerator:
    """Produces the new content of one validated file."""

    def __init__(
        self,
        ai_client: AICompletionClient,
        model_name: str = REPLACEMENT_MODEL_DEFAULT,
        logger: logging.Logger | None = None,
    ) -> None:
        self.ai_client = ai_client
        self.model_name = model_name
        self.logger = get_component_logger(__name__, logger)

    async def replace(
        self,
        location: ValidatedLocation,
        original_text: str,
        new_text: str,
    ) -> Replacement:
        """
        Compute the new content of ``location``.

        The AI editor only sees files that hold ``original_text`` (modulo
        whitespace or escape sequences). Any other file goes through the
        deterministic path, which leaves it unchanged when no span matches.
        """
        if not self._holds_original(location.content, original_text):
            self.logger.warning(
                "%s does not contain the original prompt, skipping AI edit",
                location.file_path,
            )
            return self._fallback(location, original_text, new_text)

        messages = build_replacement_messages(location, original_text, new_text)
        try:
            edit = await self.ai_client.complete(
                messages, ReplacementEdit, model_name=self.model_name,
            )
        except LLMError as e:
            self.logger.warning(
                "AI replacement failed for %s, using fallback: %s", location.file_path, e,
            )
            return self._fallback(location, original_text, new_text)

        if not edit.new_code.strip() or edit.new_code == location.content:
            self.logger.warning(
                "AI replacement for %s changed nothing, using fallback", location.file_path,
            )
            return self._fallback(location, original_text, new_text)

        missing = [
            placeholder
            for placeholder in extract_placeholders(original_text)
            if placeholder in location.content and placeholder not in edit.new_code
        ]
        if missing:
            self.logger.warning(
                "AI replacement for %s lost placeholders %s", location.file_path, missing,
            )

        self.logger.info(
            "Generated replacement for %s: %s",
            location.file_path,
            edit.changes_description or "prompt replaced",
        )
        return self._build(
            location,
            edit.new_code,
            edit.explanation or edit.changes_description,
            used_fallback=False,
        )

    @staticmethod
    def _holds_original(content: str, original_text: str) -> bool:
        return text_contains(content, original_text) or text_contains(
            content, normalize_escape_sequences(original_text),
        )

    def _fallback(
        self,
        location: ValidatedLocation,
        original_text: str,
        new_text: str,
    ) -> Replacement:
        new_content, explanation = deterministic_replace(
            location.content, original_text, new_text,
        )
        return self._build(location, new_content, explanation, used_fallback=True)

    @staticmethod
    def _build(
        location: ValidatedLocation,
        new_content: str,
        explanation: str,
        used_fallback: bool,
    ) -> Replacement:
        return Replacement(
            file_path=location.file_path,
            original_content=location.content,
            new_content=new_content,
            content_hash=location.content_hash,
            explanation=explanation,
            used_fallback=used_fallback,
            strategy_name=location.strategy_name,
            validation_confidence=location.validation_confidence,
            reasoning=location.reasoning,
        )
