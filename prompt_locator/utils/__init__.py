"""Utility functions for the Prompt Locator engine."""

from .text import (
    escape_for_search,
    extract_placeholders,
    get_code_context,
    git_blob_sha,
    normalize_escape_sequences,
    normalize_whitespace,
    text_contains,
    words_pattern,
)
from .validation import (
    parse_repository_url,
    validate_prompt_text,
)

__all__ = [
    "escape_for_search",
    "extract_placeholders",
    "get_code_context",
    "git_blob_sha",
    "normalize_escape_sequences",
    "normalize_whitespace",
    "parse_repository_url",
    "text_contains",
    "validate_prompt_text",
    "words_pattern",
]
