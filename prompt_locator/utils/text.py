"""Text helpers shared by the strategy generator, search tiers and replacers.

All functions here are pure: identical inputs give identical outputs.
"""

import hashlib
import re

from prompt_locator.core.constants import (
    CONTEXT_FALLBACK_CHARS,
    MAX_QUERY_LENGTH_DEFAULT,
    VALIDATION_CONTEXT_LINES,
)

_WHITESPACE_RE = re.compile(r"\s+")
_QUOTES_RE = re.compile(r"[\"'`]")

# {name}, {{ name }}, ${name}, %(name)s, {0}
_PLACEHOLDER_RE = re.compile(
    r"\{\{\s*[\w.]+\s*\}\}"
    r"|\$\{\s*[\w.]+\s*\}"
    r"|%\(\w+\)[sdrf]"
    r"|(?<![\{\$])\{\s*[\w.]*\s*\}(?!\})",
)

_ESCAPES = {
    "\\r\\n": "\n",
    "\\n": "\n",
    "\\t": "\t",
}


def normalize_whitespace(text: str) -> str:
    """Collapse every whitespace run into one space and trim."""
    return _WHITESPACE_RE.sub(" ", text).strip()


def text_contains(content: str, query: str) -> bool:
    """Check whether ``content`` holds ``query`` literally or modulo whitespace.

    An empty query never matches.
    """
    if not query or not query.strip():
        return False
    if query in content:
        return True
    return normalize_whitespace(query) in normalize_whitespace(content)


def escape_for_search(text: str, max_length: int = MAX_QUERY_LENGTH_DEFAULT) -> str:
    """Make text safe for the indexed code-search query syntax.

    Quote characters are stripped, whitespace is collapsed and the result is
    truncated to the backend's maximum query length.
    """
    cleaned = normalize_whitespace(_QUOTES_RE.sub("", text))
    return cleaned[:max_length].rstrip()


def get_code_context(
    content: str,
    matched_query: str,
    radius: int = VALIDATION_CONTEXT_LINES,
) -> str:
    """Return the lines around the first line containing the matched query."""
    lines = content.split("\n")
    first_line = matched_query.split("\n", 1)[0].strip()
    match_line = -1
    if first_line:
        for index, line in enumerate(lines):
            if first_line in line:
                match_line = index
                break

    if match_line == -1:
        return content[:CONTEXT_FALLBACK_CHARS]

    start = max(0, match_line - radius)
    end = min(len(lines), match_line + radius + 1)
    return "\n".join(lines[start:end])


def extract_placeholders(text: str) -> list[str]:
    """List template placeholders in order of first appearance, without duplicates."""
    seen: dict[str, None] = {}
    for match in _PLACEHOLDER_RE.finditer(text):
        seen.setdefault(match.group(0), None)
    return list(seen)


def normalize_escape_sequences(text: str) -> str:
    """Turn literal escape markers such as ``\\n`` into real characters."""
    for marker, replacement in _ESCAPES.items():
        text = text.replace(marker, replacement)
    return text


def words_pattern(text: str) -> re.Pattern[str] | None:
    """Regex matching the words of ``text`` separated by any whitespace."""
    words = text.split()
    if not words:
        return None
    return re.compile(r"\s+".join(re.escape(word) for word in words))


def git_blob_sha(content: str) -> str:
    """Compute the git blob SHA-1 of UTF-8 text, as the platform reports it."""
    data = content.encode("utf-8")
    header = f"blob {len(data)}\0".encode()
    return hashlib.sha1(header + data).hexdigest()  # noqa: S324
