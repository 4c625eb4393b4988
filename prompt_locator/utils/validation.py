"""Input validation helpers for repository references and prompt text."""

import re

from prompt_locator.core.constants import MAX_INPUT_SIZE
from prompt_locator.core.exceptions import InputValidationError, RepositoryURLError

_REPO_URL_PATTERNS = (
    re.compile(r"github\.com[/:]([^/\s]+)/([^/\s]+?)(?:\.git)?(?:/.*)?$"),
    re.compile(r"^([\w.-]+)/([\w.-]+)$"),
)


def parse_repository_url(repository_url: str) -> tuple[str, str]:
    """Extract ``(owner, repo)`` from a repository URL or ``owner/repo`` string.

    Raises:
        RepositoryURLError: If the reference cannot be parsed
    """
    if not repository_url or not isinstance(repository_url, str):
        msg = "Repository URL is required"
        raise RepositoryURLError(msg)

    candidate = repository_url.strip()
    for pattern in _REPO_URL_PATTERNS:
        match = pattern.search(candidate)
        if match:
            owner, repo = match.groups()
            repo = repo.removesuffix(".git")
            if owner and repo:
                return owner, repo

    msg = f"Invalid repository URL format: {repository_url}"
    raise RepositoryURLError(msg)


def validate_prompt_text(text: str, field_name: str = "prompt") -> str:
    """Reject empty or oversized prompt text.

    Raises:
        InputValidationError: If the text is unusable
    """
    if not isinstance(text, str) or not text.strip():
        msg = f"{field_name} must be a non-empty string"
        raise InputValidationError(msg)
    if len(text) > MAX_INPUT_SIZE:
        msg = f"{field_name} exceeds {MAX_INPUT_SIZE} characters"
        raise InputValidationError(msg)
    return text
