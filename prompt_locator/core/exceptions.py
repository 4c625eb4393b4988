"""Custom exceptions for the Prompt Locator engine."""

from enum import Enum
from typing import Any

from .constants import (
    HTTP_CONFLICT,
    HTTP_FORBIDDEN,
    HTTP_NOT_FOUND,
    HTTP_TOO_MANY_REQUESTS,
)


class ErrorCode(str, Enum):
    """Stable error codes reported in result records."""

    BACKEND_UNAVAILABLE = "backend_unavailable"
    NOT_FOUND = "not_found"
    AMBIGUOUS_NO_VALID_MATCH = "ambiguous_no_valid_match"
    STALE_CONTENT_CONFLICT = "stale_content_conflict"
    PUBLICATION_FAILURE = "publication_failure"
    INVALID_INPUT = "invalid_input"
    AUTHENTICATION_FAILED = "authentication_failed"
    NO_CHANGES = "no_changes"
    UNEXPECTED_ERROR = "unexpected_error"


class MCPToolError(Exception):
    """Custom exception for MCP tool errors that should be returned as JSON-RPC errors."""

    def __init__(self, message: str, code: int = -32000):
        self.message = message
        self.code = code
        super().__init__(message)


# ========================================
# Base Exceptions
# ========================================


class PromptLocatorError(Exception):
    """Base exception for all Prompt Locator errors."""

    code: ErrorCode = ErrorCode.UNEXPECTED_ERROR


# ========================================
# Engine Exceptions
# ========================================


class BackendUnavailableError(PromptLocatorError):
    """A single search tier failed; treated as zero results for that tier."""

    code = ErrorCode.BACKEND_UNAVAILABLE


class PromptNotFoundError(PromptLocatorError):
    """No candidate location was found in any tier."""

    code = ErrorCode.NOT_FOUND


class NoValidMatchError(PromptLocatorError):
    """The validator rejected every candidate location."""

    code = ErrorCode.AMBIGUOUS_NO_VALID_MATCH


class StaleContentConflictError(PromptLocatorError):
    """The remote file changed since it was read; the commit was refused."""

    code = ErrorCode.STALE_CONTENT_CONFLICT

    def __init__(self, file_path: str, message: str | None = None):
        self.file_path = file_path
        super().__init__(message or f"Remote content changed for {file_path}")


class PublicationError(PromptLocatorError):
    """Branch, commit or pull request creation failed."""

    code = ErrorCode.PUBLICATION_FAILURE


# ========================================
# Validation Exceptions
# ========================================


class ValidationError(PromptLocatorError):
    """Base exception for validation errors."""

    code = ErrorCode.INVALID_INPUT


class ConfigurationError(ValidationError):
    """Configuration validation failed."""


class InputValidationError(ValidationError):
    """Input parameter validation failed."""


class RepositoryURLError(InputValidationError):
    """Repository reference could not be parsed."""


# ========================================
# External Service Exceptions
# ========================================


class ExternalServiceError(PromptLocatorError):
    """Base exception for external service errors."""


class GitHubAPIError(ExternalServiceError):
    """Hosted platform REST call failed with a structured HTTP error."""

    def __init__(
        self,
        status_code: int,
        message: str,
        payload: Any = None,
    ):
        self.status_code = status_code
        self.message = message
        self.payload = payload
        super().__init__(f"GitHub API error: {status_code} - {message}")

    @property
    def is_rate_limited(self) -> bool:
        """Whether the platform refused the call because of rate limiting."""
        if self.status_code == HTTP_TOO_MANY_REQUESTS:
            return True
        return (
            self.status_code == HTTP_FORBIDDEN
            and "rate limit" in self.message.lower()
        )

    @property
    def is_conflict(self) -> bool:
        return self.status_code == HTTP_CONFLICT

    @property
    def is_not_found(self) -> bool:
        return self.status_code == HTTP_NOT_FOUND


class GitError(ExternalServiceError):
    """Git operation failed."""


class LLMError(ExternalServiceError):
    """LLM API call failed."""
