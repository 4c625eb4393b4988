"""Core functionality for the Prompt Locator engine."""

from .constants import (
    EARLY_EXIT_CONFIDENCE,
    FULL_TEXT_CONFIDENCE,
    SEGMENT_CONFIDENCE_FLOOR,
    VALIDATION_CONFIDENCE_THRESHOLD,
    VALIDATION_FAILURE_CONFIDENCE,
)
from .decorators import track_request
from .exceptions import (
    BackendUnavailableError,
    ErrorCode,
    MCPToolError,
    NoValidMatchError,
    PromptLocatorError,
    PromptNotFoundError,
    PublicationError,
    StaleContentConflictError,
)
from .logging import configure_logging, logger

__all__ = [
    "EARLY_EXIT_CONFIDENCE",
    "FULL_TEXT_CONFIDENCE",
    "SEGMENT_CONFIDENCE_FLOOR",
    "VALIDATION_CONFIDENCE_THRESHOLD",
    "VALIDATION_FAILURE_CONFIDENCE",
    "BackendUnavailableError",
    "ErrorCode",
    "MCPToolError",
    "NoValidMatchError",
    "PromptLocatorError",
    "PromptNotFoundError",
    "PublicationError",
    "StaleContentConflictError",
    "configure_logging",
    "logger",
    "track_request",
]
