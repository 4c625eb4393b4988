"""Logging setup for the Prompt Locator engine.

Everything logs under the ``prompt_locator`` hierarchy. Records carry the
request id of the tool call that produced them, so the interleaved output of
concurrent runs can be told apart on stderr.
"""

import logging
import os
import sys
from contextvars import ContextVar

ROOT_LOGGER_NAME = "prompt_locator"
LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(request_id)s%(message)s"

# Set per tool call by track_request
request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)


class RequestIdFilter(logging.Filter):
    """Stamp records with the current request id (empty outside a request)."""

    def filter(self, record):
        request_id = request_id_ctx.get()
        record.request_id = f"[{request_id}] " if request_id else ""
        return True


def _debug_requested() -> bool:
    return os.getenv("MCP_DEBUG", "").lower() in ("true", "1", "yes")


def configure_logging(level: int | None = None) -> logging.Logger:
    """Attach a stderr handler to the package logger and return it.

    Safe to call more than once: the handler is installed a single time and
    later calls only adjust the level. ``MCP_DEBUG`` forces DEBUG when no
    explicit level is given.
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)

    if not any(getattr(h, "_prompt_locator", False) for h in root.handlers):
        # stdout belongs to the stdio transport
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler.addFilter(RequestIdFilter())
        handler._prompt_locator = True  # type: ignore[attr-defined]
        root.addHandler(handler)

    if level is None:
        level = logging.DEBUG if _debug_requested() else logging.INFO
    root.setLevel(level)
    root.debug("Logging configured at %s", logging.getLevelName(level))
    return root


def get_component_logger(
    name: str,
    logger: logging.Logger | None = None,
) -> logging.Logger:
    """Return the injected logger, or the module logger for ``name``."""
    return logger if logger is not None else logging.getLogger(name)


def mask_token(token: str | None) -> str:
    """Mask a credential for log output."""
    if not token or len(token) <= 8:
        return "***"
    return f"{token[:4]}...{token[-4:]}"


logger = configure_logging()
