"""Decorators for Prompt Locator tool entry points."""

import functools
import time
import uuid
from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar

from .logging import logger, request_id_ctx

P = ParamSpec("P")
R = TypeVar("R")


def track_request(
    tool_name: str,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Decorator to tag a tool call with a request id and log its duration.

    Args:
        tool_name: Name of the tool being tracked

    Returns:
        Decorated coroutine function
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            token = request_id_ctx.set(uuid.uuid4().hex[:8])
            started = time.monotonic()

            logger.info("Starting %s request", tool_name)
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                logger.error(
                    "Failed %s after %.2fs: %s",
                    tool_name,
                    time.monotonic() - started,
                    e,
                )
                raise
            else:
                logger.info(
                    "Completed %s in %.2fs", tool_name, time.monotonic() - started,
                )
            finally:
                request_id_ctx.reset(token)

            return result

        return wrapper

    return decorator
