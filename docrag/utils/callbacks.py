"""Invocation of optional, caller-supplied progress callbacks.

Callbacks may be plain functions or coroutine functions.  A callback that
raises is logged and skipped so a broken listener cannot fail a pipeline
run or a batch.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import structlog

logger = structlog.get_logger(logger_name=__name__)


async def invoke_callback(callback: Callable[..., Any] | None, *args: Any) -> None:
    """Call *callback* with *args*, awaiting it if it returns a coroutine.

    ``None`` is accepted and ignored so call-sites do not need to guard.
    """
    if callback is None:
        return

    try:
        result = callback(*args)
        if asyncio.iscoroutine(result):
            await result
    except Exception as exc:
        logger.warning(
            "callback_error",
            error=str(exc),
            callback=getattr(callback, "__name__", repr(callback)),
        )
