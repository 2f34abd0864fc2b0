"""
Shared exception handler for bot-tools.

Provides an observable, intention-revealing pattern for exception handling.
Use this instead of silent `except: pass` so every suppressed exception is logged.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

logger = logging.getLogger("bot_tools.exceptions")

_LOGRECORD_RESERVED_KEYS = set(
    logging.LogRecord(
        name="",
        level=0,
        pathname="",
        lineno=0,
        msg="",
        args=(),
        exc_info=None,
    ).__dict__.keys()
)
# Computed attributes that aren't present in __dict__ at construction time.
_LOGRECORD_RESERVED_KEYS.update({"message", "asctime"})


def swallow_exception(
    exc: BaseException,
    *,
    context: str,
    extra: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Log a swallowed exception with context.

    Appropriate for best-effort work only (cleanup of temp files, optional
    metadata). Core paths should let errors propagate or report them through
    their own log events.

    Args:
        exc: The exception that was caught
        context: Short, stable context string
        extra: Additional context to include in logs

    Example:
        try:
            tmp.unlink()
        except OSError as e:
            swallow_exception(e, context="record_store_tmp_cleanup", extra={"path": str(tmp)})
    """
    log_extra: Dict[str, Any] = {"context": context, "exception_type": type(exc).__name__}
    for key, value in (extra or {}).items():
        # LogRecord attributes (e.g. "module") cannot be overwritten via `extra`.
        if key in _LOGRECORD_RESERVED_KEYS or key in log_extra:
            log_extra[f"extra_{key}"] = value
        else:
            log_extra[key] = value

    logger.error(
        "Swallowed exception",
        exc_info=(type(exc), exc, exc.__traceback__),
        extra=log_extra,
    )
