from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator

# LogRecord attributes that must not be overwritten through ``extra``.
RESERVED_LOG_KEYS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None)).keys()
) | {"message", "asctime"}


def _clean_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in fields.items() if k not in RESERVED_LOG_KEYS}


def log_event(
    event: str,
    logger: logging.Logger | None = None,
    *,
    level: int = logging.INFO,
    **fields: Any,
) -> None:
    """
    Structured logging helper: the event name is the message, fields travel
    as ``extra`` so formatters can emit them as key/value pairs.
    """
    log = logger or logging.getLogger("halrest.observability")
    if not log.isEnabledFor(level):
        return
    extra = {"event": event, **_clean_fields(fields)}
    log.log(level, event, extra=extra)


@contextmanager
def timed_event(
    event: str, logger: logging.Logger | None = None, **fields: Any
) -> Iterator[Dict[str, Any]]:
    """
    Log ``event`` with ``duration_ms`` once the block exits (also on error).
    The yielded dict may be filled with extra fields inside the block.
    """
    start = time.perf_counter()
    extra: Dict[str, Any] = dict(fields)
    try:
        yield extra
    except Exception as exc:
        extra.setdefault("error_type", type(exc).__name__)
        raise
    finally:
        extra["duration_ms"] = int((time.perf_counter() - start) * 1000)
        log_event(event, logger, **extra)


__all__ = ["log_event", "timed_event", "RESERVED_LOG_KEYS"]
