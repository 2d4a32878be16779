"""
Logging setup for the booking API.

Every record carries the correlation id, tenant id and user id of the request
being served. Middleware and request dependencies set the context variables
below; background jobs leave them empty and records show "-".
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from typing import Iterable, Optional, Union

correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
tenant_id_var: ContextVar[Optional[str]] = ContextVar("tenant_id", default=None)
user_id_var: ContextVar[Optional[str]] = ContextVar("user_id", default=None)

LOG_FORMAT = (
    "%(asctime)s | %(levelname)s | %(name)s | cid=%(correlation_id)s | tenant=%(tenant_id)s | "
    "user=%(user_id)s | %(message)s"
)

# Libraries that are chatty at INFO.
_QUIET_LOGGERS = ("sqlalchemy.engine", "passlib", "httpx")


class RequestContextFilter(logging.Filter):
    """Copy the request context variables onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401
        record.correlation_id = correlation_id_var.get() or "-"
        record.tenant_id = tenant_id_var.get() or "-"
        record.user_id = user_id_var.get() or "-"
        return True


def _resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


# PUBLIC_INTERFACE
def configure_logging(level: Union[int, str] = logging.INFO, quiet: Iterable[str] = _QUIET_LOGGERS) -> None:
    """
    Install a single stdout handler on the root logger.

    Args:
        level: Level name ("DEBUG", "INFO", ...) or number; unknown names fall back to INFO.
        quiet: Logger names raised to WARNING.
    """
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT))
    handler.addFilter(RequestContextFilter())

    root = logging.getLogger()
    # Replace handlers installed by basicConfig or a previous call.
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(_resolve_level(level))

    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)
