"""Logging for ``finance_insights``.

Analysis modules only ask for a logger (:func:`get_logger`); the CLI decides
where records go (:func:`configure_logging`). Until then the package logger
carries a ``NullHandler``, so an application embedding the pipeline sees
nothing it did not ask for.

Messages use ``event:phase key=value`` (``enhance:fallback domain=debt
reason=TimeoutError``) so they stay greppable.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping
from typing import IO

ROOT_LOGGER = "finance_insights"
LEVEL_ENV = "FINANCE_INSIGHTS_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

# The OpenAI SDK and its HTTP client narrate every request at INFO.
_CHATTY_LOGGERS = ("openai", "httpx")

_configured = False


def resolve_level(
    level: int | str | None = None, environ: Mapping[str, str] = os.environ
) -> int:
    """Numeric level for ``level``, or for ``FINANCE_INSIGHTS_LOG_LEVEL`` when
    ``level`` is ``None``. Unknown names resolve to ``INFO``."""

    if level is None:
        level = environ.get(LEVEL_ENV) or logging.INFO
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    value = logging.getLevelName(name)
    return value if isinstance(value, int) else logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
) -> None:
    """Send package logs to ``stream``. Only the first call has an effect.

    Parameters
    ----------
    level:
        ``int`` or level name; ``None`` defers to ``FINANCE_INSIGHTS_LOG_LEVEL``
        and then ``INFO``.
    fmt:
        Record format, ``DEFAULT_FORMAT`` when omitted.
    stream:
        Destination of the single ``StreamHandler``.
    """

    global _configured
    if _configured:
        return

    resolved = resolve_level(level)
    pkg = logging.getLogger(ROOT_LOGGER)
    pkg.handlers[:] = [h for h in pkg.handlers if not isinstance(h, logging.NullHandler)]

    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))
    pkg.addHandler(handler)
    pkg.setLevel(resolved)
    pkg.propagate = False

    if resolved > logging.DEBUG:
        for name in _CHATTY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True


def get_logger(name: str) -> logging.Logger:
    pkg = logging.getLogger(ROOT_LOGGER)
    if not _configured and not pkg.handlers:
        pkg.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "resolve_level"]
