"""Pytest configuration for test isolation.

The CLI edge reads ``OPENAI_API_KEY`` and a few ``FINANCE_INSIGHTS_*``
variables, and the database helpers keep one shared engine per process. A
developer's shell (or a stray ``.env``) must not turn a deterministic test
into one that calls the network, and a test that binds a SQLite file must not
leak that engine into the next test.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

import pytest

from db.client import reset_engine
from finance_insights import logging_setup

_ENV_VARS = (
    "OPENAI_API_KEY",
    "DATABASE_URL",
    "FINANCE_INSIGHTS_MODEL",
    "FINANCE_INSIGHTS_AI_TIMEOUT",
    "FINANCE_INSIGHTS_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Clear credentials and dispose the shared engine around every test."""

    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_engine()
    yield
    reset_engine()


@pytest.fixture(autouse=True)
def _restore_package_logger() -> Iterator[None]:
    """Undo ``configure_logging`` from CLI tests so ``caplog`` keeps working."""

    logger = logging.getLogger("finance_insights")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate
    logging_setup._configured = False
