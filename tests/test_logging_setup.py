import io
import logging

import pytest

from finance_insights.logging_setup import (
    LEVEL_ENV,
    configure_logging,
    get_logger,
    resolve_level,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("debug", logging.DEBUG),
        (" Warning ", logging.WARNING),
        ("10", logging.DEBUG),
        (logging.ERROR, logging.ERROR),
        ("chatty", logging.INFO),
    ],
)
def test_resolve_level(raw, expected):
    assert resolve_level(raw) == expected


def test_resolve_level_reads_environment_when_unset():
    assert resolve_level(None, {LEVEL_ENV: "error"}) == logging.ERROR
    assert resolve_level(None, {}) == logging.INFO


def test_configure_logging_installs_one_handler_once():
    first, second = io.StringIO(), io.StringIO()
    configure_logging("INFO", stream=first)
    configure_logging("DEBUG", stream=second)

    log = get_logger("finance_insights.budget")
    log.info("budget:aggregate rows=%d", 3)
    log.debug("budget:skipped")

    assert "budget:aggregate rows=3" in first.getvalue()
    assert "budget:skipped" not in first.getvalue()
    assert second.getvalue() == ""
    handlers = logging.getLogger("finance_insights").handlers
    assert sum(isinstance(h, logging.StreamHandler) for h in handlers) == 1
