"""
Pytest fixtures for the school ledger test suite.

Provides:
- An in-memory SQLite LedgerDatabase per test (tables created)
- The default configuration and the LedgerSettings bridged from it
- Opened LedgerContext instances sharing a ChangeBus and a DeterministicClock
- Structured-log capture
"""

import json
import logging
from io import StringIO

import pytest

from ledger_config import get_active_config
from ledger_config.bridges import build_ledger_settings
from ledger_kernel.context import LedgerContext
from ledger_kernel.db.engine import LedgerDatabase
from ledger_kernel.domain.clock import DeterministicClock
from ledger_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from ledger_kernel.storage.change_bus import ChangeBus
from ledger_kernel.storage.document_store import DocumentStore


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture ledger_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, ledger):
            ledger.poster.post_transactions(...)
            logs = captured_logs()
            assert any(r["message"] == "transactions_posted" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("ledger_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Configuration
# =============================================================================


@pytest.fixture(scope="session")
def config():
    """The shipped default configuration, with no environment overrides."""
    return get_active_config(environ={})


@pytest.fixture(scope="session")
def settings(config):
    return build_ledger_settings(config)


# =============================================================================
# Storage and contexts
# =============================================================================


@pytest.fixture
def database():
    db = LedgerDatabase.from_url("sqlite://")
    db.create_tables()
    yield db
    db.dispose()


@pytest.fixture
def store(database):
    return DocumentStore(database)


@pytest.fixture
def clock():
    return DeterministicClock()


@pytest.fixture
def bus():
    return ChangeBus()


@pytest.fixture
def make_ledger(database, settings, bus, clock):
    """
    Factory for opened LedgerContext instances over the test database.

    Every context built here shares the database; by default they also
    share the ChangeBus, so writes in one are seen by the others.
    """
    opened: list[LedgerContext] = []

    def _make(ledger_settings=None, *, shared_bus=True, **kwargs) -> LedgerContext:
        context = LedgerContext(
            database,
            ledger_settings or settings,
            bus=bus if shared_bus else ChangeBus(),
            clock=clock,
            **kwargs,
        )
        opened.append(context.open())
        return context

    yield _make

    for context in opened:
        context.close()


@pytest.fixture
def ledger(make_ledger):
    """An opened ledger seeded with the default chart."""
    return make_ledger()


@pytest.fixture
def account_by_code(ledger):
    """Look up a live account of ``ledger`` by its code."""

    def _lookup(code: str):
        account = ledger.chart.find_by_code(code)
        assert account is not None, f"no account with code {code}"
        return account

    return _lookup
