# src/ledgerstore/conftest.py
"""
Pytest configuration and shared fixtures.

Tests are co-located with implementation files using the *_test.py suffix.
No ledger is needed: a fake transactional executor records every statement
and replays scripted Ion result rows.
"""

import os

# Set environment BEFORE importing any app modules
os.environ["LEDGERSTORE_ENV"] = "test"
os.environ.setdefault("AWS_REGION", "us-east-1")
os.environ.setdefault("QLDB_LEDGER", "test-ledger")
os.environ.setdefault("QLDB_TABLE", "people")

from datetime import datetime, timezone

import pytest
from amazon.ion import simpleion

from ledgerstore import db

FIXED_NOW = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


# =============================================================================
# Ion Helpers
# =============================================================================


def ion(text: str):
    """Load a single Ion value from text."""
    return simpleion.loads(text)


def ion_rows(text: str) -> list:
    """Load a stream of Ion values from text, one per result row."""
    if not text.strip():
        return []
    return list(simpleion.loads(text, single_value=False))


# =============================================================================
# Fakes
# =============================================================================


class FakeTransaction:
    """
    Stands in for pyqldb's Executor.

    Each execute_statement() call pops the next scripted result (a list of
    Ion values); with nothing scripted it returns no rows.
    """

    def __init__(self):
        self.executed: list[tuple[str, tuple]] = []
        self.responses: list[list] = []

    def respond(self, *results: str) -> "FakeTransaction":
        for text in results:
            self.responses.append(ion_rows(text))
        return self

    def execute_statement(self, statement: str, *parameters):
        self.executed.append((statement, parameters))
        if self.responses:
            return iter(self.responses.pop(0))
        return iter([])

    @property
    def statements(self) -> list[str]:
        return [statement for statement, _ in self.executed]


class FakeDriver:
    """Runs execute_lambda() functions against a single FakeTransaction."""

    def __init__(self, txn: FakeTransaction):
        self.txn = txn
        self.transactions = 0

    def execute_lambda(self, fn):
        self.transactions += 1
        return fn(self.txn)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def txn() -> FakeTransaction:
    return FakeTransaction()


@pytest.fixture
def driver(txn):
    """Install a fake driver for every DriverProvider lookup."""
    fake = FakeDriver(txn)
    db.set_driver_override(fake)

    yield fake

    db.clear_driver_override()


@pytest.fixture
def repo():
    """Provide a LedgerRepository for the people table with a frozen clock."""
    from ledgerstore.repository import LedgerRepository

    return LedgerRepository("people", id_field_name="documentId", clock=lambda: FIXED_NOW)


@pytest.fixture
def datasource(driver):
    """Provide a LedgerDatasource wired to the fake driver."""
    from ledgerstore.datasource import LedgerDatasource

    return LedgerDatasource(
        {"region": "us-east-1", "ledger": "test-ledger", "table": "people"}
    )


@pytest.fixture
def app(datasource):
    """Create Flask application for testing."""
    from ledgerstore.app import create_app

    app = create_app(datasource)
    app.config["TESTING"] = True

    return app


@pytest.fixture
def client(app):
    """Create Flask test client."""
    return app.test_client()
