"""
Pytest configuration and shared fixtures.

This file registers custom pytest markers and command-line options, and
provides a throwaway SQLite store wired into the API.
"""

import os
import tempfile
import pytest
from smart_expense.api.deps import get_expense_store
from smart_expense.api.main import app
from smart_expense.services.storage.expenses_sqlite import SQLiteExpenseStore


def pytest_addoption(parser):
    """Add custom command-line options"""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration tests against a real vision model endpoint"
    )


def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test requiring a real vision model API key"
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --run-integration is specified"""
    if config.getoption("--run-integration"):
        return

    skip_integration = pytest.mark.skip(reason="need --run-integration option to run")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


@pytest.fixture
def db_path():
    """Create a temporary database file for testing"""
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)
    yield path
    # Cleanup
    if os.path.exists(path):
        os.remove(path)


@pytest.fixture
def store(db_path):
    """Fresh SQLiteExpenseStore, also served to the API for the test's duration"""
    expense_store = SQLiteExpenseStore(db_path)
    app.dependency_overrides[get_expense_store] = lambda: expense_store
    yield expense_store
    app.dependency_overrides.pop(get_expense_store, None)
