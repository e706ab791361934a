"""Pytest Configuration and Shared Fixtures

This file is automatically loaded by pytest and makes all fixtures available to all tests.
"""
import os
import sys
import tempfile
from pathlib import Path

import pytest

# Add backend to path for imports
backend_path = Path(__file__).parent.parent
sys.path.insert(0, str(backend_path))

# Keep test runs from writing logs or session files into the working tree.
# Must happen before anything imports chainwatch.config.
_scratch = Path(tempfile.mkdtemp(prefix="chainwatch-tests-"))
os.environ.setdefault("LOGGER__FILE_PATH", str(_scratch / "logs" / "test.log"))
os.environ.setdefault("LOGGER__FILTER_ENABLED", "false")
os.environ.setdefault("SESSION__STORE_PATH", str(_scratch / "nse_session.json"))

# Import all fixture modules to register them
pytest_plugins = [
    "tests.fixtures.chain_data",
    "tests.fixtures.fake_upstream",
]


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "unit: Unit tests with mocks only (fast)"
    )
    config.addinivalue_line(
        "markers",
        "slow: Slow-running tests (skip with -m 'not slow')"
    )


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
