"""
Root conftest.py for statgrid webapp tests.

This file contains shared fixtures and pytest configuration
that applies to all test modules.
"""

import os
import sys
import tempfile
from pathlib import Path

import pytest

# Keep the app config folder out of the user's real config dir.
# Must be set before anything imports api.app_config.
os.environ.setdefault("STATGRID_CONFIG", tempfile.mkdtemp(prefix="statgrid-test-config-"))

# Ensure the webapp root is in the path
webapp_root = Path(__file__).parent.parent
if str(webapp_root) not in sys.path:
    sys.path.insert(0, str(webapp_root))

from api.shared.variables import Variable, VariableType
from api.stores import InMemoryDataStore, InMemoryVariableStore


# ============================================================================
# Pytest Hooks
# ============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "websocket: mark test as involving WebSocket communication",
    )
    config.addinivalue_line(
        "markers",
        "api: mark test as going through the HTTP routes",
    )


def pytest_collection_modifyitems(config, items):
    """
    Automatically mark tests based on their module or name.

    - Tests in test_grid_api.py are marked with 'api'
    - Tests with 'websocket' in name are marked with 'websocket'
    """
    for item in items:
        if item.fspath.basename == "test_grid_api.py":
            item.add_marker(pytest.mark.api)

        if "websocket" in item.name.lower():
            item.add_marker(pytest.mark.websocket)


# ============================================================================
# Shared Fixtures
# ============================================================================


@pytest.fixture
def sample_variables():
    """Two committed variables: a numeric column and a date column."""
    return [
        Variable(name="age", column_index=0),
        Variable.from_partial({"name": "visit", "type": VariableType.DATE.value}, column_index=1),
    ]


@pytest.fixture
def sample_rows():
    """Three committed rows matching ``sample_variables``."""
    return [
        [31, "01-02-2020"],
        [45, ""],
        ["", "15-10-1582"],
    ]


@pytest.fixture
def variable_store(sample_variables):
    return InMemoryVariableStore(sample_variables)


@pytest.fixture
def data_store(sample_rows):
    return InMemoryDataStore(sample_rows)
