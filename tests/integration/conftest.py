"""
Pytest configuration for integration tests.
"""

import pytest


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests in the integration directory."""
    for item in items:
        if "integration" in item.path.parts:
            item.add_marker(pytest.mark.integration)
