"""
Pytest configuration and fixtures for linewatch tests.

Specialized fixtures are organized in the fixtures/ directory:
- fixtures.watcher: FileLinesWatcher fixtures
"""

import pytest

# Load fixture modules
pytest_plugins = [
    "tests.fixtures.watcher",
]


@pytest.fixture
def temp_file(tmp_path):
    """Create a temporary text file for testing."""
    def _create_file(content: str, name: str = "test.txt"):
        file_path = tmp_path / name
        file_path.write_text(content)
        return file_path
    return _create_file
