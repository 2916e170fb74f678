"""Unit tests configuration file."""

import pytest

from objschema.schema.registry import SchemaRegistry


def pytest_configure(config):
    """Disable verbose output when running tests."""
    terminal = config.pluginmanager.getplugin("terminal")
    if terminal:
        terminal.TerminalReporter.showfspath = False


@pytest.fixture
def registry():
    return SchemaRegistry()
