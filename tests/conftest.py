"""Shared fixtures for Keypa tests."""

from __future__ import annotations

import pytest
import structlog

from keypa.core.context import ExecutionContext


@pytest.fixture
def unknown_context():
    return lambda: ExecutionContext.UNKNOWN


@pytest.fixture
def env_file(tmp_path):
    """A .env file holding TEST_VALUE=Keypa."""
    path = tmp_path / ".env-keypa"
    path.write_text("TEST_VALUE=Keypa\n")
    return path


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()
