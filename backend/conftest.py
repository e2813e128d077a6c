"""Test session setup: test environment variables and structlog event dicts in caplog."""

from pathlib import Path

import pytest
import structlog
from dotenv import load_dotenv

from shared.logging import configure_structlog

load_dotenv(Path(__file__).resolve().parent.parent / ".env.tests")
configure_structlog()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Drop game_id/command bindings left by an aborted command."""
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()
