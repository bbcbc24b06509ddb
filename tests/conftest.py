"""Pytest fixtures for Wysper tests."""

import tempfile
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from wysper.config.schema import GeminiConfig, SessionConfig


class FakeClock:
    """Manually advanced clock for maintenance windows."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 1, 9, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def prompts_dir(temp_dir):
    """Prompt overrides with a short DSA instruction."""
    path = temp_dir / "prompts"
    path.mkdir()
    (path / "dsa.md").write_text("You are a DSA coach.")
    return path


@pytest.fixture
def session_config():
    return SessionConfig(max_memory_size=20, compression_threshold=10)


@pytest.fixture
def fast_gemini_config():
    """Gemini config with no backoff delay."""
    return GeminiConfig(
        max_retries=3,
        timeout=1.0,
        backoff_network=0,
        backoff_default=0,
        backoff_jitter=0,
    )
