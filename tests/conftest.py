"""Pytest configuration and shared fixtures."""

import itertools

import pytest
import structlog
from click.testing import CliRunner

from pairchat.models import Message


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo any logging setup a CLI invocation did during the test."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def temp_data_dir(tmp_path):
    """Provide a temporary data directory for tests."""
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    return data_dir


@pytest.fixture
def make_message():
    """Factory for messages with sensible defaults and increasing timestamps."""
    counter = itertools.count(1)

    def _make(
        id: str | None = None,
        sender: str = "Alice",
        receiver: str = "Bob",
        text: str | None = None,
        timestamp: int | None = None,
        window_id: str = "window-test",
    ) -> Message:
        n = next(counter)
        return Message(
            id=id if id is not None else f"m{n}",
            sender=sender,
            receiver=receiver,
            text=text if text is not None else f"message {n}",
            time="12:00",
            timestamp=timestamp if timestamp is not None else n * 100,
            window_id=window_id,
        )

    return _make
