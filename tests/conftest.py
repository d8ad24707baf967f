# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Shared fixtures for sentry_integration tests."""

import logging

import pytest

from sentry_integration import identity, lifecycle


class RecordingHandler(logging.Handler):
    """Handler that keeps every record it receives."""

    def __init__(self, level: int = logging.NOTSET):
        super().__init__(level)
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


@pytest.fixture(autouse=True)
def reset_reporting_state(monkeypatch):
    """Undo process-wide logging and identity state between tests."""
    root = logging.getLogger()
    original_handlers = list(root.handlers)
    original_level = root.level
    monkeypatch.setattr(lifecycle, "_installed", False)
    token = identity._current_identity.set(None)

    yield

    for handler in list(root.handlers):
        if handler not in original_handlers:
            root.removeHandler(handler)
    root.setLevel(original_level)
    identity._current_identity.reset(token)


@pytest.fixture
def recording_handler_factory():
    """Build RecordingHandler instances."""
    return RecordingHandler
