# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Tests for dual-sink error reporting."""

import logging
import os
from unittest.mock import call, patch

import pytest

from sentry_integration.identity import IdentityClaim, identity_scope
from sentry_integration.log_handler import SentryLogHandler
from sentry_integration.reporter import (
    CallSite,
    build_detail_line,
    format_error_chain,
    report_error,
    report_object_storage_error,
)


@pytest.fixture
def mock_sdk():
    with patch("sentry_integration.reporter.sentry_sdk") as sdk, patch("sentry_integration.identity.sentry_sdk", sdk):
        yield sdk


def scope_of(mock_sdk):
    return mock_sdk.isolation_scope.return_value.__enter__.return_value


def warning_lines(caplog) -> list[logging.LogRecord]:
    return [r for r in caplog.records if r.levelno == logging.WARNING and r.name != "sentry_integration.reporter"]


class TestBuildDetailLine:
    """Tests for build_detail_line."""

    def test_with_attributes(self):
        """Test that attributes precede the error chain in mapping order."""
        line = build_detail_line("disk full", "io: ENOSPC", {"object_key": "k1", "prefix": "p/"})

        assert line == "disk full [object_key=k1, prefix=p/, error_chain=io: ENOSPC]"

    def test_without_attributes(self):
        """Test that no stray separators appear without attributes."""
        assert build_detail_line("disk full", "io: ENOSPC") == "disk full [error_chain=io: ENOSPC]"

    def test_none_values_are_omitted(self):
        """Test that absent optional fields are skipped."""
        line = build_detail_line("disk full", "io: ENOSPC", {"object_key": None, "prefix": "p/"})

        assert line == "disk full [prefix=p/, error_chain=io: ENOSPC]"


class TestReportError:
    """Tests for report_error."""

    def test_sentry_event_uses_static_message(self, mock_sdk):
        """Test that Sentry receives one error event with the static message."""
        report_error("disk full", "io: ENOSPC", {"object_key": "k1", "prefix": "p/"})

        mock_sdk.capture_message.assert_called_once_with("disk full", level="error")
        assert scope_of(mock_sdk).set_extra.call_args_list == [
            call("error_chain", "io: ENOSPC"),
            call("object_key", "k1"),
            call("prefix", "p/"),
        ]

    def test_none_attributes_not_sent(self, mock_sdk):
        """Test that absent fields are not inserted as extras."""
        report_error("disk full", "io: ENOSPC", {"object_key": None})

        assert scope_of(mock_sdk).set_extra.call_args_list == [call("error_chain", "io: ENOSPC")]

    def test_local_warning_line(self, mock_sdk, caplog):
        """Test the detailed warning line and its call site."""
        with caplog.at_level(logging.WARNING):
            report_error("disk full", "io: ENOSPC", {"object_key": "k1", "prefix": "p/"})

        records = warning_lines(caplog)
        assert len(records) == 1
        record = records[0]
        assert record.getMessage() == "disk full [object_key=k1, prefix=p/, error_chain=io: ENOSPC]"
        assert record.name == __name__
        assert record.filename == os.path.basename(__file__)
        assert record.funcName == "test_local_warning_line"

    def test_local_line_without_attributes(self, mock_sdk, caplog):
        """Test the warning line when no attributes are given."""
        with caplog.at_level(logging.WARNING):
            report_error("disk full", "io: ENOSPC")

        assert [r.getMessage() for r in warning_lines(caplog)] == ["disk full [error_chain=io: ENOSPC]"]

    def test_message_with_percent_sign(self, mock_sdk, caplog):
        """Test that the detail line is not treated as a format string."""
        with caplog.at_level(logging.WARNING):
            report_error("quota exceeded", "used 100% of 5GB")

        assert [r.getMessage() for r in warning_lines(caplog)] == [
            "quota exceeded [error_chain=used 100% of 5GB]"
        ]

    def test_explicit_location(self, mock_sdk, caplog):
        """Test that an explicit call site is used for the local line."""
        location = CallSite(module="archive.fetcher", filename="/srv/fetcher.py", lineno=42, function="fetch")

        with caplog.at_level(logging.WARNING):
            report_error("fetch failed", "timeout", location=location)

        record = warning_lines(caplog)[0]
        assert record.name == "archive.fetcher"
        assert record.pathname == "/srv/fetcher.py"
        assert record.lineno == 42
        assert record.funcName == "fetch"

    def test_suppressed_local_level(self, mock_sdk, caplog):
        """Test that nothing is written when warnings are filtered out."""
        with caplog.at_level(logging.ERROR):
            report_error("disk full", "io: ENOSPC")

        assert warning_lines(caplog) == []
        mock_sdk.capture_message.assert_called_once()

    def test_current_identity_attached(self, mock_sdk):
        """Test that the active identity is attached to the Sentry event."""
        with identity_scope(IdentityClaim.from_jwt("u1")):
            report_error("disk full", "io: ENOSPC")

        scope_of(mock_sdk).set_user.assert_called_once_with({"id": "u1", "auth_type": "jwt"})

    def test_no_identity_clears_user(self, mock_sdk):
        """Test that the event scope carries no user without an active identity."""
        report_error("disk full", "io: ENOSPC")

        scope_of(mock_sdk).set_user.assert_called_once_with(None)

    def test_sentry_failure_keeps_local_line(self, mock_sdk, caplog):
        """Test that a Sentry failure does not suppress the local line."""
        mock_sdk.capture_message.side_effect = RuntimeError("transport down")

        with caplog.at_level(logging.WARNING):
            report_error("disk full", "io: ENOSPC")

        assert [r.getMessage() for r in warning_lines(caplog)] == ["disk full [error_chain=io: ENOSPC]"]
        assert "transport down" in caplog.text

    def test_local_failure_keeps_sentry_event(self, mock_sdk, capsys):
        """Test that a local log failure neither raises nor blocks Sentry."""
        with patch("sentry_integration.reporter._log_detail", side_effect=OSError("stdout closed")):
            report_error("disk full", "io: ENOSPC")

        mock_sdk.capture_message.assert_called_once_with("disk full", level="error")
        assert "local log write failed: stdout closed" in capsys.readouterr().err

    def test_local_line_is_routed_as_breadcrumb(self, mock_sdk, recording_handler_factory):
        """Test that the warning line flows through the routing handler."""
        events = recording_handler_factory()
        breadcrumbs = recording_handler_factory()
        destination = recording_handler_factory(logging.INFO)
        origin_logger = logging.getLogger("storage.worker")
        handler = SentryLogHandler("my_service", destination, events, breadcrumbs)
        origin_logger.addHandler(handler)
        origin_logger.setLevel(logging.INFO)
        origin_logger.propagate = False
        location = CallSite("storage.worker", "/srv/worker.py", 7, "run")
        try:
            report_error("disk full", "io: ENOSPC", location=location)
        finally:
            origin_logger.removeHandler(handler)
            origin_logger.setLevel(logging.NOTSET)
            origin_logger.propagate = True

        assert events.records == []
        assert [r.getMessage() for r in breadcrumbs.records] == ["disk full [error_chain=io: ENOSPC]"]
        assert len(destination.records) == 1


class TestReportObjectStorageError:
    """Tests for report_object_storage_error."""

    def test_key_and_prefix(self, mock_sdk, caplog):
        """Test reporting with object key and prefix."""
        with caplog.at_level(logging.WARNING):
            report_object_storage_error("disk full", "io: ENOSPC", object_key="k1", prefix="p/")

        record = warning_lines(caplog)[0]
        assert record.getMessage() == "disk full [object_key=k1, prefix=p/, error_chain=io: ENOSPC]"
        assert record.funcName == "test_key_and_prefix"
        mock_sdk.capture_message.assert_called_once_with("disk full", level="error")

    def test_prefix_only(self, mock_sdk, caplog):
        """Test reporting with only a prefix."""
        with caplog.at_level(logging.WARNING):
            report_object_storage_error("list failed", "403 Forbidden", prefix="archives/")

        assert [r.getMessage() for r in warning_lines(caplog)] == [
            "list failed [prefix=archives/, error_chain=403 Forbidden]"
        ]
        assert scope_of(mock_sdk).set_extra.call_args_list == [
            call("error_chain", "403 Forbidden"),
            call("prefix", "archives/"),
        ]


class TestCallSite:
    """Tests for CallSite.capture."""

    def test_captures_caller_of_caller(self):
        """Test that capture reports the caller of the capturing function."""

        def helper():
            return CallSite.capture()

        site = helper()

        assert site.module == __name__
        assert site.function == "test_captures_caller_of_caller"
        assert os.path.basename(site.filename) == os.path.basename(__file__)


class TestFormatErrorChain:
    """Tests for format_error_chain."""

    def test_explicit_cause(self):
        """Test that causes are joined outermost first."""
        try:
            try:
                raise OSError("ENOSPC")
            except OSError as e:
                raise RuntimeError("write failed") from e
        except RuntimeError as e:
            chain = format_error_chain(e)

        assert chain == "write failed: ENOSPC"

    def test_suppressed_context(self):
        """Test that ``from None`` hides the context."""
        try:
            try:
                raise KeyError("k")
            except KeyError:
                raise ValueError("bad key") from None
        except ValueError as e:
            chain = format_error_chain(e)

        assert chain == "bad key"

    def test_empty_message_uses_type_name(self):
        """Test that exceptions without a message show their type."""
        assert format_error_chain(TimeoutError()) == "TimeoutError"
