"""Tests for notifier/reporter hooks."""

from structlog.testing import capture_logs

from resilient.core.errors import TypedError
from resilient.execution.hooks import build_report, log_notifier, make_log_reporter


def _raised_network_error():
    try:
        raise ConnectionResetError("peer reset")
    except ConnectionResetError as exc:
        return TypedError.network(cause=exc)


class TestBuildReport:
    def test_contains_record_and_context(self):
        report = build_report(TypedError.server("boom"), {"attempts": 4})
        assert report["code"] == "SERVER_ERROR"
        assert report["message"] == "boom"
        assert report["context"] == {"attempts": 4}

    def test_no_traceback_without_debug(self):
        assert "traceback" not in build_report(_raised_network_error())

    def test_traceback_of_cause_with_debug(self):
        report = build_report(_raised_network_error(), debug=True)
        assert "ConnectionResetError: peer reset" in report["traceback"]


class TestLogHooks:
    def test_log_notifier(self):
        with capture_logs() as logs:
            log_notifier("Connection restored.")
        assert logs[0]["event"] == "user_notification"
        assert logs[0]["message"] == "Connection restored."

    def test_log_reporter(self):
        reporter = make_log_reporter(debug=True)
        with capture_logs() as logs:
            reporter(_raised_network_error(), {"attempts": 2})
        assert logs[0]["event"] == "error_reported"
        assert logs[0]["log_level"] == "error"
        assert logs[0]["report"]["context"] == {"attempts": 2}
        assert "traceback" in logs[0]["report"]
