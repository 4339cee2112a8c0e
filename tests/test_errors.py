from datetime import datetime, timedelta

import pytest

from ghwizard import errors
from ghwizard.errors import (
    MAX_RETRY_ATTEMPTS, ErrorKind, ErrorLog, ErrorRecord, GitHubError, GitHubSubKind, classify_failure, exit_code_for,
)


class StubSelect:
    """Answers prompt_select with the first choice starting with prefix, else the first choice."""

    def __init__(self, prefix=""):
        self.prefix = prefix
        self.asked = []

    def __call__(self, message, choices, **kwargs):
        self.asked.append((message, list(choices)))
        for choice in choices:
            if self.prefix and choice.startswith(self.prefix):
                return choice
        return choices[0]


@pytest.mark.parametrize("message, returncode, expected", [
    ("To get started with GitHub CLI, please run:  gh auth login", 4, (ErrorKind.AUTH, GitHubSubKind.OTHER)),
    ("HTTP 401: Bad credentials", 1, (ErrorKind.AUTH, GitHubSubKind.OTHER)),
    ("API rate limit exceeded for user", 1, (ErrorKind.GITHUB, GitHubSubKind.RATE_LIMIT)),
    ("dial tcp: lookup api.github.com: no such host", 1, (ErrorKind.NETWORK, GitHubSubKind.OTHER)),
    ("HTTP 403: Resource not accessible by integration", 1, (ErrorKind.GITHUB, GitHubSubKind.PERMISSIONS)),
    ("HTTP 404: Not Found", 1, (ErrorKind.GITHUB, GitHubSubKind.NOT_FOUND)),
    ("something odd", 1, (ErrorKind.GITHUB, GitHubSubKind.OTHER)),
])
def test_classify_failure(message, returncode, expected):
    assert classify_failure(message, returncode) == expected


def test_exit_codes():
    assert exit_code_for(ErrorKind.AUTH) == 2
    assert exit_code_for("network") == 3
    assert exit_code_for(ErrorKind.GITHUB) == 3
    assert exit_code_for(ErrorKind.INPUT) == 1
    assert exit_code_for("nonsense") == 1
    assert GitHubError("x", kind=ErrorKind.AUTH).exit_code == 2


def test_coerce_unknown_kind():
    assert ErrorKind.coerce("AUTH") is ErrorKind.AUTH
    assert ErrorKind.coerce("whatever") is ErrorKind.UNKNOWN


def test_record_line_format():
    record = ErrorRecord(ErrorKind.NETWORK, "timed out\nafter 30s", "create_issue", datetime(2024, 5, 6, 7, 8, 9))
    line = record.to_line()
    assert line == "[2024-05-06 07:08:09] ERROR [network] create_issue: timed out after 30s"
    parsed = ErrorRecord.from_line(line)
    assert parsed.kind is ErrorKind.NETWORK
    assert parsed.context == "create_issue"
    assert parsed.timestamp == datetime(2024, 5, 6, 7, 8, 9)


def test_from_line_rejects_garbage():
    assert ErrorRecord.from_line("not a record") is None
    assert ErrorRecord.from_line("[yesterday] ERROR [auth] ctx: msg") is None


def test_error_log_stats_recent_and_clear(tmp_path):
    log = ErrorLog(str(tmp_path / "logs" / "errors.log"))
    now = datetime(2024, 5, 6, 12, 0, 0)
    log.append(ErrorRecord(ErrorKind.AUTH, "old", "a", now - timedelta(days=2)))
    for i in range(6):
        log.append(ErrorRecord(ErrorKind.INPUT, f"bad {i}", "menu", now - timedelta(minutes=i)))

    stats = log.stats(now=now)
    assert stats.total == 7
    assert stats.recent == 6
    assert len(stats.last) == 5
    assert stats.last[-1].endswith("bad 5")
    assert len(log.recent(3)) == 3
    assert log.recent(0) == []

    assert log.clear()
    assert log.stats(now=now).total == 0


def test_missing_log_is_empty(tmp_path):
    log = ErrorLog(str(tmp_path / "none.log"))
    assert log.lines() == []
    assert log.stats().total == 0


def test_unwritable_log_does_not_raise(tmp_path):
    log = ErrorLog(str(tmp_path))
    assert log.append(ErrorRecord(ErrorKind.UNKNOWN, "x")) is False


def test_handle_error_records_and_dispatches(error_handler):
    assert error_handler.handle_error(ErrorKind.INPUT, "Please enter a number", None, "main_menu") is True
    assert error_handler.handle_error("bogus", "strange failure", None, "status") is False
    kinds = [r.kind for r in error_handler.error_log.records()]
    assert kinds == [ErrorKind.INPUT, ErrorKind.UNKNOWN]


def test_dependency_handler_names_tool(error_handler):
    assert error_handler._missing_tool("gh is not installed or not on PATH") == "gh"
    assert error_handler.handle_error(ErrorKind.DEPENDENCY, "git is not installed") is False


def test_retry_is_capped(monkeypatch, error_handler):
    select = StubSelect("Retry now")
    monkeypatch.setattr(errors, "prompt_select", select)
    calls = []

    def always_down():
        calls.append(1)
        raise GitHubError("dial tcp: i/o timeout", kind=ErrorKind.NETWORK)

    error_handler.session.navigate_to_section("issue")
    ok, result = error_handler.execute_with_retry("create_issue", always_down)

    assert (ok, result) == (False, None)
    assert len(calls) == MAX_RETRY_ATTEMPTS
    assert error_handler.session.retry_attempts == 0
    assert error_handler.session.state == "main"
    assert select.asked[-1][1] == ["Return to main menu", "Exit wizard"]


def test_retry_cap_can_exit(monkeypatch, error_handler):
    monkeypatch.setattr(errors, "prompt_select", lambda message, choices, **kw: choices[-1] if "What" in message else choices[0])
    error_handler.session.retry_attempts = MAX_RETRY_ATTEMPTS
    assert error_handler.offer_retry("op") is False
    assert error_handler.session.state == "exited"


def test_wait_and_retry_sleeps(monkeypatch, error_handler):
    monkeypatch.setattr(errors, "prompt_select", StubSelect("Wait"))
    attempts = []

    def flaky():
        attempts.append(1)
        if len(attempts) == 1:
            raise GitHubError("connection reset by peer", kind=ErrorKind.NETWORK)
        return "ok"

    assert error_handler.execute_with_retry("list_issues", flaky) == (True, "ok")
    assert error_handler.sleeps == [errors.RETRY_DELAY]
    assert error_handler.session.retry_attempts == 0


def test_success_resets_counter(error_handler):
    error_handler.session.retry_attempts = 2
    assert error_handler.execute_with_retry("noop", lambda x: x * 2, 21) == (True, 42)
    assert error_handler.session.retry_attempts == 0


def test_rate_limit_waits(monkeypatch, error_handler):
    monkeypatch.setattr(errors, "prompt_select", StubSelect("Wait"))
    exc = GitHubError("API rate limit exceeded", sub_kind=GitHubSubKind.RATE_LIMIT)
    assert error_handler.handle_github_exception(exc, "list_issues") is True
    assert error_handler.sleeps == [errors.RATE_LIMIT_DELAY]


def test_not_found_offers_another_resource(monkeypatch, error_handler):
    monkeypatch.setattr(errors, "prompt_confirm", lambda message, default=False: False)
    exc = GitHubError("HTTP 404: Not Found", sub_kind=GitHubSubKind.NOT_FOUND)
    assert error_handler.handle_github_exception(exc) is False


def test_auth_retry_rechecks_status(error_handler, fake_client):
    fake_client.authenticated = False
    assert error_handler.handle_error(ErrorKind.AUTH, "not logged in", "retry_auth") is False
    fake_client.authenticated = True
    assert error_handler.handle_error(ErrorKind.AUTH, "not logged in", "retry_auth") is True


def test_failing_recovery_handler_is_contained(error_handler):
    def broken(record, action):
        raise RuntimeError("handler bug")
    error_handler.handlers[ErrorKind.GITHUB] = broken
    assert error_handler.handle_error(ErrorKind.GITHUB, "x") is False


def test_config_handler_creates_basic_config(monkeypatch, error_handler, tmp_path):
    monkeypatch.setattr(errors, "prompt_select", StubSelect("Create basic"))
    assert error_handler.handle_error(ErrorKind.CONFIG, "missing .env") is True
    assert "LOG_LEVEL" in (tmp_path / ".env").read_text()
