"""
errors.py

Error taxonomy, error log and recovery handlers for the GitHub wizard.

Every failure coming out of the GitHub client or the input layer is classified into an
ErrorKind and handed to ErrorHandler.handle_error, which records it in the error log and
runs the single recovery strategy registered for that kind. Handlers only print guidance
and perform at most one bounded recovery step; they report through their boolean return
value and never raise.
"""
import os
import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Dict, List, Optional

from ghwizard.utils.logging import contextual_log
from ghwizard.utils.output_utils import print_status_line, print_key_value
from ghwizard.utils.prompt_utils import prompt_select, prompt_confirm
from ghwizard.utils.rich_prompt import rich_error, rich_warning, rich_info, rich_success, console

MAX_RETRY_ATTEMPTS = 3
RETRY_DELAY = 2
RATE_LIMIT_DELAY = 300
DEFAULT_ERROR_LOG = "wizard-errors.log"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class ErrorKind(str, Enum):
    AUTH = "auth"
    NETWORK = "network"
    INPUT = "input"
    DEPENDENCY = "dependency"
    GITHUB = "github"
    CONFIG = "config"
    UNKNOWN = "unknown"

    @classmethod
    def coerce(cls, value):
        """Accept an ErrorKind or its string tag; anything unrecognised becomes UNKNOWN."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.UNKNOWN


class GitHubSubKind(str, Enum):
    RATE_LIMIT = "rate_limit"
    PERMISSIONS = "permissions"
    NOT_FOUND = "not_found"
    OTHER = "other"


ERROR_EXIT_CODES = {
    ErrorKind.AUTH: 2,
    ErrorKind.NETWORK: 3,
    ErrorKind.GITHUB: 3,
}


def exit_code_for(kind) -> int:
    """Process exit code for an error kind: 2 auth, 3 network/API, 1 otherwise."""
    return ERROR_EXIT_CODES.get(ErrorKind.coerce(kind), 1)


class GhWizardError(Exception):
    """Base class for every error raised by ghwizard."""


class ConfigError(GhWizardError):
    pass


class ValidationFailure(GhWizardError, ValueError):
    """Raised for arguments that fail validation after they have left the prompt layer."""


class VersionError(GhWizardError, ValueError):
    """Raised for a current version that is not three dot-separated integers."""


class GitHubError(GhWizardError):
    """
    A failed gh/git invocation, already classified.

    Attributes:
        kind (ErrorKind): taxonomy entry used for recovery dispatch.
        sub_kind (GitHubSubKind): refinement for ErrorKind.GITHUB.
        returncode (int): exit status of the external command, when there was one.
    """
    def __init__(self, message, kind=ErrorKind.GITHUB, sub_kind=GitHubSubKind.OTHER, returncode=None):
        super().__init__(message)
        self.kind = ErrorKind.coerce(kind)
        self.sub_kind = sub_kind
        self.returncode = returncode

    @property
    def exit_code(self):
        return exit_code_for(self.kind)


_NETWORK_MARKERS = ("could not resolve host", "timeout", "timed out", "connection refused",
                    "connection reset", "network is unreachable", "dial tcp", "no such host",
                    "tls handshake")
_AUTH_MARKERS = ("gh auth login", "not logged in", "authentication", "http 401", "bad credentials")
_RATE_MARKERS = ("rate limit", "secondary rate", "api rate")
_PERMISSION_MARKERS = ("http 403", "permission", "resource not accessible", "must have admin", "forbidden")
_NOT_FOUND_MARKERS = ("http 404", "not found", "could not resolve to", "does not exist")


def classify_failure(message: str, returncode: Optional[int] = None):
    """
    Infer (ErrorKind, GitHubSubKind) from a failed command's stderr text and exit status.
    gh exits with 4 when authentication is required.
    """
    text = (message or "").lower()
    if returncode == 4 or any(m in text for m in _AUTH_MARKERS):
        return ErrorKind.AUTH, GitHubSubKind.OTHER
    if any(m in text for m in _RATE_MARKERS):
        return ErrorKind.GITHUB, GitHubSubKind.RATE_LIMIT
    if any(m in text for m in _NETWORK_MARKERS):
        return ErrorKind.NETWORK, GitHubSubKind.OTHER
    if any(m in text for m in _PERMISSION_MARKERS):
        return ErrorKind.GITHUB, GitHubSubKind.PERMISSIONS
    if any(m in text for m in _NOT_FOUND_MARKERS):
        return ErrorKind.GITHUB, GitHubSubKind.NOT_FOUND
    return ErrorKind.GITHUB, GitHubSubKind.OTHER


@dataclass(frozen=True)
class ErrorRecord:
    kind: ErrorKind
    message: str
    context: str = "general"
    timestamp: datetime = field(default_factory=lambda: datetime.now().replace(microsecond=0))

    LINE_PATTERN = re.compile(r'^\[(?P<ts>[^\]]+)\] ERROR \[(?P<kind>[^\]]+)\] (?P<context>[^:]*): (?P<message>.*)$')

    def to_line(self) -> str:
        message = " ".join(str(self.message).splitlines())
        context = (self.context or "general").replace(":", " ")
        return f"[{self.timestamp.strftime(TIMESTAMP_FORMAT)}] ERROR [{self.kind.value}] {context}: {message}"

    @classmethod
    def from_line(cls, line: str):
        match = cls.LINE_PATTERN.match(line.rstrip("\n"))
        if not match:
            return None
        try:
            ts = datetime.strptime(match.group("ts"), TIMESTAMP_FORMAT)
        except ValueError:
            return None
        return cls(ErrorKind.coerce(match.group("kind")), match.group("message"), match.group("context"), ts)


@dataclass
class ErrorStats:
    total: int
    recent: int
    last: List[str]


class ErrorLog:
    """Append-only error log file, one ErrorRecord per line."""

    def __init__(self, path=None):
        self.path = path or os.environ.get("ERROR_LOG_FILE") or DEFAULT_ERROR_LOG

    def append(self, record: ErrorRecord) -> bool:
        try:
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(record.to_line() + "\n")
            return True
        except OSError as e:
            contextual_log('warning', f"Could not write error log {self.path}: {e}", operation="error_log_write", status="error")
            return False

    def lines(self) -> List[str]:
        if not os.path.exists(self.path):
            return []
        with open(self.path, "r", encoding="utf-8") as f:
            return [line.rstrip("\n") for line in f if line.strip()]

    def records(self) -> List[ErrorRecord]:
        return [r for r in (ErrorRecord.from_line(line) for line in self.lines()) if r is not None]

    def stats(self, now=None) -> ErrorStats:
        """Total records, records from the last 24 hours, and the last five lines."""
        now = now or datetime.now()
        lines = self.lines()
        cutoff = now - timedelta(hours=24)
        recent = sum(1 for r in self.records() if r.timestamp >= cutoff)
        return ErrorStats(total=len(lines), recent=recent, last=lines[-5:])

    def recent(self, count: int = 10) -> List[str]:
        return self.lines()[-count:] if count > 0 else []

    def clear(self) -> bool:
        try:
            with open(self.path, "w", encoding="utf-8"):
                pass
            return True
        except OSError as e:
            contextual_log('warning', f"Could not clear error log {self.path}: {e}", operation="error_log_clear", status="error")
            return False


INSTALL_GUIDES = {
    "gh": [
        ("macOS", "brew install gh"),
        ("Ubuntu/Debian", "sudo apt install gh"),
        ("Windows", "winget install GitHub.cli"),
        ("Other", "https://cli.github.com/"),
    ],
    "git": [
        ("macOS", "brew install git"),
        ("Ubuntu/Debian", "sudo apt install git"),
        ("Windows", "winget install Git.Git"),
        ("Other", "https://git-scm.com/downloads"),
    ],
}

INPUT_GUIDANCE = {
    "menu_option": "Menu options: enter one of the numbers shown (e.g. 1-5)",
    "issue_number": "Issue numbers: positive integers only (e.g. 42)",
    "version": "Versions: MAJOR.MINOR.PATCH without a leading 'v' (e.g. 1.2.3)",
    "pre_release": "Pre-release numbers: letters, digits or hyphens (e.g. 1 for alpha.1)",
    "text": "Text fields: cannot be empty or whitespace only",
    "confirmation": "Confirmations: y, yes, n or no",
}


class ErrorHandler:
    """
    Enum-keyed dispatch from ErrorKind to its recovery handler.

    Args:
        session: WizardSession; supplies the retry counter and navigation.
        client: GitHubClient used by auth/rate-limit/permission recovery. Optional.
        error_log (ErrorLog): where records are appended.
        env_file (str): configuration file scaffolded by the config handler.
        sleep (callable): injected for tests.
    """

    def __init__(self, session, client=None, error_log=None, env_file=".env", sleep=time.sleep,
                 retry_delay=RETRY_DELAY, rate_limit_delay=RATE_LIMIT_DELAY):
        self.session = session
        self.client = client
        self.error_log = error_log or ErrorLog()
        self.env_file = env_file
        self.sleep = sleep
        self.retry_delay = retry_delay
        self.rate_limit_delay = rate_limit_delay
        self.handlers: Dict[ErrorKind, Callable[[ErrorRecord, Optional[str]], bool]] = {
            ErrorKind.AUTH: self.handle_auth_error,
            ErrorKind.NETWORK: self.handle_network_error,
            ErrorKind.INPUT: self.handle_input_error,
            ErrorKind.DEPENDENCY: self.handle_dependency_error,
            ErrorKind.GITHUB: self.handle_github_error,
            ErrorKind.CONFIG: self.handle_config_error,
            ErrorKind.UNKNOWN: self.handle_generic_error,
        }

    def handle_error(self, kind, message, recovery_action=None, context="general") -> bool:
        """
        Record the failure and run the recovery strategy for its kind.
        Returns True when the caller may retry the failed step.
        """
        kind = ErrorKind.coerce(kind)
        record = ErrorRecord(kind, str(message), context or "general")
        self.error_log.append(record)
        contextual_log('error', f"[{kind.value}] {context}: {message}", operation="handle_error",
                       error_type=kind.value, status="error", session_id=getattr(self.session, "session_id", None))
        try:
            return bool(self.handlers[kind](record, recovery_action))
        except Exception as e:
            contextual_log('error', f"Recovery handler for {kind.value} failed: {e}", exc_info=True,
                           operation="handle_error", status="error")
            rich_error(f"{message}", "Recovery could not be completed; check the log for details.")
            return False

    def handle_github_exception(self, exc: GitHubError, context="general") -> bool:
        return self.handle_error(exc.kind, str(exc), exc.sub_kind.value, context)

    # auth
    def handle_auth_error(self, record, recovery_action=None) -> bool:
        rich_error(f"Authentication error: {record.message}", "Run 'gh auth login' to authenticate with GitHub.")
        if recovery_action == "retry_auth":
            return self._recheck_auth()
        print_status_line("info", "GitHub CLI authentication setup:")
        console.print("  1. Run: gh auth login")
        console.print("  2. Choose GitHub.com and HTTPS")
        console.print("  3. Authenticate in the browser or paste a token")
        console.print("  4. Verify with: gh auth status")
        if self.client is None:
            return False
        if prompt_confirm("Would you like to run 'gh auth login' now?", default=False):
            try:
                self.client.login()
            except GitHubError as e:
                rich_error(f"Login failed: {e}")
                return False
            return self._recheck_auth()
        return False

    def _recheck_auth(self) -> bool:
        if self.client is None:
            return False
        if self.client.auth_status():
            rich_success("GitHub CLI is authenticated")
            return True
        rich_warning("GitHub CLI is still not authenticated")
        return False

    # network
    def handle_network_error(self, record, recovery_action=None) -> bool:
        rich_error(f"Network error: {record.message}", "Check your internet connection and try again.")
        if recovery_action == "timeout":
            print_status_line("info", "The request timed out; GitHub may be slow or unreachable.")
        return self.offer_retry(record.context)

    def offer_retry(self, operation="operation") -> bool:
        """
        Offer another attempt while the session's attempt counter is below the cap.
        At the cap the counter is reset and the user is sent back to the main menu or out.
        """
        attempts = max(self.session.retry_attempts, 1)
        if attempts >= MAX_RETRY_ATTEMPTS:
            rich_error(f"Maximum retry attempts ({MAX_RETRY_ATTEMPTS}) reached for {operation}")
            self.session.retry_attempts = 0
            choice = prompt_select("What would you like to do?", choices=["Return to main menu", "Exit wizard"])
            if choice == "Exit wizard":
                self.session.exit_wizard()
            else:
                self.session.return_to_main()
            return False
        retry_now = f"Retry now (attempt {attempts + 1}/{MAX_RETRY_ATTEMPTS})"
        wait_retry = f"Wait and retry ({self.retry_delay}s delay)"
        choice = prompt_select("Retry options:", choices=[retry_now, wait_retry, "Return to main menu"])
        if choice == retry_now:
            return True
        if choice == wait_retry:
            print_status_line("progress", f"Waiting {self.retry_delay} seconds before retry...")
            self.sleep(self.retry_delay)
            return True
        self.session.return_to_main()
        return False

    # input
    def handle_input_error(self, record, recovery_action=None) -> bool:
        """recovery_action is 'menu_retry' or the validation kind that rejected the answer."""
        rich_warning(f"Invalid input: {record.message}")
        if recovery_action == "menu_retry":
            print_status_line("info", "Please choose one of the numbered options above.")
        elif recovery_action in INPUT_GUIDANCE:
            print_status_line("info", INPUT_GUIDANCE[recovery_action])
        else:
            print_status_line("info", "Input guidance:")
            for line in INPUT_GUIDANCE.values():
                console.print(f"  • {line}")
        return True

    # dependency
    def handle_dependency_error(self, record, recovery_action=None) -> bool:
        tool = recovery_action or self._missing_tool(record.message)
        rich_error(f"Missing dependency: {record.message}", "Install the missing tool and try again.")
        guide = INSTALL_GUIDES.get(tool)
        if guide:
            print_key_value(guide, title=f"Installing {tool}")
        else:
            rich_info("Check the tool's documentation for installation instructions.")
        return False

    @staticmethod
    def _missing_tool(message):
        lowered = (message or "").lower()
        for tool in INSTALL_GUIDES:
            if re.search(rf'\b{tool}\b', lowered):
                return tool
        return None

    # github
    def handle_github_error(self, record, recovery_action=None) -> bool:
        try:
            sub_kind = GitHubSubKind(recovery_action) if recovery_action else classify_failure(record.message)[1]
        except ValueError:
            sub_kind = classify_failure(record.message)[1]
        if sub_kind is GitHubSubKind.RATE_LIMIT:
            return self._handle_rate_limit(record)
        if sub_kind is GitHubSubKind.PERMISSIONS:
            return self._handle_permissions(record)
        if sub_kind is GitHubSubKind.NOT_FOUND:
            return self._handle_not_found(record)
        rich_error(f"GitHub API error: {record.message}", "Check 'gh auth status' and the repository settings.")
        return False

    def _handle_rate_limit(self, record) -> bool:
        rich_warning("GitHub API rate limit exceeded", "Rate limits reset every hour")
        if self.client is not None:
            try:
                limits = self.client.rate_limit()
                reset = datetime.fromtimestamp(int(limits.get("reset", 0))).strftime(TIMESTAMP_FORMAT)
                rich_info(f"Remaining: {limits.get('remaining')}/{limits.get('limit')}, Resets at: {reset}")
            except (GitHubError, ValueError, TypeError):
                rich_info("Unable to fetch rate limit details")
        minutes = max(self.rate_limit_delay // 60, 1)
        wait_label = f"Wait and retry in {minutes} minutes"
        choice = prompt_select("Options:", choices=[wait_label, "Return to main menu", "Exit wizard"])
        if choice == wait_label:
            print_status_line("progress", f"Waiting {minutes} minutes for rate limit reset...")
            self.sleep(self.rate_limit_delay)
            return True
        if choice == "Exit wizard":
            self.session.exit_wizard()
        else:
            self.session.return_to_main()
        return False

    def _handle_permissions(self, record) -> bool:
        rich_error(f"Insufficient permissions: {record.message}",
                   "Re-authenticate with broader scopes: gh auth refresh -s repo,project")
        console.print("  • Repository access permissions")
        console.print("  • GitHub token scope limitations")
        console.print("  • Organization restrictions")
        if self.client is None:
            return False
        if prompt_confirm("Would you like to try re-authenticating?", default=False):
            try:
                self.client.refresh_scopes(["repo", "project"])
            except GitHubError as e:
                rich_error(f"Re-authentication failed: {e}")
                return False
            rich_success("Re-authentication completed")
            return True
        return False

    def _handle_not_found(self, record) -> bool:
        rich_error(f"Resource not found: {record.message}")
        console.print("  • Incorrect issue/PR number")
        console.print("  • Resource was deleted")
        console.print("  • Insufficient permissions to view")
        return bool(prompt_confirm("Would you like to try a different resource?", default=True))

    # config
    def handle_config_error(self, record, recovery_action=None) -> bool:
        from ghwizard.config import create_basic_config, ConfigLoader, validate_environment
        rich_error(f"Configuration error: {record.message}")
        if recovery_action == "validate_config":
            problems = validate_environment(self.client, ConfigLoader())
            for problem in problems:
                print_status_line("warning", problem)
            return not problems
        choice = prompt_select("Configuration options:", choices=[
            "Create basic configuration", "Manual configuration guide", "Return to main menu"])
        if choice == "Create basic configuration":
            if os.path.exists(self.env_file) and not prompt_confirm(f"{self.env_file} exists. Overwrite it?", default=False):
                return False
            create_basic_config(self.env_file)
            rich_success(f"Created {self.env_file}")
            return True
        if choice == "Manual configuration guide":
            print_key_value([
                ("ENABLE_LOGGING", "true/false"),
                ("LOG_LEVEL", "DEBUG, INFO, WARN or ERROR"),
                ("LOG_FILE", "path of the log file"),
                ("PROJECT_URL", "https://github.com/orgs/OWNER/projects/N"),
            ], title=f"Add these to {self.env_file}")
            return False
        self.session.return_to_main()
        return False

    # unknown
    def handle_generic_error(self, record, recovery_action=None) -> bool:
        rich_error(f"Error: {record.message}", f"Details were written to {self.error_log.path}")
        return False

    def execute_with_retry(self, name, func, *args, **kwargs):
        """
        Run func, retrying through the recovery handlers up to MAX_RETRY_ATTEMPTS attempts.
        The attempt count lives on the session and is reset when the operation finishes.
        Returns:
            tuple: (ok, result). result is None when ok is False.
        """
        self.session.retry_attempts = 0
        while True:
            self.session.retry_attempts += 1
            try:
                result = func(*args, **kwargs)
            except GitHubError as exc:
                contextual_log('warning', f"{name} failed (attempt {self.session.retry_attempts}/{MAX_RETRY_ATTEMPTS}): {exc}",
                               operation=name, status="retry", retry_count=self.session.retry_attempts)
                exhausted = self.session.retry_attempts >= MAX_RETRY_ATTEMPTS
                retry = self.handle_github_exception(exc, context=name)
                if retry and not exhausted:
                    continue
                self.session.retry_attempts = 0
                return False, None
            self.session.retry_attempts = 0
            return True, result
