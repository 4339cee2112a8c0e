"""
wizard_core.py

Session state and menu navigation for the interactive wizard.

A WizardSession is the single mutable record of a wizard run: which menu is showing, how the
user got there, whether the loop is still running, and what the last workflow left behind.
It is created at startup, passed explicitly to every workflow, and discarded at exit.
"""
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ghwizard.errors import ErrorKind
from ghwizard.utils.fields import DIGITS, parse_range
from ghwizard.utils.logging import contextual_log
from ghwizard.utils.validation_utils import check_input
from ghwizard.utils.rich_prompt import rich_warning

MAIN_MENU = "main"


@dataclass(frozen=True)
class Menu:
    name: str
    title: str
    options: Tuple[Tuple[int, str], ...]

    @property
    def range_spec(self):
        return f"1-{len(self.options)}"

    def label(self, key):
        return dict(self.options).get(key)


MENUS: Dict[str, Menu] = {
    "main": Menu("main", "GitHub Issue Manager Wizard", (
        (1, "Status Dashboard"),
        (2, "Release Wizard"),
        (3, "Issue Management"),
        (4, "Configuration"),
        (5, "Exit"),
    )),
    "status": Menu("status", "Status Dashboard", (
        (1, "Repository Status"),
        (2, "Issue Summary"),
        (3, "Recent Activity"),
        (4, "Project Board Status"),
        (5, "Return to Main Menu"),
    )),
    "release": Menu("release", "Release Management", (
        (1, "Release Wizard (Create/Manage Releases)"),
        (2, "View Current Version Information"),
        (3, "Check Release Prerequisites"),
        (4, "Return to Main Menu"),
    )),
    "issue": Menu("issue", "Issue Management", (
        (1, "Create Issue"),
        (2, "Update Issue"),
        (3, "Link Issues"),
        (4, "Bulk Operations"),
        (5, "Return to Main Menu"),
    )),
    "config": Menu("config", "Configuration", (
        (1, "View Configuration"),
        (2, "Update Settings"),
        (3, "Test GitHub CLI"),
        (4, "Error Log"),
        (5, "Return to Main Menu"),
    )),
}


class WorkflowKind(str, Enum):
    STATUS = "status"
    ISSUE = "issue"
    RELEASE = "release"
    CONFIG = "config"


@dataclass
class WizardSession:
    session_id: str = field(default_factory=lambda: f"wizard_{int(time.time())}")
    start_time: datetime = field(default_factory=lambda: datetime.now().replace(microsecond=0))
    current_menu: str = MAIN_MENU
    history: List[str] = field(default_factory=list)
    running: bool = True
    current_workflow: str = ""
    workflow_context: str = ""
    last_operation: str = ""
    operation_result: str = ""
    retry_attempts: int = 0
    last_created_issue: Optional[int] = None
    last_updated_issue: Optional[int] = None
    next_version: Optional[str] = None
    scratch: Dict[str, Any] = field(default_factory=dict)

    @property
    def state(self):
        """Current menu name, or 'exited' once exit_wizard has run."""
        return self.current_menu if self.running else "exited"

    def navigate_to_section(self, section):
        if section not in MENUS:
            raise ValueError(f"Unknown menu: {section}")
        self.history.append(self.current_menu)
        self.current_menu = section
        contextual_log('debug', f"Navigated to {section}", operation="navigate", session_id=self.session_id)

    def return_to_main(self):
        self.history.clear()
        self.current_menu = MAIN_MENU

    def navigate_back(self):
        if self.history:
            self.current_menu = self.history.pop()
        else:
            self.current_menu = MAIN_MENU

    def exit_wizard(self):
        self.running = False
        contextual_log('info', "Wizard exit requested", operation="exit_wizard", session_id=self.session_id)

    def reset(self):
        """Return every field to its initial value, keeping the session identity."""
        self.current_menu = MAIN_MENU
        self.history = []
        self.running = True
        self.current_workflow = ""
        self.workflow_context = ""
        self.last_operation = ""
        self.operation_result = ""
        self.retry_attempts = 0
        self.last_created_issue = None
        self.last_updated_issue = None
        self.next_version = None
        self.scratch = {}


@dataclass
class WizardContext:
    """Everything a workflow needs, passed as one argument."""
    session: WizardSession
    client: Any
    config: Any
    errors: Any


def init_wizard_core(session=None):
    session = session or WizardSession()
    session.reset()
    contextual_log('info', f"Wizard core initialized (Session: {session.session_id})", operation="init_wizard_core",
                   session_id=session.session_id)
    return session


def cleanup_wizard_core(session):
    session.reset()
    contextual_log('info', "Wizard core cleaned up", operation="cleanup_wizard_core", session_id=session.session_id)
    return session


INPUT_EMPTY = "empty"
INPUT_NOT_NUMERIC = "non_numeric"
INPUT_OUT_OF_RANGE = "out_of_range"


@dataclass(frozen=True)
class InputResult:
    ok: bool
    value: Optional[int] = None
    reason: Optional[str] = None
    message: Optional[str] = None

    def __bool__(self):
        return self.ok


def handle_user_input(raw, allowed_range, context, error_handler=None):
    """
    Validate one menu keystroke against an inclusive 'min-max' range.

    Rejections are reported to the input recovery handler (when one is given) and leave the
    session untouched; the caller decides whether to prompt again.

    Returns:
        InputResult: truthy with the parsed integer, or falsy with a reason of
        'empty', 'non_numeric' or 'out_of_range'.
    """
    parse_range(allowed_range)
    text = "" if raw is None else str(raw).strip()
    ok, value, message = check_input("menu_option", text, range_spec=allowed_range)
    if ok:
        return InputResult(True, value)
    if not text:
        reason = INPUT_EMPTY
    elif not DIGITS.fullmatch(text):
        reason = INPUT_NOT_NUMERIC
    else:
        reason = INPUT_OUT_OF_RANGE
    if error_handler is not None:
        error_handler.handle_error(ErrorKind.INPUT, message, "menu_retry", context)
    return InputResult(False, None, reason, message)


def execute_workflow(ctx, kind, action=None, registry=None):
    """
    Dispatch to the workflow registered for (kind, action) and record the outcome on the session.

    Args:
        ctx (WizardContext): session, client, config and error handler.
        kind (str | WorkflowKind): status, issue, release or config.
        action (str, optional): the workflow step within kind, e.g. 'create'.
        registry (dict, optional): {(WorkflowKind, action): callable(ctx)}; the feature
            registry when omitted.
    Returns:
        bool: True when the workflow succeeded.
    """
    session = ctx.session
    if registry is None:
        from ghwizard.features import WORKFLOW_REGISTRY
        registry = WORKFLOW_REGISTRY
    try:
        kind = WorkflowKind(kind)
    except ValueError:
        rich_warning(f"Unknown workflow type: {kind}")
        contextual_log('warning', f"Unknown workflow type: {kind}", operation="execute_workflow", status="error",
                       session_id=session.session_id)
        session.operation_result = "error"
        return False
    workflow = registry.get((kind, action))
    session.current_workflow = kind.value
    session.workflow_context = action or ""
    if workflow is None:
        rich_warning(f"Unknown {kind.value} workflow: {action}")
        session.last_operation = f"{kind.value}:{action}"
        session.operation_result = "error"
        return False
    ok = False
    try:
        ok = workflow(ctx) is not False
    finally:
        session.last_operation = f"{kind.value}:{action}"
        session.operation_result = "success" if ok else "error"
        contextual_log('info', f"Workflow {session.last_operation} finished: {session.operation_result}",
                       operation="execute_workflow", workflow=kind.value, status=session.operation_result,
                       session_id=session.session_id)
    return ok
