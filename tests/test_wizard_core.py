import pytest

from ghwizard.wizard_core import (
    INPUT_EMPTY, INPUT_NOT_NUMERIC, INPUT_OUT_OF_RANGE, MENUS, WizardSession, WorkflowKind,
    cleanup_wizard_core, execute_workflow, handle_user_input, init_wizard_core,
)


def test_initial_state():
    session = WizardSession()
    assert session.state == "main"
    assert session.history == []
    assert session.running


def test_navigate_and_return():
    session = WizardSession()
    session.navigate_to_section("status")
    assert session.state == "status"
    assert session.history == ["main"]
    session.return_to_main()
    assert session.state == "main"
    assert session.history == []


def test_navigate_back_pops_history():
    session = WizardSession()
    session.navigate_to_section("issue")
    session.navigate_to_section("config")
    session.navigate_back()
    assert session.current_menu == "issue"
    session.navigate_back()
    session.navigate_back()
    assert session.current_menu == "main"


def test_unknown_section_rejected():
    session = WizardSession()
    with pytest.raises(ValueError):
        session.navigate_to_section("settings")
    assert session.state == "main"


def test_exit_wizard():
    session = WizardSession()
    session.navigate_to_section("release")
    session.exit_wizard()
    assert session.state == "exited"
    assert not session.running


def test_init_and_cleanup_reset_fields():
    session = WizardSession()
    session.navigate_to_section("issue")
    session.last_created_issue = 12
    session.scratch["x"] = 1
    init_wizard_core(session)
    assert (session.state, session.last_created_issue, session.scratch) == ("main", None, {})
    session.exit_wizard()
    cleanup_wizard_core(session)
    assert session.running


def test_menus_end_with_exit_or_return():
    assert MENUS["main"].options[-1] == (5, "Exit")
    for name in ("status", "release", "issue", "config"):
        assert MENUS[name].options[-1][1] == "Return to Main Menu"
    assert MENUS["release"].range_spec == "1-4"


def test_valid_input():
    result = handle_user_input(" 3 ", "1-5", "main_menu")
    assert result
    assert result.value == 3


@pytest.mark.parametrize("raw, reason", [
    ("", INPUT_EMPTY),
    (None, INPUT_EMPTY),
    ("abc", INPUT_NOT_NUMERIC),
    ("-1", INPUT_NOT_NUMERIC),
    ("²", INPUT_NOT_NUMERIC),
    ("３", INPUT_NOT_NUMERIC),
    ("0", INPUT_OUT_OF_RANGE),
    ("6", INPUT_OUT_OF_RANGE),
])
def test_invalid_input_reasons(raw, reason):
    result = handle_user_input(raw, "1-5", "main_menu")
    assert not result
    assert result.reason == reason
    assert result.message


def test_invalid_input_reported_without_changing_menu(session, error_handler):
    session.navigate_to_section("status")
    result = handle_user_input("abc", "1-5", "status_menu", error_handler)
    assert result.reason == "non_numeric"
    assert session.state == "status"
    assert session.history == ["main"]
    records = error_handler.error_log.records()
    assert [(r.kind.value, r.context) for r in records] == [("input", "status_menu")]


def test_bad_range_spec_raises():
    with pytest.raises(ValueError):
        handle_user_input("1", "five", "main_menu")


def test_execute_workflow_records_outcome(ctx):
    seen = []
    registry = {(WorkflowKind.STATUS, "repository"): lambda c: seen.append(c) or True}
    assert execute_workflow(ctx, "status", "repository", registry=registry)
    assert seen == [ctx]
    assert ctx.session.last_operation == "status:repository"
    assert ctx.session.operation_result == "success"
    assert ctx.session.current_workflow == "status"


def test_cancelled_workflow_counts_as_success(ctx):
    registry = {(WorkflowKind.ISSUE, "create"): lambda c: None}
    assert execute_workflow(ctx, WorkflowKind.ISSUE, "create", registry=registry)


def test_failed_workflow(ctx):
    registry = {(WorkflowKind.RELEASE, "wizard"): lambda c: False}
    assert not execute_workflow(ctx, "release", "wizard", registry=registry)
    assert ctx.session.operation_result == "error"


def test_raising_workflow_still_records_error(ctx):
    def boom(c):
        raise RuntimeError("boom")
    with pytest.raises(RuntimeError):
        execute_workflow(ctx, "config", "view", registry={(WorkflowKind.CONFIG, "view"): boom})
    assert ctx.session.operation_result == "error"


def test_unknown_workflow_kind(ctx):
    assert execute_workflow(ctx, "deploy", "now", registry={}) is False
    assert ctx.session.operation_result == "error"


def test_unknown_action(ctx):
    assert execute_workflow(ctx, "status", "nothing", registry={}) is False
    assert ctx.session.last_operation == "status:nothing"


def test_default_registry_covers_every_menu_option():
    from ghwizard.features import MENU_ACTIONS, WORKFLOW_REGISTRY
    for name in ("status", "release", "issue", "config"):
        options = [key for key, _ in MENUS[name].options[:-1]]
        for option in options:
            action = MENU_ACTIONS[(name, option)]
            assert (WorkflowKind(name), action) in WORKFLOW_REGISTRY
