import pytest

from ghwizard import issue_manager
from ghwizard.errors import ErrorKind, GitHubError, ValidationFailure
from ghwizard.issues import bulk_create_issues, parse_files_to_create, update_issue

PROJECT = "https://github.com/orgs/acme/projects/3"

PLAN_BODY = """## Plan

Split the exporter into modules.

## Files to Create

- `src/export/csv.py`
- [ ] src/export/json.py
* src/export/csv.py

## Notes
- not-a-file.txt
"""


@pytest.fixture
def run(fake_client, config_factory):
    def invoke(*argv, environ=None):
        return issue_manager.main(list(argv), client=fake_client, config_loader=lambda: config_factory(environ=environ))
    return invoke


def test_help_exits_zero(run, capsys):
    assert run("--help") == 0
    assert "PROCESS_FILES" in capsys.readouterr().out


def test_no_arguments_prints_usage_and_fails(run, capsys):
    assert run() == 1
    assert "Usage:" in capsys.readouterr().out


def test_blank_argument_rejected(run, fake_client):
    assert run("Parent", "   ", "Child", "Body") == 1
    assert fake_client.called("create_issue") == []


def test_wrong_argument_count_rejected(run, fake_client):
    assert run("Parent", "Body", "Child") == 1
    assert fake_client.called("create_issue") == []


def test_create_parent_and_child(run, fake_client, capsys):
    assert run("Epic", "Epic body", "Task", "Task body") == 0
    assert [fake_client.issues[n]["title"] for n in (1, 2)] == ["Epic", "Task"]
    assert fake_client.links == [("I_1", "I_2")]
    assert "Successfully created parent issue #1 and child issue #2" in capsys.readouterr().out


def test_create_adds_both_to_project(run, fake_client):
    assert run("Epic", "b", "Task", "b", environ={"PROJECT_URL": PROJECT}) == 0
    assert fake_client.project_items == [fake_client.issues[1]["url"], fake_client.issues[2]["url"]]


def test_link_and_project_failures_are_warnings(run, fake_client):
    fake_client.fail["add_sub_issue"] = GitHubError("GraphQL: Field 'addSubIssue' doesn't exist")
    fake_client.fail["add_to_project"] = GitHubError("HTTP 403: Resource not accessible", kind=ErrorKind.GITHUB)
    assert run("Epic", "b", "Task", "b", environ={"PROJECT_URL": PROJECT}) == 0
    assert len(fake_client.issues) == 2


@pytest.mark.parametrize("kind, code", [(ErrorKind.GITHUB, 1), (ErrorKind.NETWORK, 3), (ErrorKind.AUTH, 2)])
def test_creation_failure_exit_codes(run, fake_client, kind, code):
    fake_client.fail["create_issue"] = GitHubError("failed", kind=kind)
    assert run("Epic", "b", "Task", "b") == code


def test_missing_gh(run, fake_client):
    fake_client.installed = {"git"}
    assert run("Epic", "b", "Task", "b") == 1


def test_unauthenticated(run, fake_client):
    fake_client.authenticated = False
    assert run("Epic", "b", "Task", "b") == 2
    assert fake_client.called("create_issue") == []


def test_update_state_and_labels(run, fake_client):
    number = fake_client.add_issue("Bug")
    assert run("UPDATE", str(number), "--state", "closed", "--add-label", "bug", "--add-label", "p1") == 0
    issue = fake_client.issues[number]
    assert issue["state"] == "CLOSED"
    assert [l["name"] for l in issue["labels"]] == ["bug", "p1"]


def test_update_without_changes_is_a_noop(run, fake_client):
    number = fake_client.add_issue("Bug")
    assert run("UPDATE", str(number)) == 0
    assert fake_client.called("edit_issue") == []


def test_update_invalid_number(run):
    assert run("UPDATE", "abc", "--title", "x") == 1


def test_update_invalid_state_is_a_usage_error(run, fake_client):
    number = fake_client.add_issue("Bug")
    with pytest.raises(SystemExit) as exc:
        run("UPDATE", str(number), "--state", "merged")
    assert exc.value.code == 1


def test_update_missing_issue(run):
    assert run("UPDATE", "99", "--title", "x") == 3


def test_parse_files_to_create():
    assert parse_files_to_create(PLAN_BODY) == ["src/export/csv.py", "src/export/json.py"]
    assert parse_files_to_create("Nothing here") == []
    assert parse_files_to_create("**Files to Create:**\\n- a.py\\n- b.py") == ["a.py", "b.py"]


def test_process_files_creates_linked_issues(run, fake_client):
    parent = fake_client.add_issue("Exporter", PLAN_BODY)
    assert run("PROCESS_FILES", str(parent)) == 0
    assert fake_client.issues[2]["title"] == "Create src/export/csv.py"
    assert fake_client.issues[3]["body"] == "Create `src/export/json.py`.\n\nPart of #1"
    assert fake_client.links == [("I_1", "I_2"), ("I_1", "I_3")]
    body = fake_client.issues[parent]["body"]
    assert body.endswith("## Created Issues\n\n- [ ] #2 src/export/csv.py\n- [ ] #3 src/export/json.py\n")


def test_process_files_without_section(run, fake_client):
    parent = fake_client.add_issue("Plain", "no list")
    assert run("PROCESS_FILES", str(parent)) == 0
    assert fake_client.called("create_issue") == []


def test_process_files_all_failed(run, fake_client):
    parent = fake_client.add_issue("Exporter", PLAN_BODY)
    fake_client.fail["create_issue"] = GitHubError("HTTP 500")
    assert run("PROCESS_FILES", str(parent)) == 1
    assert fake_client.issues[parent]["body"] == PLAN_BODY


def test_process_files_needs_one_number(run):
    assert run("PROCESS_FILES") == 1
    assert run("PROCESS_FILES", "1", "2") == 1


def test_update_issue_rejects_unknown_state(fake_client):
    number = fake_client.add_issue("Bug")
    with pytest.raises(ValidationFailure):
        update_issue(fake_client, number, state="merged")
    assert fake_client.called("edit_issue") == []


def test_bulk_create_links_to_parent(fake_client):
    parent = fake_client.add_issue("Epic")
    created = bulk_create_issues(fake_client, 3, "Spike", parent=parent)
    assert [i.number for i in created] == [2, 3, 4]
    assert fake_client.issues[4]["body"] == "Auto-generated issue 3 of 3\n\nRelated to #1"
    assert len(fake_client.links) == 3
    with pytest.raises(ValidationFailure):
        bulk_create_issues(fake_client, 11, "Spike")


@pytest.mark.parametrize("argv", [
    ("Parent", "  ", "Child", "body"),
    ("Parent", "body", "Child"),
    ("UPDATE", "abc", "--title", "x"),
    ("PROCESS_FILES", "0"),
])
def test_bad_arguments_exit_one_before_auth_check(run, fake_client, argv):
    fake_client.authenticated = False
    fake_client.installed = set()
    assert run(*argv) == 1
    assert fake_client.called("create_issue") == []


def test_partial_success_is_logged(run, fake_client, tmp_path):
    fake_client.fail["add_sub_issue"] = GitHubError("Field 'addSubIssue' doesn't exist")
    log_file = tmp_path / "im.log"
    assert run("Epic", "b", "Task", "b", environ={"ENABLE_LOGGING": "true", "LOG_FILE": str(log_file)}) == 0
    assert "Issues created with warnings" in log_file.read_text()
