import pytest

from ghwizard.cli_logging_setup import reset_logging
from ghwizard.config import ConfigLoader
from ghwizard.errors import ErrorHandler, ErrorLog, GitHubError, GitHubSubKind
from ghwizard.github_client import GitHubClient, IssueRef, RepoContext
from ghwizard.wizard_core import WizardContext, WizardSession

REPO_URL = "https://github.com/acme/widgets"


class FakeGitHubClient(GitHubClient):
    """In-memory GitHubClient. Every call is recorded in .calls; .fail maps a method name to the error it raises."""

    def __init__(self):
        self.calls = []
        self.fail = {}
        self.installed = {"gh", "git"}
        self.authenticated = True
        self.repo = RepoContext(owner="acme", name="widgets", branch="main", authenticated=True)
        self.issues = {}
        self.next_number = 1
        self.links = []
        self.project_items = []
        self.pulls = []
        self.latest_tag = None
        self.commits = []
        self.clean = True
        self.unpushed = 0
        self.releases = []
        self.release_notes = ""

    def _call(self, name, *args):
        self.calls.append((name, args))
        if name in self.fail:
            raise self.fail[name]

    def called(self, name):
        return [args for call, args in self.calls if call == name]

    def add_issue(self, title, body="", state="OPEN", labels=None):
        number = self.next_number
        self.next_number += 1
        self.issues[number] = {
            "number": number,
            "title": title,
            "body": body,
            "state": state,
            "labels": [{"name": l} for l in labels or []],
            "url": f"{REPO_URL}/issues/{number}",
        }
        return number

    def _issue(self, number):
        issue = self.issues.get(int(number))
        if issue is None:
            raise GitHubError(f"HTTP 404: Could not resolve to an issue with the number of {number}",
                              sub_kind=GitHubSubKind.NOT_FOUND)
        return issue

    def is_installed(self, tool):
        return tool in self.installed

    def auth_status(self):
        return self.authenticated

    def login(self):
        self._call("login")
        self.authenticated = True

    def refresh_scopes(self, scopes):
        self._call("refresh_scopes", tuple(scopes))

    def rate_limit(self):
        self._call("rate_limit")
        return {"limit": 5000, "remaining": 4999, "reset": 0}

    def current_user(self):
        self._call("current_user")
        return "octocat"

    def repo_context(self):
        self._call("repo_context")
        return self.repo

    def create_issue(self, title, body, labels=None, milestone=None):
        self._call("create_issue", title, body, labels)
        number = self.add_issue(title, body, labels=labels)
        return IssueRef(number=number, url=self.issues[number]["url"], node_id=f"I_{number}")

    def view_issue(self, number):
        self._call("view_issue", number)
        return dict(self._issue(number))

    def edit_issue(self, number, title=None, body=None, add_labels=None):
        self._call("edit_issue", number, title, body, add_labels)
        issue = self._issue(number)
        if not (title or body is not None or add_labels):
            return False
        if title:
            issue["title"] = title
        if body is not None:
            issue["body"] = body
        for label in add_labels or []:
            issue["labels"].append({"name": label})
        return True

    def close_issue(self, number, comment=None):
        self._call("close_issue", number, comment)
        self._issue(number)["state"] = "CLOSED"

    def reopen_issue(self, number):
        self._call("reopen_issue", number)
        self._issue(number)["state"] = "OPEN"

    def list_issues(self, state="open", limit=30, label=None):
        self._call("list_issues", state, limit, label)
        found = [i for i in self.issues.values()
                 if state == "all" or i["state"].lower() == state]
        if label:
            found = [i for i in found if any(l["name"] == label for l in i["labels"])]
        return found[:limit]

    def issue_counts(self):
        self._call("issue_counts")
        states = [i["state"].lower() for i in self.issues.values()]
        return {"open": states.count("open"), "closed": states.count("closed")}

    def list_pull_requests(self, state="all", limit=5):
        self._call("list_pull_requests", state, limit)
        return self.pulls[:limit]

    def issue_node_id(self, number):
        self._call("issue_node_id", number)
        self._issue(number)
        return f"I_{number}"

    def add_sub_issue(self, parent_node_id, child_node_id):
        self._call("add_sub_issue", parent_node_id, child_node_id)
        self.links.append((parent_node_id, child_node_id))

    def add_to_project(self, project_url, issue_url):
        self._call("add_to_project", project_url, issue_url)
        self.project_items.append(issue_url)

    def project_view(self, project_url):
        self._call("project_view", project_url)
        return {"title": "Roadmap", "items": {"totalCount": len(self.project_items)}}

    def in_git_repo(self):
        return True

    def latest_version_tag(self):
        return self.latest_tag

    def commits_since(self, tag=None):
        return list(self.commits)

    def working_tree_clean(self):
        return self.clean

    def unpushed_commits(self):
        return self.unpushed

    def generate_release_notes(self, tag, previous_tag=None):
        self._call("generate_release_notes", tag, previous_tag)
        return self.release_notes

    def create_release(self, tag, title, notes, prerelease=False, draft=False):
        self._call("create_release", tag, title, notes, prerelease, draft)
        self.releases.append({"tag": tag, "title": title, "notes": notes, "prerelease": prerelease, "draft": draft})
        return f"{REPO_URL}/releases/tag/{tag}"


@pytest.fixture(autouse=True)
def isolated_logging():
    yield
    reset_logging()


@pytest.fixture
def fake_client():
    return FakeGitHubClient()


@pytest.fixture
def session():
    return WizardSession()


@pytest.fixture
def config_factory(tmp_path):
    """Build a ConfigLoader isolated from the real environment and working directory."""
    def build(environ=None, env_text=None, env_local_text=None, yaml_text=None):
        env_file = tmp_path / ".env"
        env_local = tmp_path / ".env.local"
        yaml_file = tmp_path / "ghwizard.yaml"
        if env_text is not None:
            env_file.write_text(env_text)
        if env_local_text is not None:
            env_local.write_text(env_local_text)
        if yaml_text is not None:
            yaml_file.write_text(yaml_text)
        return ConfigLoader(config_path=str(yaml_file), env_file=str(env_file),
                            env_local_file=str(env_local), environ=dict(environ or {}))
    return build


@pytest.fixture
def error_handler(session, fake_client, tmp_path):
    sleeps = []
    handler = ErrorHandler(session, client=fake_client, error_log=ErrorLog(str(tmp_path / "wizard-errors.log")),
                           env_file=str(tmp_path / ".env"), sleep=sleeps.append)
    handler.sleeps = sleeps
    return handler


@pytest.fixture
def ctx(session, fake_client, config_factory, error_handler):
    return WizardContext(session=session, client=fake_client, config=config_factory(), errors=error_handler)
