"""
github_client.py

GitHub access for the wizard and the companion scripts.

GitHubClient is the interface every workflow talks to. GhCliClient implements it by running
the `gh` and `git` binaries; tests substitute an in-memory implementation. Every failure
surfaces as a classified GitHubError.
"""
import json
import re
import shutil
import subprocess
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ghwizard.errors import GitHubError, ErrorKind, GitHubSubKind, classify_failure
from ghwizard.utils.decorators import timed
from ghwizard.utils.fields import DIGITS
from ghwizard.utils.logging import contextual_log

PROJECT_URL_RE = re.compile(r'^https://github\.com/(?P<scope>orgs|users)/(?P<owner>[^/]+)/projects/(?P<number>[0-9]+)/?$')

ADD_SUB_ISSUE_MUTATION = """
mutation($parentId: ID!, $childId: ID!) {
  addSubIssue(input: {issueId: $parentId, subIssueId: $childId}) {
    issue { number }
    subIssue { number }
  }
}
"""

ISSUE_COUNTS_QUERY = """
query($owner: String!, $name: String!) {
  repository(owner: $owner, name: $name) {
    open: issues(states: OPEN) { totalCount }
    closed: issues(states: CLOSED) { totalCount }
  }
}
"""


@dataclass
class RepoContext:
    owner: str
    name: str
    branch: str = ""
    authenticated: bool = False
    default_branch: str = "main"

    @property
    def full_name(self):
        return f"{self.owner}/{self.name}"

    @property
    def url(self):
        return f"https://github.com/{self.owner}/{self.name}"


@dataclass
class IssueRef:
    number: int
    url: str = ""
    node_id: Optional[str] = None


def parse_project_url(project_url):
    """
    Split a GitHub Projects URL into (owner, project_number).
    Raises GitHubError(kind=CONFIG) for anything that is not a project URL.
    """
    match = PROJECT_URL_RE.match((project_url or "").strip())
    if not match:
        raise GitHubError(f"Invalid project URL: {project_url}", kind=ErrorKind.CONFIG)
    return match.group("owner"), int(match.group("number"))


def issue_number_from_url(url):
    """gh prints the new issue URL; its last path segment is the issue number."""
    tail = (url or "").strip().rstrip("/").rsplit("/", 1)[-1]
    if not DIGITS.fullmatch(tail):
        raise GitHubError(f"Could not determine issue number from output: {url!r}")
    return int(tail)


class GitHubClient:
    """
    Operations the wizard needs from GitHub and git. Subclasses implement every method.
    """

    def is_installed(self, tool: str) -> bool:
        raise NotImplementedError

    def auth_status(self) -> bool:
        raise NotImplementedError

    def login(self) -> None:
        raise NotImplementedError

    def refresh_scopes(self, scopes: List[str]) -> None:
        raise NotImplementedError

    def rate_limit(self) -> Dict[str, Any]:
        raise NotImplementedError

    def current_user(self) -> str:
        raise NotImplementedError

    def repo_context(self) -> RepoContext:
        raise NotImplementedError

    def create_issue(self, title, body, labels=None, milestone=None) -> IssueRef:
        raise NotImplementedError

    def view_issue(self, number) -> Dict[str, Any]:
        raise NotImplementedError

    def edit_issue(self, number, title=None, body=None, add_labels=None) -> bool:
        raise NotImplementedError

    def close_issue(self, number, comment=None) -> None:
        raise NotImplementedError

    def reopen_issue(self, number) -> None:
        raise NotImplementedError

    def list_issues(self, state="open", limit=30, label=None) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def issue_counts(self) -> Dict[str, int]:
        raise NotImplementedError

    def list_pull_requests(self, state="all", limit=5) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def issue_node_id(self, number) -> str:
        raise NotImplementedError

    def add_sub_issue(self, parent_node_id, child_node_id) -> None:
        raise NotImplementedError

    def add_to_project(self, project_url, issue_url) -> None:
        raise NotImplementedError

    def project_view(self, project_url) -> Dict[str, Any]:
        raise NotImplementedError

    def in_git_repo(self) -> bool:
        raise NotImplementedError

    def latest_version_tag(self) -> Optional[str]:
        raise NotImplementedError

    def commits_since(self, tag=None) -> List[str]:
        raise NotImplementedError

    def working_tree_clean(self) -> bool:
        raise NotImplementedError

    def unpushed_commits(self) -> int:
        raise NotImplementedError

    def generate_release_notes(self, tag, previous_tag=None) -> str:
        raise NotImplementedError

    def create_release(self, tag, title, notes, prerelease=False, draft=False) -> str:
        raise NotImplementedError

    def link_issues(self, parent_number, child_number) -> None:
        """Make child a sub-issue of parent, resolving both node ids first."""
        parent_id = self.issue_node_id(parent_number)
        child_id = self.issue_node_id(child_number)
        self.add_sub_issue(parent_id, child_id)

    def issue_exists(self, number) -> bool:
        try:
            self.view_issue(number)
        except GitHubError as e:
            if e.sub_kind is GitHubSubKind.NOT_FOUND:
                return False
            raise
        return True


class GhCliClient(GitHubClient):
    """
    GitHubClient backed by the gh and git command line tools.

    Args:
        gh (str): gh executable.
        git (str): git executable.
        cwd (str, optional): working directory for every command.
        runner (callable): subprocess.run compatible; injected for tests.
    """

    def __init__(self, gh="gh", git="git", cwd=None, runner=subprocess.run):
        self.gh_bin = gh
        self.git_bin = git
        self.cwd = cwd
        self.runner = runner
        self._repo = None

    def _run(self, tool, args, check=True, capture=True):
        command = [tool, *[str(a) for a in args]]
        contextual_log('debug', f"Running: {' '.join(command[:4])}{' ...' if len(command) > 4 else ''}",
                       operation="subprocess")
        try:
            if capture:
                proc = self.runner(command, capture_output=True, text=True, cwd=self.cwd)
            else:
                proc = self.runner(command, cwd=self.cwd)
        except FileNotFoundError:
            raise GitHubError(f"{tool} is not installed or not on PATH", kind=ErrorKind.DEPENDENCY)
        if check and proc.returncode != 0:
            stderr = (getattr(proc, "stderr", "") or "").strip()
            message = stderr or f"{tool} {args[0] if args else ''} exited with status {proc.returncode}"
            kind, sub_kind = classify_failure(message, proc.returncode if tool == self.gh_bin else None)
            raise GitHubError(message, kind=kind, sub_kind=sub_kind, returncode=proc.returncode)
        return proc

    @timed("github_api")
    def gh(self, *args, json_output=False, check=True):
        proc = self._run(self.gh_bin, args, check=check)
        out = (proc.stdout or "").strip()
        if json_output:
            try:
                return json.loads(out) if out else {}
            except json.JSONDecodeError as e:
                raise GitHubError(f"Unexpected output from gh {args[0]}: {e}")
        return out

    @timed("git")
    def git(self, *args, check=True):
        proc = self._run(self.git_bin, args, check=check)
        return proc

    def is_installed(self, tool):
        return shutil.which(tool) is not None

    def auth_status(self):
        try:
            proc = self._run(self.gh_bin, ["auth", "status"], check=False)
        except GitHubError:
            return False
        return proc.returncode == 0

    def login(self):
        proc = self._run(self.gh_bin, ["auth", "login"], check=False, capture=False)
        if proc.returncode != 0:
            raise GitHubError("gh auth login did not complete", kind=ErrorKind.AUTH, returncode=proc.returncode)

    def refresh_scopes(self, scopes):
        proc = self._run(self.gh_bin, ["auth", "refresh", "-s", ",".join(scopes)], check=False, capture=False)
        if proc.returncode != 0:
            raise GitHubError("gh auth refresh failed", kind=ErrorKind.AUTH, returncode=proc.returncode)

    def rate_limit(self):
        return self.gh("api", "rate_limit", json_output=True).get("rate", {})

    def current_user(self):
        return self.gh("api", "user", json_output=True).get("login", "")

    def repo_context(self):
        if self._repo is None:
            data = self.gh("repo", "view", "--json", "owner,name,defaultBranchRef", json_output=True)
            branch = self.git("branch", "--show-current", check=False)
            self._repo = RepoContext(
                owner=(data.get("owner") or {}).get("login", ""),
                name=data.get("name", ""),
                branch=(branch.stdout or "").strip() if branch.returncode == 0 else "",
                authenticated=self.auth_status(),
                default_branch=(data.get("defaultBranchRef") or {}).get("name") or "main",
            )
        return self._repo

    def create_issue(self, title, body, labels=None, milestone=None):
        args = ["issue", "create", "--title", title, "--body", body]
        for label in labels or []:
            args += ["--label", label]
        if milestone:
            args += ["--milestone", milestone]
        lines = self.gh(*args).splitlines()
        url = lines[-1].strip() if lines else ""
        return IssueRef(number=issue_number_from_url(url), url=url)

    def view_issue(self, number):
        return self.gh("issue", "view", number, "--json", "number,title,body,state,labels,url", json_output=True)

    def edit_issue(self, number, title=None, body=None, add_labels=None):
        args = []
        if title:
            args += ["--title", title]
        if body is not None:
            args += ["--body", body]
        for label in add_labels or []:
            args += ["--add-label", label]
        if not args:
            return False
        self.gh("issue", "edit", number, *args)
        return True

    def close_issue(self, number, comment=None):
        args = ["issue", "close", number]
        if comment:
            args += ["--comment", comment]
        self.gh(*args)

    def reopen_issue(self, number):
        self.gh("issue", "reopen", number)

    def list_issues(self, state="open", limit=30, label=None):
        args = ["issue", "list", "--state", state, "--limit", limit, "--json", "number,title,state,updatedAt,url"]
        if label:
            args += ["--label", label]
        return self.gh(*args, json_output=True) or []

    def issue_counts(self):
        repo = self.repo_context()
        data = self.gh("api", "graphql", "-f", f"query={ISSUE_COUNTS_QUERY}",
                       "-f", f"owner={repo.owner}", "-f", f"name={repo.name}", json_output=True)
        repository = (data.get("data") or {}).get("repository") or {}
        return {
            "open": (repository.get("open") or {}).get("totalCount", 0),
            "closed": (repository.get("closed") or {}).get("totalCount", 0),
        }

    def list_pull_requests(self, state="all", limit=5):
        return self.gh("pr", "list", "--state", state, "--limit", limit,
                       "--json", "number,title,state,updatedAt,url", json_output=True) or []

    def issue_node_id(self, number):
        node_id = self.gh("issue", "view", number, "--json", "id", json_output=True).get("id")
        if not node_id:
            raise GitHubError(f"Issue #{number} not found", sub_kind=GitHubSubKind.NOT_FOUND)
        return node_id

    def add_sub_issue(self, parent_node_id, child_node_id):
        data = self.gh("api", "graphql", "-H", "GraphQL-Features: sub_issues",
                       "-f", f"query={ADD_SUB_ISSUE_MUTATION}",
                       "-f", f"parentId={parent_node_id}", "-f", f"childId={child_node_id}", json_output=True)
        if data.get("errors"):
            message = "; ".join(e.get("message", "") for e in data["errors"])
            kind, sub_kind = classify_failure(message)
            raise GitHubError(f"Failed to create sub-issue relationship: {message}", kind=kind, sub_kind=sub_kind)

    def add_to_project(self, project_url, issue_url):
        owner, number = parse_project_url(project_url)
        self.gh("project", "item-add", number, "--owner", owner, "--url", issue_url)

    def project_view(self, project_url):
        owner, number = parse_project_url(project_url)
        return self.gh("project", "view", number, "--owner", owner, "--format", "json", json_output=True)

    def in_git_repo(self):
        try:
            return self.git("rev-parse", "--is-inside-work-tree", check=False).returncode == 0
        except GitHubError:
            return False

    def latest_version_tag(self):
        proc = self.git("describe", "--tags", "--abbrev=0", "--match", "v*", check=False)
        tag = (proc.stdout or "").strip()
        return tag if proc.returncode == 0 and tag else None

    def commits_since(self, tag=None):
        revision = f"{tag}..HEAD" if tag else "HEAD"
        proc = self.git("log", revision, "--pretty=format:%s", check=False)
        if proc.returncode != 0:
            return []
        return [line for line in (proc.stdout or "").splitlines() if line.strip()]

    def working_tree_clean(self):
        return (self.git("status", "--porcelain").stdout or "").strip() == ""

    def unpushed_commits(self):
        proc = self.git("rev-list", "--count", "@{u}..HEAD", check=False)
        if proc.returncode != 0:
            return 0
        return int((proc.stdout or "0").strip() or 0)

    def generate_release_notes(self, tag, previous_tag=None):
        repo = self.repo_context()
        args = ["api", f"repos/{repo.owner}/{repo.name}/releases/generate-notes", "-f", f"tag_name={tag}"]
        if previous_tag:
            args += ["-f", f"previous_tag_name={previous_tag}"]
        return self.gh(*args, json_output=True).get("body", "")

    def create_release(self, tag, title, notes, prerelease=False, draft=False):
        args = ["release", "create", tag, "--title", title, "--notes", notes]
        if prerelease:
            args.append("--prerelease")
        if draft:
            args.append("--draft")
        return self.gh(*args)
