"""
issues.py

Issue operations shared by the issue manager script and the wizard's issue workflows.
Linking and project assignment are best-effort: their failures are logged as warnings and
reported through the returned flags, never raised.
"""
import re
from dataclasses import dataclass, field
from typing import List, Optional

from ghwizard.errors import GitHubError, ValidationFailure
from ghwizard.github_client import IssueRef
from ghwizard.utils.logging import contextual_log
from ghwizard.utils.rich_prompt import rich_warning

FILES_HEADING_RE = re.compile(r'^\s*(?:#{1,6}\s*)?\**Files to Create\s*:?\**\s*:?\s*$', re.IGNORECASE)
FILE_ITEM_RE = re.compile(r'^\s*[-*+]\s+(?:\[[ xX]\]\s+)?`?(?P<path>[^`\s][^`]*?)`?\s*$')
HEADING_RE = re.compile(r'^\s*#{1,6}\s+\S')
MAX_BULK_CREATE = 10


@dataclass
class LinkedIssueResult:
    parent: IssueRef
    child: IssueRef
    linked: bool = False
    added_to_project: Optional[bool] = None

    @property
    def fully_succeeded(self):
        return self.linked and self.added_to_project is not False


@dataclass
class ProcessFilesResult:
    parent: int
    files: List[str] = field(default_factory=list)
    created: List[IssueRef] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


def try_link(client, parent_number, child_number) -> bool:
    """Create the sub-issue relationship; a failure is a warning."""
    try:
        client.link_issues(parent_number, child_number)
    except GitHubError as e:
        rich_warning("Failed to create sub-issue relationship. Feature may not be available.", str(e))
        contextual_log('warning', f"Sub-issue link #{parent_number} -> #{child_number} failed: {e}",
                       operation="link_issues", status="error", error_type=e.kind.value)
        return False
    contextual_log('info', f"Linked #{child_number} as sub-issue of #{parent_number}", operation="link_issues", status="success")
    return True


def try_add_to_project(client, project_url, issue: IssueRef) -> Optional[bool]:
    """Add an issue to the project board. Returns None when no project is configured."""
    if not project_url:
        return None
    try:
        client.add_to_project(project_url, issue.url)
    except GitHubError as e:
        rich_warning(f"Failed to add issue #{issue.number} to project", str(e))
        contextual_log('warning', f"Project assignment of #{issue.number} failed: {e}", operation="add_to_project",
                       status="error", error_type=e.kind.value)
        return False
    contextual_log('info', f"Added #{issue.number} to project {project_url}", operation="add_to_project", status="success")
    return True


def create_linked_issues(client, parent_title, parent_body, child_title, child_body, project_url=None) -> LinkedIssueResult:
    """
    Create a parent and a child issue, link the child as a sub-issue, and add both to the
    project board when one is configured. Creation failures raise GitHubError.
    """
    parent = client.create_issue(parent_title, parent_body)
    contextual_log('info', f"Created parent issue #{parent.number}", operation="create_issue", status="success")
    child = client.create_issue(child_title, child_body)
    contextual_log('info', f"Created child issue #{child.number}", operation="create_issue", status="success")
    result = LinkedIssueResult(parent=parent, child=child)
    result.linked = try_link(client, parent.number, child.number)
    if project_url:
        added = [try_add_to_project(client, project_url, issue) for issue in (parent, child)]
        result.added_to_project = all(added)
    return result


def update_issue(client, number, title=None, body=None, state=None, add_labels=None) -> bool:
    """
    Apply any combination of title/body/labels/state. With nothing to change this is a no-op.
    Returns True when something was changed.
    Raises ValidationFailure for a state other than open/closed, before anything is edited.
    """
    if state not in (None, "open", "closed"):
        raise ValidationFailure(f"Invalid state: {state!r} (expected open or closed)")
    changed = client.edit_issue(number, title=title, body=body, add_labels=add_labels)
    if state == "closed":
        client.close_issue(number)
        changed = True
    elif state == "open":
        client.reopen_issue(number)
        changed = True
    contextual_log('info', f"Issue #{number} {'updated' if changed else 'unchanged'}", operation="update_issue",
                   status="success")
    return changed


def parse_files_to_create(body: str) -> List[str]:
    """
    Paths listed under a 'Files to Create' heading, one list item each, until the next heading.
    """
    files = []
    in_section = False
    for line in (body or "").replace("\\n", "\n").splitlines():
        if FILES_HEADING_RE.match(line):
            in_section = True
            continue
        if not in_section:
            continue
        if HEADING_RE.match(line):
            break
        match = FILE_ITEM_RE.match(line)
        if match:
            path = match.group("path").strip()
            if path and path not in files:
                files.append(path)
        elif line.strip() and files:
            break
    return files


def process_files_to_create(client, number, project_url=None) -> ProcessFilesResult:
    """
    Create one issue per file listed in issue #number, link each as a sub-issue and record the
    created issues in a checklist appended to the parent body.
    """
    parent = client.view_issue(number)
    result = ProcessFilesResult(parent=int(number), files=parse_files_to_create(parent.get("body", "")))
    if not result.files:
        contextual_log('info', f"Issue #{number} has no 'Files to Create' section", operation="process_files")
        return result
    for path in result.files:
        try:
            issue = client.create_issue(f"Create {path}", f"Create `{path}`.\n\nPart of #{number}")
        except GitHubError as e:
            rich_warning(f"Failed to create issue for {path}", str(e))
            contextual_log('warning', f"Failed to create issue for {path}: {e}", operation="process_files", status="error")
            result.failed.append(path)
            continue
        result.created.append(issue)
        try_link(client, int(number), issue.number)
        try_add_to_project(client, project_url, issue)
    if result.created:
        checklist = "\n".join(f"- [ ] #{issue.number} {path}" for issue, path in
                              zip(result.created, [p for p in result.files if p not in result.failed]))
        body = (parent.get("body") or "").rstrip() + "\n\n## Created Issues\n\n" + checklist + "\n"
        try:
            client.edit_issue(number, body=body)
        except GitHubError as e:
            rich_warning(f"Could not update issue #{number} with the created issues", str(e))
            contextual_log('warning', f"Could not update parent #{number}: {e}", operation="process_files", status="error")
    return result


def bulk_create_issues(client, count, title_prefix, parent=None, project_url=None) -> List[IssueRef]:
    """Create count (1-10) numbered issues, optionally as sub-issues of parent."""
    if count < 1 or count > MAX_BULK_CREATE:
        raise ValidationFailure(f"Count must be between 1 and {MAX_BULK_CREATE}")
    created = []
    for index in range(1, count + 1):
        body = f"Auto-generated issue {index} of {count}"
        if parent:
            body += f"\n\nRelated to #{parent}"
        issue = client.create_issue(f"{title_prefix} {index}", body)
        created.append(issue)
        if parent:
            try_link(client, parent, issue.number)
        try_add_to_project(client, project_url, issue)
    return created
