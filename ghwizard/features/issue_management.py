# issue_management.py
# Interactive issue workflows for the wizard: create, update, link and bulk operations.
# The GitHub-side work is delegated to ghwizard.issues so the issue manager script shares it.

import re
from typing import List, Optional

from ghwizard.errors import ErrorKind, GitHubError
from ghwizard.issues import try_link, try_add_to_project, update_issue as apply_issue_update, bulk_create_issues, MAX_BULK_CREATE
from ghwizard.utils.decorators import workflow_error_handler
from ghwizard.utils.logging import contextual_log
from ghwizard.utils.message_utils import info, warning, error, success
from ghwizard.utils.output_utils import print_section_header, print_key_value, print_status_line
from ghwizard.utils.progress_utils import spinner, progress_bar
from ghwizard.utils.prompt_utils import prompt_text, prompt_select, prompt_confirm, prompt_multiline
from ghwizard.utils.validation_utils import check_input, prompt_validated

CANCELLED = "Operation cancelled."


def parse_labels(raw: Optional[str]) -> List[str]:
    """Comma separated labels, blanks and duplicates dropped, order kept."""
    labels = []
    for label in (raw or "").split(","):
        label = label.strip()
        if label and label not in labels:
            labels.append(label)
    return labels


def parse_issue_numbers(raw: Optional[str]):
    """
    Parse 'N, M K' into a list of issue numbers.
    Returns:
        tuple: (numbers, invalid_tokens)
    """
    numbers, invalid = [], []
    for token in re.split(r'[\s,]+', (raw or "").strip()):
        if not token:
            continue
        ok, value, _ = check_input("issue_number", token.lstrip("#"))
        if ok:
            if value not in numbers:
                numbers.append(value)
        else:
            invalid.append(token)
    return numbers, invalid


def _prompt_issue_list(message, errors=None):
    raw = prompt_text(message)
    if raw is None:
        return None
    numbers, invalid = parse_issue_numbers(raw)
    if invalid:
        problem = f"Invalid issue numbers: {', '.join(invalid)}"
        if errors is not None:
            errors.handle_error(ErrorKind.INPUT, problem, "issue_number", "bulk_operations")
        else:
            error(problem, "Issue numbers are positive integers, e.g. 12 15 18.")
        return None
    if not numbers:
        warning("No issue numbers entered.")
        return None
    return numbers


@workflow_error_handler('issue')
def create_issue(ctx):
    print_section_header("Create Issue")
    title = prompt_validated("text", "Issue title:", errors=ctx.errors, context="create_issue")
    if title is None:
        info(CANCELLED)
        return None
    body = prompt_multiline("Issue body (Markdown):")
    if body is None:
        info(CANCELLED)
        return None
    labels = parse_labels(prompt_text("Labels (comma separated, optional):"))
    ok, issue = ctx.errors.execute_with_retry("create_issue", ctx.client.create_issue, title, body, labels or None)
    if not ok:
        return False
    ctx.session.last_created_issue = issue.number
    success(f"Created issue #{issue.number}", issue.url, workflow='issue')
    project_url = ctx.config.get("PROJECT_URL")
    if project_url and prompt_confirm("Add this issue to the project board?", default=True):
        if try_add_to_project(ctx.client, project_url, issue):
            print_status_line("success", "Added to project board")
    return True


UPDATE_CHOICES = [
    {"name": "Title", "value": "title"},
    {"name": "Body", "value": "body"},
    {"name": "Add labels", "value": "labels"},
    {"name": "State (close/reopen)", "value": "state"},
    {"name": "Cancel", "value": "cancel"},
]


@workflow_error_handler('issue')
def update_issue(ctx):
    print_section_header("Update Issue")
    default = ctx.session.last_created_issue
    number = prompt_validated("issue_number", "Issue number:", default=str(default) if default else None,
                              errors=ctx.errors, context="update_issue")
    if number is None:
        info(CANCELLED)
        return None
    with spinner(f"Loading issue #{number}..."):
        current = ctx.client.view_issue(number)
    print_key_value([
        ("Title", current.get("title")),
        ("State", (current.get("state") or "").lower()),
        ("Labels", ", ".join(l.get("name", "") for l in current.get("labels") or []) or "none"),
    ], title=f"Issue #{number}")
    field = prompt_select("What would you like to update?", choices=UPDATE_CHOICES)
    if field in (None, "cancel"):
        info(CANCELLED)
        return None
    changes = {}
    if field == "title":
        changes["title"] = prompt_validated("text", "New title:", default=current.get("title"),
                                            errors=ctx.errors, context="update_issue")
    elif field == "body":
        body = prompt_multiline("New body (Markdown):")
        if body is None:
            info(CANCELLED)
            return None
        changes["body"] = body
    elif field == "labels":
        changes["add_labels"] = parse_labels(prompt_text("Labels to add (comma separated):")) or None
    elif field == "state":
        is_open = (current.get("state") or "").lower() == "open"
        target = "closed" if is_open else "open"
        if prompt_confirm(f"{'Close' if is_open else 'Reopen'} issue #{number}?", default=True):
            changes["state"] = target
    if not any(v is not None for v in changes.values()):
        info("Nothing to update.")
        return None
    apply_issue_update(ctx.client, number, **changes)
    ctx.session.last_updated_issue = number
    success(f"Updated issue #{number}", workflow='issue')
    return True


@workflow_error_handler('issue')
def link_issues(ctx):
    print_section_header("Link Issues")
    parent = prompt_validated("issue_number", "Parent issue number:", errors=ctx.errors, context="link_issues")
    if parent is None:
        info(CANCELLED)
        return None
    default = ctx.session.last_created_issue
    child = prompt_validated("issue_number", "Child issue number:",
                             default=str(default) if default and default != parent else None,
                             errors=ctx.errors, context="link_issues")
    if child is None:
        info(CANCELLED)
        return None
    if parent == child:
        error("An issue cannot be linked to itself.", "Choose two different issue numbers.")
        return False
    with spinner("Checking issues..."):
        missing = [n for n in (parent, child) if not ctx.client.issue_exists(n)]
    if missing:
        error(f"Issue(s) not found: {', '.join(f'#{n}' for n in missing)}", "Check the numbers with Status Dashboard > Recent Activity.")
        return False
    if not prompt_confirm(f"Link #{child} as a sub-issue of #{parent}?", default=True):
        info(CANCELLED)
        return None
    if try_link(ctx.client, parent, child):
        success(f"Linked #{child} as a sub-issue of #{parent}", workflow='issue')
        return True
    return False


BULK_CHOICES = [
    {"name": "Close multiple issues", "value": "close"},
    {"name": "Add a label to multiple issues", "value": "label"},
    {"name": "Add multiple issues to the project board", "value": "project"},
    {"name": f"Create multiple issues (1-{MAX_BULK_CREATE})", "value": "create"},
    {"name": "Cancel", "value": "cancel"},
]


def _apply_each(numbers, desc, func):
    done, failed = [], []
    for number in progress_bar(numbers, desc=desc):
        try:
            func(number)
            done.append(number)
        except GitHubError as e:
            contextual_log('warning', f"{desc} failed for #{number}: {e}", operation="bulk_operations", status="error")
            failed.append(number)
    return done, failed


def _report_bulk(action, done, failed):
    if done:
        success(f"{action}: {', '.join(f'#{n}' for n in done)}", workflow='issue')
    if failed:
        warning(f"{action} failed for: {', '.join(f'#{n}' for n in failed)}", "See the log file for details.")
    return not failed


@workflow_error_handler('issue')
def bulk_operations(ctx):
    print_section_header("Bulk Operations")
    operation = prompt_select("Choose a bulk operation:", choices=BULK_CHOICES)
    if operation in (None, "cancel"):
        info(CANCELLED)
        return None
    client = ctx.client
    project_url = ctx.config.get("PROJECT_URL")
    if operation == "create":
        count = prompt_validated("menu_option", f"How many issues (1-{MAX_BULK_CREATE})?", range_spec=f"1-{MAX_BULK_CREATE}",
                                 errors=ctx.errors, context="bulk_operations")
        if count is None:
            info(CANCELLED)
            return None
        prefix = prompt_validated("text", "Title prefix:", errors=ctx.errors, context="bulk_operations")
        if prefix is None:
            info(CANCELLED)
            return None
        parent = prompt_validated("issue_number", "Parent issue number (optional):", required=False,
                                  errors=ctx.errors, context="bulk_operations")
        created = bulk_create_issues(client, count, prefix, parent=parent, project_url=project_url)
        if created:
            ctx.session.last_created_issue = created[-1].number
        success(f"Created {len(created)} issues: {', '.join(f'#{i.number}' for i in created)}", workflow='issue')
        return True
    if operation == "project" and not project_url:
        error("PROJECT_URL is not configured.", "Set it via Configuration > Update Settings.")
        return False
    numbers = _prompt_issue_list("Issue numbers (space or comma separated):", ctx.errors)
    if not numbers:
        return None
    if operation == "close":
        if not prompt_confirm(f"Close {len(numbers)} issue(s)?", default=False):
            info(CANCELLED)
            return None
        done, failed = _apply_each(numbers, "Closing issues", client.close_issue)
        return _report_bulk("Closed", done, failed)
    if operation == "label":
        label = prompt_validated("text", "Label to add:", errors=ctx.errors, context="bulk_operations")
        if label is None:
            info(CANCELLED)
            return None
        done, failed = _apply_each(numbers, "Labelling issues", lambda n: client.edit_issue(n, add_labels=[label]))
        return _report_bulk(f"Labelled '{label}'", done, failed)
    repo = client.repo_context()
    done, failed = _apply_each(numbers, "Adding to project",
                               lambda n: client.add_to_project(project_url, f"{repo.url}/issues/{n}"))
    return _report_bulk("Added to project", done, failed)
