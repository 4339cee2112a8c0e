# status_dashboard.py
# Read-only views of the repository: context, issue counts, recent activity and the project board.
# Nothing here mutates GitHub state.

from ghwizard.github_client import parse_project_url
from ghwizard.utils.decorators import workflow_error_handler
from ghwizard.utils.logging import contextual_log
from ghwizard.utils.message_utils import info, warning
from ghwizard.utils.output_utils import (
    print_section_header, print_key_value, print_table, print_status_line, status_emoji
)
from ghwizard.utils.progress_utils import spinner, progress_line


def completion_percentage(open_count: int, closed_count: int) -> int:
    """Closed issues as a whole-number percentage of all issues; 0 when there are none."""
    total = open_count + closed_count
    if total == 0:
        return 0
    return int(closed_count * 100 / total)


@workflow_error_handler('status')
def repository_status(ctx):
    print_section_header("Repository Status")
    with spinner("Reading repository context..."):
        repo = ctx.client.repo_context()
        clean = ctx.client.working_tree_clean()
    print_key_value([
        ("Repository", repo.full_name),
        ("Branch", repo.branch or "unknown"),
        ("Default branch", repo.default_branch),
        ("Authenticated", "yes" if repo.authenticated else "no"),
        ("Working tree", "clean" if clean else "uncommitted changes"),
    ])
    if not clean:
        print_status_line("warning", "Working tree has uncommitted changes")
    return True


@workflow_error_handler('status')
def issue_summary(ctx):
    print_section_header("Issue Summary")
    with spinner("Counting issues..."):
        counts = ctx.client.issue_counts()
    open_count, closed_count = counts.get("open", 0), counts.get("closed", 0)
    percent = completion_percentage(open_count, closed_count)
    print_key_value([
        ("Open", open_count),
        ("Closed", closed_count),
        ("Total", open_count + closed_count),
        ("Completion", f"{percent}%"),
    ])
    info(progress_line(closed_count, open_count + closed_count, "issues closed"))
    ctx.session.scratch["issue_counts"] = {"open": open_count, "closed": closed_count, "completion": percent}
    return True


@workflow_error_handler('status')
def recent_activity(ctx):
    print_section_header("Recent Activity")
    with spinner("Fetching recent issues and pull requests..."):
        issues = ctx.client.list_issues(state="all", limit=5)
        pulls = ctx.client.list_pull_requests(state="all", limit=5)
    if issues:
        print_table(["#", "State", "Title"],
                    [(i.get("number"), f"{status_emoji(i.get('state'))} {i.get('state', '').lower()}", i.get("title"))
                     for i in issues], title="Issues")
    else:
        info("No issues found.")
    if pulls:
        print_table(["#", "State", "Title"],
                    [(p.get("number"), f"{status_emoji(p.get('state'))} {p.get('state', '').lower()}", p.get("title"))
                     for p in pulls], title="Pull Requests")
    else:
        info("No pull requests found.")
    return True


@workflow_error_handler('status')
def project_board_status(ctx):
    print_section_header("Project Board Status")
    project_url = ctx.config.get("PROJECT_URL")
    if not project_url:
        warning("PROJECT_URL is not configured.", "Set it in .env or via Configuration > Update Settings.")
        return True
    owner, number = parse_project_url(project_url)
    with spinner("Reading project board..."):
        project = ctx.client.project_view(project_url)
    print_key_value([
        ("Project", project.get("title") or f"#{number}"),
        ("Owner", owner),
        ("Number", number),
        ("Items", (project.get("items") or {}).get("totalCount", "unknown")),
        ("URL", project_url),
    ])
    contextual_log('debug', f"Project {owner}/{number} viewed", operation="project_board_status")
    return True
