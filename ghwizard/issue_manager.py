"""
Non-interactive issue manager.

    gh-issue-manager PARENT_TITLE PARENT_BODY CHILD_TITLE CHILD_BODY
    gh-issue-manager UPDATE <issue_number> [--title T] [--body B] [--state open|closed] [--add-label L]
    gh-issue-manager PROCESS_FILES <issue_number>
    gh-issue-manager --help

Exit codes: 0 success, 1 validation or creation failure, 2 authentication error,
3 network or GitHub API error. Sub-issue linking and project assignment failures are
warnings and do not change the exit code.
"""
import sys

from ghwizard.cli_logging_setup import setup_logging
from ghwizard.config import ConfigLoader
from ghwizard.errors import GitHubError, ErrorKind, exit_code_for
from ghwizard.github_client import GhCliClient
from ghwizard.issues import create_linked_issues, update_issue, process_files_to_create
from ghwizard.utils.cli_constants import CliArgumentParser, colorize, BOLD, INFO_BLUE, EXIT_SUCCESS, EXIT_ERROR
from ghwizard.utils.logging import contextual_log
from ghwizard.utils.message_utils import error, warning, info, success
from ghwizard.utils.validation_utils import check_input, validate_issue_args

USAGE = """Usage:
  gh-issue-manager PARENT_TITLE PARENT_BODY CHILD_TITLE CHILD_BODY
  gh-issue-manager UPDATE <issue_number> [--title T] [--body B] [--state open|closed] [--add-label L]
  gh-issue-manager PROCESS_FILES <issue_number>
  gh-issue-manager --help

Modes:
  (default)      Create a parent and a child issue and link the child as a sub-issue.
                 Both are added to PROJECT_URL when it is set.
  UPDATE         Change the title, body, state or labels of an issue.
  PROCESS_FILES  Create one issue per file listed under 'Files to Create' in an issue body.

Environment:
  PROJECT_URL     GitHub Projects URL for automatic project assignment
  ENABLE_LOGGING  true/false (default false)
  LOG_LEVEL       DEBUG, INFO, WARN or ERROR (default INFO)
  LOG_FILE        log file path (default ./logs/gh-issue-manager.log)
"""


def print_usage(file=None):
    heading, _, rest = USAGE.partition("\n")
    (file or sys.stdout).write(colorize(heading, BOLD + INFO_BLUE) + "\n" + rest)


def build_update_parser():
    parser = CliArgumentParser(prog="gh-issue-manager UPDATE", description="Update an existing issue.")
    parser.add_argument("issue_number")
    parser.add_argument("--title")
    parser.add_argument("--body")
    parser.add_argument("--state", choices=["open", "closed"])
    parser.add_argument("--add-label", action="append", dest="labels", metavar="LABEL")
    return parser


def _issue_number(raw):
    ok, number, message = check_input("issue_number", raw)
    if not ok:
        error(f"Invalid issue number: {raw!r}", message)
        return None
    return number


def parse_update_args(args):
    """Parse UPDATE arguments; returns (number, options) or None after reporting the problem."""
    options = build_update_parser().parse_args(args)
    number = _issue_number(options.issue_number)
    if number is None:
        return None
    return number, options


def parse_process_files_args(args):
    if len(args) != 1:
        error("PROCESS_FILES takes exactly one issue number.", "gh-issue-manager PROCESS_FILES <issue_number>")
        return None
    return _issue_number(args[0])


def run_update(client, number, options) -> int:
    if not any([options.title, options.body is not None, options.state, options.labels]):
        warning(f"No changes specified for issue #{number}.", "Pass --title, --body, --state or --add-label.")
        return EXIT_SUCCESS
    update_issue(client, number, title=options.title, body=options.body, state=options.state,
                 add_labels=options.labels)
    success(f"Updated issue #{number}")
    return EXIT_SUCCESS


def run_process_files(client, number, project_url=None) -> int:
    result = process_files_to_create(client, number, project_url)
    if not result.files:
        info(f"Issue #{number} has no 'Files to Create' section; nothing to do.")
        return EXIT_SUCCESS
    if result.created:
        success(f"Created {len(result.created)} issue(s) from #{number}: "
                + ", ".join(f"#{i.number}" for i in result.created))
    if result.failed:
        warning(f"Could not create issues for: {', '.join(result.failed)}")
    return EXIT_SUCCESS if result.created else EXIT_ERROR


def run_create(client, args, project_url=None) -> int:
    parent_title, parent_body, child_title, child_body = args
    try:
        result = create_linked_issues(client, parent_title, parent_body, child_title, child_body, project_url)
    except GitHubError as e:
        if e.kind is not ErrorKind.GITHUB:
            raise
        error(f"Failed to create issues: {e}", "Check the repository and your permissions, then try again.")
        contextual_log('error', f"Issue creation failed: {e}", operation="create_issue", status="error",
                       error_type=e.kind.value)
        return EXIT_ERROR
    success(f"Successfully created parent issue #{result.parent.number} and child issue #{result.child.number}")
    if not result.fully_succeeded:
        if not result.linked:
            warning("Issues were created but are not linked as parent and sub-issue.")
        if result.added_to_project is False:
            warning("Issues were created but could not be added to the project board.")
        contextual_log('warning', "Issues created with warnings", operation="create_issue", status="partial")
    return EXIT_SUCCESS


def main(argv=None, client=None, config_loader=ConfigLoader) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    if not argv or argv[0] in ("-h", "--help"):
        print_usage()
        return EXIT_SUCCESS if argv else EXIT_ERROR
    mode, rest = argv[0], argv[1:]
    # Arguments are checked before gh is touched, so usage errors always exit 1
    if mode == "UPDATE":
        parsed = parse_update_args(rest)
    elif mode == "PROCESS_FILES":
        parsed = parse_process_files_args(rest)
    else:
        mode = "create"
        problem = validate_issue_args(argv)
        if problem:
            error(problem, "gh-issue-manager PARENT_TITLE PARENT_BODY CHILD_TITLE CHILD_BODY")
            parsed = None
        else:
            parsed = argv
    if parsed is None:
        return EXIT_ERROR
    config = config_loader()
    setup_logging(config.settings)
    config.report_problems()
    project_url = config.get("PROJECT_URL")
    client = client or GhCliClient()
    if not client.is_installed("gh"):
        error("GitHub CLI (gh) is not installed.", "Install it from https://cli.github.com/")
        return exit_code_for(ErrorKind.DEPENDENCY)
    if not client.auth_status():
        error("GitHub CLI is not authenticated.", "Run 'gh auth login' first.")
        return exit_code_for(ErrorKind.AUTH)
    contextual_log('info', f"Issue manager started in {mode} mode", operation="issue_manager", status="started")
    try:
        if mode == "UPDATE":
            return run_update(client, *parsed)
        if mode == "PROCESS_FILES":
            return run_process_files(client, parsed, project_url)
        return run_create(client, parsed, project_url)
    except GitHubError as e:
        error(f"GitHub operation failed: {e}", "Check 'gh auth status' and the repository, then try again.")
        contextual_log('error', f"Issue manager failed: {e}", operation="issue_manager", status="error",
                       error_type=e.kind.value)
        return e.exit_code


if __name__ == "__main__":
    sys.exit(main())
