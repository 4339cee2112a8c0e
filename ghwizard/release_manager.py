"""
Non-interactive release manager.

Computes the next semantic version from the latest 'v*' tag, prepends a Keep a Changelog
section to CHANGELOG.md, bumps the version in README.md, creates the GitHub release and
optionally closes the issues the released commits resolve.

    gh-release-manager [-M | -m | -p] [-a TAG | -b TAG] [-d] [-c]

A dry run performs every computation and prints the plan, but writes nothing and creates no release.
Exit codes: 0 success, 1 usage, version or file error, 2 authentication error, 3 network or GitHub API error.
"""
import sys

from ghwizard.cli_logging_setup import setup_logging
from ghwizard.config import ConfigLoader
from ghwizard.errors import GitHubError, VersionError, ErrorKind, exit_code_for
from ghwizard.features.release_wizard import render_release_plan
from ghwizard.github_client import GhCliClient
from ghwizard.release import ReleaseOptions, plan_release, apply_release, check_release_prerequisites
from ghwizard.utils.cli_constants import CliArgumentParser, EXIT_SUCCESS, EXIT_ERROR
from ghwizard.utils.logging import contextual_log
from ghwizard.utils.message_utils import error, warning, info, success
from ghwizard.utils.output_utils import print_status_line


def build_parser():
    parser = CliArgumentParser(
        prog="gh-release-manager",
        description="Create a GitHub release with an updated CHANGELOG.md and README.md.",
        epilog="Examples: gh-release-manager --minor | gh-release-manager -p -b 1 --dry-run",
    )
    bump = parser.add_mutually_exclusive_group()
    bump.add_argument("-M", "--major", dest="bump", action="store_const", const="major", help="major version bump")
    bump.add_argument("-m", "--minor", dest="bump", action="store_const", const="minor", help="minor version bump")
    bump.add_argument("-p", "--patch", dest="bump", action="store_const", const="patch", help="patch version bump (default)")
    pre = parser.add_mutually_exclusive_group()
    pre.add_argument("-a", "--alpha", metavar="TAG", help="alpha pre-release, e.g. -a 1 for -alpha.1")
    pre.add_argument("-b", "--beta", metavar="TAG", help="beta pre-release, e.g. -b 2 for -beta.2")
    parser.add_argument("-d", "--dry-run", action="store_true", help="show what would be done without doing it")
    parser.add_argument("-c", "--close-issues", action="store_true", help="close issues referenced by the released commits")
    parser.set_defaults(bump="patch")
    return parser


def options_from_args(args) -> ReleaseOptions:
    pre_release_tag = None
    if args.alpha:
        pre_release_tag = f"alpha.{args.alpha}"
    elif args.beta:
        pre_release_tag = f"beta.{args.beta}"
    return ReleaseOptions(bump=args.bump, pre_release_tag=pre_release_tag, dry_run=args.dry_run,
                          close_issues=args.close_issues)


def main(argv=None, client=None, config_loader=ConfigLoader) -> int:
    args = build_parser().parse_args(argv)
    config = config_loader()
    setup_logging(config.settings)
    config.report_problems()
    client = client or GhCliClient()
    options = options_from_args(args)

    for tool in ("git", "gh"):
        if not client.is_installed(tool):
            error(f"{tool} is not installed.", "Install it and try again.")
            return exit_code_for(ErrorKind.DEPENDENCY)
    if not client.in_git_repo():
        error("Not inside a git repository.", "Run gh-release-manager from the repository root.")
        return EXIT_ERROR
    if not options.dry_run and not client.auth_status():
        error("GitHub CLI is not authenticated.", "Run 'gh auth login' first.")
        return exit_code_for(ErrorKind.AUTH)

    contextual_log('info', f"Release manager started (bump={options.bump}, pre_release={options.pre_release_tag}, "
                           f"dry_run={options.dry_run})", operation="release_manager", status="started")
    try:
        plan = plan_release(client, options)
        render_release_plan(plan, dry_run=options.dry_run)
        if options.dry_run:
            info("Dry run: no files were written and no release was created.")
            return EXIT_SUCCESS
        for name, ok, detail in check_release_prerequisites(client, options.readme_path):
            if not ok:
                warning(f"Prerequisite not met: {name}", detail)
        result = apply_release(client, plan, options)
    except VersionError as e:
        error(f"Version error: {e}", "Tags must look like vMAJOR.MINOR.PATCH.")
        return EXIT_ERROR
    except GitHubError as e:
        error(f"Release failed: {e}", "Any changes to CHANGELOG.md and README.md were rolled back.")
        contextual_log('error', f"Release failed: {e}", operation="release_manager", status="error",
                       error_type=e.kind.value)
        return e.exit_code
    except OSError as e:
        error(f"Could not update release files: {e}",
              "Check that CHANGELOG.md and README.md are writable. Changes already made were rolled back.")
        contextual_log('error', f"Release file update failed: {e}", operation="release_manager", status="error",
                       error_type=type(e).__name__)
        return EXIT_ERROR
    success(f"Release {plan.tag} created", result.get("url"))
    for number in result["closed"]:
        print_status_line("success", f"Closed issue #{number}")
    for number in result["close_failed"]:
        print_status_line("warning", f"Could not close issue #{number}")
    return EXIT_SUCCESS


if __name__ == "__main__":
    sys.exit(main())
