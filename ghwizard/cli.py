"""
GitHub wizard CLI entry point.

- Parses the wizard flags (debug, verbose, performance, log level, log file)
- Loads configuration and sets up logging
- Checks gh/git, authentication and repository context
- Runs the menu loop until the user exits or presses Ctrl-C

Exit codes: 0 success, 1 usage or dependency error, 2 authentication error.
"""
import sys

from ghwizard import __version__
from ghwizard.cli_logging_setup import setup_logging
from ghwizard.cli_menu import run_menu_loop
from ghwizard.config import ConfigLoader, LOG_LEVELS, dump_debug_config, validate_wizard_config
from ghwizard.errors import ErrorHandler, ErrorKind, ErrorLog, GitHubError, exit_code_for
from ghwizard.github_client import GhCliClient
from ghwizard.utils.cli_constants import CliArgumentParser, EXIT_SUCCESS
from ghwizard.utils.logging import contextual_log
from ghwizard.utils.message_utils import info, warning
from ghwizard.utils.rich_prompt import panel_welcome, panel_goodbye
from ghwizard.wizard_core import WizardContext, init_wizard_core, cleanup_wizard_core

REQUIRED_TOOLS = ("gh", "git")


def build_parser():
    parser = CliArgumentParser(
        prog="gh-wizard",
        description="Interactive GitHub issue and release management wizard.",
        epilog="Configuration is read from the environment, .env.local and .env.",
    )
    parser.add_argument("-d", "--debug", action="store_true", help="enable debug mode (logging on at DEBUG level)")
    parser.add_argument("-v", "--verbose", action="store_true", help="echo warnings and errors to stderr")
    parser.add_argument("-p", "--performance", action="store_true", help="log slow operations")
    parser.add_argument("--log-level", type=str.upper, choices=LOG_LEVELS, metavar="LEVEL",
                        help="DEBUG, INFO, WARN or ERROR")
    parser.add_argument("--log-file", metavar="PATH", help="log file path")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def load_configuration(args, config_loader=ConfigLoader):
    config = config_loader()
    config.apply_overrides(
        DEBUG_MODE=True if args.debug else None,
        VERBOSE_MODE=True if args.verbose else None,
        PERFORMANCE_MONITORING=True if args.performance else None,
        LOG_LEVEL=args.log_level,
        LOG_FILE=args.log_file,
    )
    return config


def check_startup(client, errors):
    """
    Verify the tools and authentication the wizard needs.
    Returns an exit code, or None when the wizard can start.
    """
    for tool in REQUIRED_TOOLS:
        if not client.is_installed(tool):
            errors.handle_error(ErrorKind.DEPENDENCY, f"{tool} is not installed", tool, "startup")
            return exit_code_for(ErrorKind.DEPENDENCY)
    if not client.auth_status():
        if not errors.handle_error(ErrorKind.AUTH, "GitHub CLI is not authenticated", "retry_auth", "startup"):
            return exit_code_for(ErrorKind.AUTH)
    return None


def main(argv=None, client=None, config_loader=ConfigLoader, loop=run_menu_loop) -> int:
    """
    Main entrypoint for the wizard.
    Returns the process exit code.
    """
    args = build_parser().parse_args(argv)
    config = load_configuration(args, config_loader)
    setup_logging(config.settings)
    config.report_problems()
    contextual_log('info', "GitHub wizard starting", operation="startup", status="started")

    client = client or GhCliClient()
    session = init_wizard_core()
    errors = ErrorHandler(session, client=client, error_log=ErrorLog(config.get("ERROR_LOG_FILE")),
                          env_file=getattr(config, "env_file", ".env"))
    code = check_startup(client, errors)
    if code is not None:
        contextual_log('error', f"Startup checks failed (exit {code})", operation="startup", status="error")
        return code

    repo_name = None
    try:
        repo_name = client.repo_context().full_name
    except GitHubError as e:
        warning("Not in a GitHub repository; running in limited mode.", str(e))
        contextual_log('warning', f"Repository context unavailable: {e}", operation="startup", status="limited")
    if config.get("DEBUG_MODE"):
        dump_debug_config(config)
    for message in validate_wizard_config(config):
        contextual_log('info', message, operation="validate_config")

    ctx = WizardContext(session=session, client=client, config=config, errors=errors)
    panel_welcome(repo_name)
    try:
        loop(ctx)
    except KeyboardInterrupt:
        info("Interrupted.")
        contextual_log('info', "Wizard interrupted by user", operation="shutdown", session_id=session.session_id)
    finally:
        cleanup_wizard_core(session)
        panel_goodbye()
    contextual_log('info', "GitHub wizard exited", operation="shutdown", status="success")
    return EXIT_SUCCESS


if __name__ == "__main__":
    sys.exit(main())
