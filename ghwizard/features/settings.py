# settings.py
# Configuration workflows: view the effective configuration, update .env settings,
# test the GitHub CLI connection and inspect or clear the error log.

import os

from rich.markup import escape
from ghwizard.config import update_config, reset_config, dump_debug_config, validate_wizard_config, LOG_LEVELS
from ghwizard.errors import ConfigError, GitHubError
from ghwizard.utils.decorators import workflow_error_handler
from ghwizard.utils.logging import contextual_log
from ghwizard.utils.message_utils import info, warning, success, error
from ghwizard.utils.output_utils import print_section_header, print_key_value, print_status_line
from ghwizard.utils.progress_utils import spinner
from ghwizard.utils.prompt_utils import prompt_select, prompt_confirm, prompt_text
from ghwizard.utils.rich_prompt import console


@workflow_error_handler('config')
def view_configuration(ctx):
    print_section_header("Current Configuration")
    dump_debug_config(ctx.config)
    env_file = getattr(ctx.config, "env_file", ".env")
    env_local = getattr(ctx.config, "env_local_file", ".env.local")
    print_key_value([
        (env_file, "present" if os.path.exists(env_file) else "missing"),
        (env_local, "present" if os.path.exists(env_local) else "missing"),
        ("gh", "installed" if ctx.client.is_installed("gh") else "missing"),
        ("git", "installed" if ctx.client.is_installed("git") else "missing"),
    ], title="Files and tools")
    try:
        repo = ctx.client.repo_context()
        print_key_value([("Repository", repo.full_name), ("Branch", repo.branch or "unknown")], title="Repository")
    except GitHubError as e:
        warning("Repository context unavailable", str(e))
    session = ctx.session
    print_key_value([
        ("Session", session.session_id),
        ("Started", session.start_time.isoformat(sep=" ")),
        ("Last operation", session.last_operation or "none"),
        ("Result", session.operation_result or "none"),
        ("Last created issue", f"#{session.last_created_issue}" if session.last_created_issue else "none"),
    ], title="Session")
    for message in validate_wizard_config(ctx.config):
        print_status_line("warning", message)
    return True


SETTING_CHOICES = [
    {"name": "Log level", "value": "LOG_LEVEL"},
    {"name": "Enable/disable logging", "value": "ENABLE_LOGGING"},
    {"name": "Project URL", "value": "PROJECT_URL"},
    {"name": "Reset to defaults", "value": "reset"},
    {"name": "Cancel", "value": "cancel"},
]


@workflow_error_handler('config')
def update_settings(ctx):
    print_section_header("Update Settings")
    env_file = getattr(ctx.config, "env_file", ".env")
    key = prompt_select("Which setting would you like to change?", choices=SETTING_CHOICES)
    if key in (None, "cancel"):
        info("No changes made.")
        return None
    if key == "reset":
        if prompt_confirm(f"Overwrite {env_file} with the default configuration?", default=False):
            reset_config(env_file)
            success(f"{env_file} reset to defaults. Restart the wizard to apply.", workflow='config')
            return True
        info("No changes made.")
        return None
    if key == "LOG_LEVEL":
        value = prompt_select("Log level:", choices=LOG_LEVELS)
    elif key == "ENABLE_LOGGING":
        value = "true" if prompt_confirm("Enable file logging?", default=bool(ctx.config.get("ENABLE_LOGGING"))) else "false"
    else:
        value = prompt_text("Project URL (https://github.com/orgs/OWNER/projects/N):",
                            default=ctx.config.get("PROJECT_URL"))
    if value is None:
        info("No changes made.")
        return None
    try:
        update_config(key, value, env_file=env_file)
    except ConfigError as e:
        error(str(e), "LOG_LEVEL takes DEBUG, INFO, WARN or ERROR; PROJECT_URL looks like https://github.com/orgs/OWNER/projects/N.")
        return False
    success(f"{key} updated in {env_file}. Restart the wizard to apply.", workflow='config')
    return True


@workflow_error_handler('config')
def test_github_cli(ctx):
    print_section_header("Test GitHub CLI")
    for tool in ("gh", "git"):
        ok = ctx.client.is_installed(tool)
        print_status_line("success" if ok else "error", f"{tool} {'found' if ok else 'not found'}")
        if not ok:
            ctx.errors.handle_error("dependency", f"{tool} is not installed", None, "test_github_cli")
            return False
    if not ctx.client.auth_status():
        ctx.errors.handle_error("auth", "GitHub CLI is not authenticated", None, "test_github_cli")
        return False
    print_status_line("success", "Authenticated")
    with spinner("Calling the GitHub API..."):
        user = ctx.client.current_user()
        rate = ctx.client.rate_limit()
    print_key_value([
        ("User", user),
        ("Rate limit remaining", f"{rate.get('remaining', '?')}/{rate.get('limit', '?')}"),
    ])
    contextual_log('info', f"GitHub CLI test passed for {user}", operation="test_github_cli", status="success")
    success("GitHub CLI is working.", workflow='config')
    return True


@workflow_error_handler('config')
def error_log(ctx):
    print_section_header("Error Log")
    log = ctx.errors.error_log
    stats = log.stats()
    print_key_value([
        ("File", log.path),
        ("Total errors", stats.total),
        ("Last 24 hours", stats.recent),
    ])
    if stats.last:
        console.print("[bold]Most recent:[/bold]")
        for line in stats.last:
            console.print(f"  {escape(line)}", style="muted", highlight=False)
    else:
        info("No errors recorded.")
        return True
    if prompt_confirm("Clear the error log?", default=False):
        if log.clear():
            success("Error log cleared.", workflow='config')
        else:
            error("Could not clear the error log.", f"Check permissions on {log.path}.")
            return False
    return True
