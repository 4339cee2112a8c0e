# release_wizard.py
# Interactive release workflows: the release wizard itself, version information and prerequisite checks.
# The version/changelog pipeline lives in ghwizard.release and is shared with the release manager script.

from rich.markup import escape
from ghwizard.release import (
    BUMP_KINDS, ReleaseOptions, plan_release, apply_release, check_release_prerequisites,
    get_current_version, calculate_next_version,
)
from ghwizard.utils.decorators import workflow_error_handler
from ghwizard.utils.logging import contextual_log
from ghwizard.utils.message_utils import info, warning, success, error
from ghwizard.utils.output_utils import print_section_header, print_key_value, print_table, print_status_line
from ghwizard.utils.progress_utils import spinner
from ghwizard.utils.prompt_utils import prompt_select, prompt_confirm, prompt_text
from ghwizard.utils.rich_prompt import rich_panel
from ghwizard.utils.validation_utils import prompt_validated

PRE_RELEASE_CHOICES = [
    {"name": "No (stable release)", "value": "stable"},
    {"name": "Alpha", "value": "alpha"},
    {"name": "Beta", "value": "beta"},
    {"name": "Release candidate", "value": "rc"},
]


def render_release_plan(plan, dry_run=False):
    """Print the computed release and a preview of the changelog section."""
    print_key_value([
        ("Current version", plan.current_version),
        ("Next version", plan.next_version),
        ("Tag", plan.tag),
        ("Previous tag", plan.previous_tag or "none"),
        ("Commits", len(plan.commits)),
        ("Pre-release", "yes" if plan.prerelease else "no"),
        ("README replacements", plan.readme_replacements),
        ("Issues to close", ", ".join(f"#{n}" for n in plan.closes) or "none"),
    ], title="Release plan (dry run)" if dry_run else "Release plan")
    rich_panel(escape(plan.changelog_section.rstrip()), title="CHANGELOG.md preview", style="muted")


def _prompt_options(errors=None):
    bump = prompt_select("Version bump:", choices=[
        {"name": "Patch (bug fixes)", "value": "patch"},
        {"name": "Minor (new features)", "value": "minor"},
        {"name": "Major (breaking changes)", "value": "major"},
        {"name": "Custom version", "value": "custom"},
    ])
    if bump is None:
        return None
    options = ReleaseOptions(bump="patch" if bump == "custom" else bump)
    if bump == "custom":
        options.version = prompt_validated("version", "Version (MAJOR.MINOR.PATCH):", errors=errors, context="release_wizard")
        if options.version is None:
            return None
    kind = prompt_select("Pre-release?", choices=PRE_RELEASE_CHOICES)
    if kind and kind != "stable":
        number = prompt_validated("pre_release", f"{kind} number:", default="1", errors=errors, context="release_wizard")
        if number is None:
            return None
        options.pre_release_tag = f"{kind}.{number}"
    options.draft = bool(prompt_confirm("Create as a draft release?", default=False))
    options.close_issues = bool(prompt_confirm("Close issues referenced by 'fixes #N' in the released commits?", default=False))
    title = prompt_text("Release title (leave blank for default):")
    options.title = title.strip() if title and title.strip() else None
    return options


@workflow_error_handler('release')
def run_release_wizard(ctx):
    print_section_header("Release Wizard")
    options = _prompt_options(ctx.errors)
    if options is None:
        info("Release cancelled.")
        return None
    with spinner("Computing release..."):
        plan = plan_release(ctx.client, options)
    ctx.session.next_version = plan.next_version
    render_release_plan(plan, dry_run=True)
    if not plan.commits:
        warning("No commits since the last release.")
    failing = [name for name, ok, _ in check_release_prerequisites(ctx.client, options.readme_path) if not ok]
    if failing:
        warning(f"Prerequisites not met: {', '.join(failing)}", "See Release Management > Check Release Prerequisites.")
    if not prompt_confirm(f"Create release {plan.tag}?", default=False):
        info("Dry run only; nothing was written.")
        return None
    with spinner(f"Creating release {plan.tag}..."):
        result = apply_release(ctx.client, plan, options)
    success(f"Release {plan.tag} created", result.get("url"), workflow='release')
    for path in result["written"]:
        print_status_line("success", f"Updated {path}", f"backup: {path}.backup")
    if result["closed"]:
        print_status_line("success", f"Closed issues: {', '.join(f'#{n}' for n in result['closed'])}")
    if result["close_failed"]:
        print_status_line("warning", f"Could not close: {', '.join(f'#{n}' for n in result['close_failed'])}")
    return True


@workflow_error_handler('release')
def version_info(ctx):
    print_section_header("Current Version Information")
    with spinner("Reading tags..."):
        tag = ctx.client.latest_version_tag()
        current = get_current_version(ctx.client)
        commits = ctx.client.commits_since(tag)
    rows = [(kind, calculate_next_version(current, kind)) for kind in BUMP_KINDS]
    print_key_value([
        ("Latest tag", tag or "none"),
        ("Current version", current),
        ("Commits since tag", len(commits)),
    ])
    print_table(["Bump", "Next version"], rows, title="Next version by bump kind")
    if ctx.session.next_version:
        info(f"Last computed release in this session: v{ctx.session.next_version}")
    return True


@workflow_error_handler('release')
def release_prerequisites(ctx):
    print_section_header("Release Prerequisites")
    with spinner("Checking prerequisites..."):
        checks = check_release_prerequisites(ctx.client)
    for name, ok, detail in checks:
        print_status_line("success" if ok else "error", name, detail)
    failed = [name for name, ok, _ in checks if not ok]
    contextual_log('info', f"Release prerequisites: {len(checks) - len(failed)}/{len(checks)} passed",
                   operation="release_prerequisites", status="success" if not failed else "error")
    if failed:
        error(f"{len(failed)} prerequisite(s) not met.", "Resolve them before creating a release.")
        return False
    success("All release prerequisites met.", workflow='release')
    return True
