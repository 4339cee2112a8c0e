"""
features/__init__.py

Defines the workflow manifest and registry for the GitHub wizard.
Each workflow is imported and registered with metadata for menu rendering and dispatch.

- WORKFLOW_MANIFEST: every workflow with its menu, option key, entry point and menu hint.
- WORKFLOW_REGISTRY: (WorkflowKind, action) -> workflow(ctx), used by wizard_core.execute_workflow.
- MENU_ACTIONS: (menu name, option key) -> action, used by the menu loop.
- MENU_HINTS: (menu name, option key) -> (emoji, description), shown beside the menu labels.
"""

from ghwizard.wizard_core import WorkflowKind
from .status_dashboard import repository_status, issue_summary, recent_activity, project_board_status
from .issue_management import create_issue, update_issue, link_issues, bulk_operations
from .release_wizard import run_release_wizard, version_info, release_prerequisites
from .settings import view_configuration, update_settings, test_github_cli, error_log

# WORKFLOW_MANIFEST: all workflows with metadata for menu and dispatch
WORKFLOW_MANIFEST = [
    # Each entry: emoji, workflow, option, action, workflow_func, description. Labels live in wizard_core.MENUS.
    {"emoji": "📁", "workflow": WorkflowKind.STATUS, "option": 1, "action": "repository", "workflow_func": repository_status, "description": "Owner, name, branch, authentication and working tree state."},
    {"emoji": "📊", "workflow": WorkflowKind.STATUS, "option": 2, "action": "issues", "workflow_func": issue_summary, "description": "Open and closed issue counts with the completion percentage."},
    {"emoji": "🕒", "workflow": WorkflowKind.STATUS, "option": 3, "action": "activity", "workflow_func": recent_activity, "description": "The last five issues and pull requests."},
    {"emoji": "📋", "workflow": WorkflowKind.STATUS, "option": 4, "action": "project", "workflow_func": project_board_status, "description": "Summary of the board configured by PROJECT_URL."},
    {"emoji": "🚀", "workflow": WorkflowKind.RELEASE, "option": 1, "action": "wizard", "workflow_func": run_release_wizard, "description": "Compute the next version, preview the changelog and create the release."},
    {"emoji": "🏷️", "workflow": WorkflowKind.RELEASE, "option": 2, "action": "version", "workflow_func": version_info, "description": "Latest tag, current version and the next version for each bump kind."},
    {"emoji": "✅", "workflow": WorkflowKind.RELEASE, "option": 3, "action": "prerequisites", "workflow_func": release_prerequisites, "description": "Branch, working tree, unpushed commits, README and release blockers."},
    {"emoji": "📝", "workflow": WorkflowKind.ISSUE, "option": 1, "action": "create", "workflow_func": create_issue, "description": "Create an issue with a multi-line body, labels and optional project assignment."},
    {"emoji": "✏️", "workflow": WorkflowKind.ISSUE, "option": 2, "action": "update", "workflow_func": update_issue, "description": "Change the title, body, labels or state of an issue."},
    {"emoji": "🔗", "workflow": WorkflowKind.ISSUE, "option": 3, "action": "link", "workflow_func": link_issues, "description": "Make one issue a sub-issue of another."},
    {"emoji": "🔁", "workflow": WorkflowKind.ISSUE, "option": 4, "action": "bulk", "workflow_func": bulk_operations, "description": "Close, label, add to the project or create several issues at once."},
    {"emoji": "⚙️", "workflow": WorkflowKind.CONFIG, "option": 1, "action": "view", "workflow_func": view_configuration, "description": "Effective settings, tools, repository and session details."},
    {"emoji": "🛠️", "workflow": WorkflowKind.CONFIG, "option": 2, "action": "update", "workflow_func": update_settings, "description": "Change log level, logging or project URL, or reset to defaults."},
    {"emoji": "🐙", "workflow": WorkflowKind.CONFIG, "option": 3, "action": "test", "workflow_func": test_github_cli, "description": "Check gh and git, authentication and an API call."},
    {"emoji": "🧾", "workflow": WorkflowKind.CONFIG, "option": 4, "action": "errors", "workflow_func": error_log, "description": "Error statistics, recent entries and clearing."},
]

WORKFLOW_REGISTRY = {(w["workflow"], w["action"]): w["workflow_func"] for w in WORKFLOW_MANIFEST}
MENU_ACTIONS = {(w["workflow"].value, w["option"]): w["action"] for w in WORKFLOW_MANIFEST}
MENU_HINTS = {(w["workflow"].value, w["option"]): (w["emoji"], w["description"]) for w in WORKFLOW_MANIFEST}
