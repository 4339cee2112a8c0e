"""
Menu loop for the GitHub wizard.
Renders the current menu, validates the keystroke and either navigates or dispatches a workflow.
"""
from ghwizard.features import MENU_ACTIONS, MENU_HINTS
from ghwizard.utils.logging import contextual_log
from ghwizard.utils.message_utils import info
from ghwizard.utils.output_utils import print_menu
from ghwizard.utils.prompt_utils import prompt_text, prompt_confirm
from ghwizard.wizard_core import MENUS, MAIN_MENU, handle_user_input, execute_workflow

# Main menu option -> section
MAIN_SECTIONS = {1: "status", 2: "release", 3: "issue", 4: "config"}
EXIT_OPTION = 5


def render_menu(session):
    menu = MENUS[session.current_menu]
    hints = {key: MENU_HINTS[(menu.name, key)] for key, _ in menu.options if (menu.name, key) in MENU_HINTS}
    print_menu(menu.title, menu.options, hints=hints)
    return menu


def dispatch_choice(ctx, menu, key, confirm_exit=prompt_confirm):
    """
    Act on a validated option of menu.
    Returns the workflow result for workflow options, None for navigation.
    """
    session = ctx.session
    if menu.name == MAIN_MENU:
        if key == EXIT_OPTION:
            if confirm_exit("Are you sure you want to exit?", default=True):
                session.exit_wizard()
            return None
        session.navigate_to_section(MAIN_SECTIONS[key])
        return None
    if key == len(menu.options):
        session.return_to_main()
        return None
    action = MENU_ACTIONS[(menu.name, key)]
    return execute_workflow(ctx, menu.name, action)


def run_menu_loop(ctx, read_key=prompt_text, confirm_exit=prompt_confirm):
    """
    Loop until the session stops running. Invalid keys are reported and the same menu is shown again.
    A cancelled prompt (Ctrl-C/Ctrl-D) leaves a sub-menu, or asks to exit from the main menu.
    """
    session = ctx.session
    while session.running:
        menu = render_menu(session)
        raw = read_key(f"Select an option ({menu.range_spec}):")
        if raw is None:
            if menu.name == MAIN_MENU:
                dispatch_choice(ctx, menu, EXIT_OPTION, confirm_exit=confirm_exit)
            else:
                info("Returning to main menu.")
                session.return_to_main()
            continue
        result = handle_user_input(raw, menu.range_spec, f"{menu.name}_menu", ctx.errors)
        if not result:
            contextual_log('debug', f"Rejected menu input {raw!r} ({result.reason})", operation="menu_input",
                           session_id=session.session_id)
            continue
        contextual_log('debug', f"Menu {menu.name}: option {result.value} ({menu.label(result.value)})",
                       operation="menu_input", session_id=session.session_id)
        dispatch_choice(ctx, menu, result.value, confirm_exit=confirm_exit)
    return session
