"""
Output and display utilities for the GitHub wizard.
Headers, menus, status lines, tables and key/value blocks, all rendered through rich.
"""
from rich.table import Table
from rich import box
from rich.markup import escape
from rich.text import Text
from ghwizard.utils.rich_prompt import (
    console, rich_panel, ARROW_ICON, SUCCESS_ICON, ERROR_ICON, WARNING_ICON, INFO_ICON, PROGRESS_ICON
)

STATUS_STYLES = {
    "success": ("success", SUCCESS_ICON),
    "error": ("error", ERROR_ICON),
    "warning": ("warning", WARNING_ICON),
    "info": ("info", INFO_ICON),
    "progress": ("progress", PROGRESS_ICON),
}

def print_header(title: str, subtitle: str = None):
    rich_panel(f"[header]{escape(title)}[/header]" + (f"\n[muted]{escape(subtitle)}[/muted]" if subtitle else ""), style="banner")

def print_section_header(header: str):
    console.rule(f"[info]{escape(header)}[/info]")

def print_menu(title, options, selected=None, hints=None):
    """
    Render a numbered menu.
    Args:
        title (str): Menu title.
        options (list): Ordered (key, label) pairs.
        selected (int, optional): Key to highlight.
        hints (dict, optional): key -> (emoji, description) shown with the label.
    """
    print_header(title)
    hints = hints or {}
    for key, label in options:
        emoji, description = hints.get(key, ("", None))
        text = f"{emoji} {label}" if emoji else label
        if selected is not None and key == selected:
            console.print(f"[menu.selected]{ARROW_ICON} {key}. {text}[/menu.selected]")
        else:
            console.print(f"  [menu.key]{key}.[/menu.key] {text}")
        if description:
            console.print(f"      [muted]{description}[/muted]")
    console.print()

def print_status_line(status: str, message: str, details: str = None):
    style, icon = STATUS_STYLES.get(status, (None, ""))
    if style:
        console.print(f"[{style}]{icon} {escape(str(message))}[/{style}]")
    else:
        console.print(Text(str(message)))
    if details:
        console.print(Text(f"   {details}"))

def print_table(headers, rows, title=None):
    table = Table(title=title, box=box.SIMPLE_HEAVY)
    for header in headers:
        table.add_column(str(header))
    for row in rows:
        table.add_row(*[Text("" if cell is None else str(cell)) for cell in row])
    console.print(table)

def print_key_value(pairs, title=None):
    """Print an aligned key/value block from a dict or a list of pairs."""
    items = pairs.items() if isinstance(pairs, dict) else pairs
    table = Table(title=title, show_header=False, box=None, pad_edge=False)
    table.add_column(style="bold")
    table.add_column()
    for key, value in items:
        table.add_row(Text(f"{key}:"), Text("" if value is None else str(value)))
    console.print(table)

def status_emoji(state: str) -> str:
    """
    Map an issue/PR state string to an emoji for compact listings.
    """
    s = state.lower() if state else ''
    if s in ['closed', 'merged', 'completed']:
        return '✅'
    if s in ['open', 'draft']:
        return '🟢'
    return '⬜️'
