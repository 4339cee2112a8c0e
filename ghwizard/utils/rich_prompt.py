from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.text import Text
from rich.theme import Theme
from rich import box

# Terminal palette shared by every screen of the wizard
WIZARD_THEME = Theme({
    "info": "bold blue",
    "warning": "bold yellow",
    "error": "bold red",
    "success": "bold green",
    "progress": "bold magenta",
    "prompt": "bold cyan",
    "banner": "bold white on blue",
    "header": "bold white",
    "menu.key": "cyan",
    "menu.selected": "bold green",
    "muted": "grey50",
})

console = Console(theme=WIZARD_THEME)

WIZARD_ICON = "🐙"
SUCCESS_ICON = "✅"
ERROR_ICON = "❌"
WARNING_ICON = "⚠️"
INFO_ICON = "ℹ️"
PROGRESS_ICON = "⏳"
ARROW_ICON = "➤"

def rich_info(message, details=None):
    console.print(f"{INFO_ICON} [info]{escape(str(message))}[/info]")
    if details:
        console.print(f"   [info]{escape(str(details))}[/info]")

def rich_warning(message, details=None):
    console.print(f"{WARNING_ICON} [warning]{escape(str(message))}[/warning]")
    if details:
        console.print(f"   [warning]{escape(str(details))}[/warning]")

def rich_error(message, suggestion=None):
    """
    Print an error panel with an optional remedy line underneath.
    """
    error_text = f"{ERROR_ICON} {message}"
    if suggestion:
        error_text += f"\nHint: {suggestion}"
    console.print(Panel(Text(error_text, style="bold red"), title="[bold red]Error[/]", border_style="red"))

def rich_success(message, details=None):
    console.print(f"{SUCCESS_ICON} [success]{escape(str(message))}[/success]")
    if details:
        console.print(f"   [success]{escape(str(details))}[/success]")

def rich_panel(message, title=None, style="banner"):
    console.print(Panel(message, title=title, style=style, box=box.ROUNDED))

def panel_welcome(repo=None):
    body = f"{WIZARD_ICON} GitHub Issue Manager Wizard"
    if repo:
        body += f"\n\nRepository: {escape(repo)}"
    rich_panel(body, title="Welcome", style="banner")

def panel_goodbye():
    rich_panel(f"{WIZARD_ICON} Exiting GitHub Wizard...", title=None, style="muted")
