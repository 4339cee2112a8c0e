"""
Progress bar and spinner utilities for the GitHub wizard.
"""
from rich.progress import Progress, SpinnerColumn, BarColumn, TextColumn, TimeElapsedColumn
from contextlib import contextmanager
from rich.markup import escape
from ghwizard.utils.rich_prompt import console, PROGRESS_ICON, SUCCESS_ICON

@contextmanager
def spinner(message: str):
    with console.status(f"{PROGRESS_ICON} {escape(message)}"):
        yield
    console.print(f"{SUCCESS_ICON} Done.")

def progress_bar(iterable, desc="Progress"):
    total = len(iterable) if hasattr(iterable, '__len__') else None
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task(desc, total=total)
        for index, element in enumerate(iterable, 1):
            yield element
            progress.update(task, completed=index)

def progress_line(current: int, total: int, message: str = "Processing", width: int = 30) -> str:
    """Render a static text progress bar such as '[#####-----] 50% Processing (5/10)'."""
    if total <= 0:
        return f"[{'-' * width}] 0% {message} (0/0)"
    filled = int(width * current / total)
    percent = int(100 * current / total)
    return f"[{'#' * filled}{'-' * (width - filled)}] {percent}% {message} ({current}/{total})"
