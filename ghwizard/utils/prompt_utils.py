"""
Prompt utilities for the GitHub wizard.
Handles all user input prompts: free text, multi-line bodies, selection and confirmation.
"""
import questionary
from questionary import Choice, Style as QStyle
from ghwizard.utils.rich_prompt import console, rich_panel

DEFAULT_PROMPT_STYLE = QStyle([
    ("selected", "fg:#2da44e bold"),
    ("pointer", "fg:#0969da bold"),
    ("question", "fg:#00aaee bold"),
    ("answer", "fg:#bf8700 bold"),
    ("highlighted", "fg:#0969da bold"),
])

def prompt_text(message, default=None, **kwargs):
    return questionary.text(message, default=default or "", style=DEFAULT_PROMPT_STYLE, **kwargs).ask()

def prompt_select(message, choices, **kwargs):
    style = kwargs.pop('style', DEFAULT_PROMPT_STYLE)
    if choices and isinstance(choices[0], dict) and 'name' in choices[0] and 'value' in choices[0]:
        choices = [Choice(title=c['name'], value=c['value']) for c in choices]
    picked = questionary.select(message, choices=choices, style=style, **kwargs).ask()
    if isinstance(picked, Choice):
        picked = picked.value
    return picked

def prompt_confirm(message, default=False, **kwargs):
    return questionary.confirm(message, default=default, style=DEFAULT_PROMPT_STYLE, **kwargs).ask()

def prompt_multiline(message):
    """
    Read a multi-line body. Input ends after two consecutive blank lines.
    Returns the body with trailing blank lines removed, or None when cancelled (Ctrl-C/Ctrl-D).
    """
    rich_panel(f"{message}\n(finish with two empty lines)", style="prompt")
    lines = []
    blank_run = 0
    while blank_run < 2:
        try:
            line = console.input("")
        except (EOFError, KeyboardInterrupt):
            console.print()
            return None
        if line.strip() == "":
            blank_run += 1
        else:
            blank_run = 0
        lines.append(line)
    while lines and lines[-1].strip() == "":
        lines.pop()
    return "\n".join(lines)

__all__ = [
    "prompt_text",
    "prompt_select",
    "prompt_confirm",
    "prompt_multiline",
]
