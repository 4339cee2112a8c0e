"""
Validation utilities for the GitHub wizard.
One entry point dispatched by kind, plus the prompt-until-valid helper used by interactive workflows.
"""
from marshmallow import ValidationError, fields
from ghwizard.utils.fields import (
    MenuOptionField, IssueNumberField, SemVerField, PreReleaseIdField, ConfirmationField, validate_text
)
from ghwizard.errors import ErrorKind, INPUT_GUIDANCE
from ghwizard.utils.prompt_utils import prompt_text
from ghwizard.utils.rich_prompt import rich_error

INPUT_KINDS = ("menu_option", "issue_number", "version", "pre_release", "text", "confirmation")


def _field_for(kind, range_spec="1-5", min_length=1):
    if kind == "menu_option":
        return MenuOptionField(range_spec=range_spec)
    if kind == "issue_number":
        return IssueNumberField()
    if kind == "version":
        return SemVerField()
    if kind == "pre_release":
        return PreReleaseIdField()
    if kind == "confirmation":
        return ConfirmationField()
    if kind == "text":
        return fields.Str(validate=validate_text(min_length))
    raise ValueError(f"Unknown validation kind: {kind}")


def _first_message(err):
    messages = err.messages
    if isinstance(messages, list) and messages:
        return str(messages[0])
    if isinstance(messages, dict) and messages:
        first = next(iter(messages.values()))
        return str(first[0] if isinstance(first, list) else first)
    return str(err)


def check_input(kind, value, range_spec="1-5", min_length=1):
    """
    Validate a raw value.
    Args:
        kind (str): One of INPUT_KINDS.
        value (str): Raw user input.
        range_spec (str): Inclusive 'min-max' range for menu_option.
        min_length (int): Minimum trimmed length for text.
    Returns:
        tuple: (ok, parsed_value_or_None, error_message_or_None)
    """
    field = _field_for(kind, range_spec=range_spec, min_length=min_length)
    if value is None:
        return False, None, "A value is required."
    try:
        parsed = field.deserialize(value)
    except ValidationError as err:
        return False, None, _first_message(err)
    if kind == "text":
        parsed = parsed.strip()
    return True, parsed, None


def validate_input(kind, value, range_spec="1-5", min_length=1):
    """Pass/fail form of check_input."""
    ok, _, _ = check_input(kind, value, range_spec=range_spec, min_length=min_length)
    return ok


def validate_required(value):
    """
    Return True if the value is not None and not empty (after stripping).
    """
    return value is not None and str(value).strip() != ""


def validate_issue_args(args):
    """
    The create mode of the issue manager takes exactly four non-blank arguments.
    Returns an error message, or None when the arguments are acceptable.
    """
    if len(args) != 4:
        return f"Expected 4 arguments (PARENT_TITLE PARENT_BODY CHILD_TITLE CHILD_BODY), got {len(args)}"
    if not all(validate_required(a) for a in args):
        return "All arguments must be non-empty and contain non-whitespace characters"
    return None


def prompt_validated(kind, message, default=None, range_spec="1-5", min_length=1, required=True,
                     errors=None, context=None):
    """
    Prompt until the answer validates. Returns the parsed value, or None when the prompt is
    cancelled (or left blank while not required).

    Rejections go to errors.handle_error as INPUT failures when an ErrorHandler is given,
    so they land in the error log like rejected menu keys.
    """
    while True:
        raw = prompt_text(message, default=default)
        if raw is None:
            return None
        if not required and raw.strip() == "":
            return None
        ok, parsed, problem = check_input(kind, raw, range_spec=range_spec, min_length=min_length)
        if ok:
            return parsed
        if errors is not None:
            errors.handle_error(ErrorKind.INPUT, problem, kind, context or kind)
        else:
            rich_error(f"Input validation error: {problem}", INPUT_GUIDANCE.get(kind))
