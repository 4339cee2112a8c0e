"""
Message utilities for the GitHub wizard.
Pairs every user-facing message with a log line.
"""
from ghwizard.utils.rich_prompt import rich_info, rich_error, rich_warning, rich_success
from ghwizard.utils.logging import contextual_log

def _log(level, message, extra=None, workflow=None):
    try:
        context = dict(extra or {})
        if workflow:
            context["workflow"] = workflow
        contextual_log(level, str(message), extra=context)
    except Exception:
        pass  # Logging is best-effort

def error(message, suggestion=None, extra=None, workflow=None):
    rich_error(message, suggestion)
    _log('error', message, extra, workflow)

def warning(message, details=None, extra=None, workflow=None):
    rich_warning(message, details)
    _log('warning', message, extra, workflow)

def info(message, details=None, extra=None, workflow=None):
    rich_info(message, details)
    _log('info', message, extra, workflow)

def success(message, details=None, extra=None, workflow=None):
    rich_success(message, details)
    _log('info', message, extra, workflow)
