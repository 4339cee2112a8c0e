import logging
import re
import uuid
from typing import Any, Dict, Optional

# Settings whose values never reach a log line or the screen
SENSITIVE_KEYS = ("token", "password", "secret", "api_key")
REDACTED = "***REDACTED***"

# Personal access tokens, OAuth and app tokens as issued by GitHub
GITHUB_TOKEN_RE = re.compile(r'\b(?:gh[pousr]_[A-Za-z0-9]{20,}|github_pat_[A-Za-z0-9_]{20,})\b')

_logger = logging.getLogger("ghwizard")


def redact_sensitive(settings: Any) -> Any:
    """
    Copy a settings mapping with every secret-looking key replaced by '***REDACTED***'.
    Anything that is not a dict is returned untouched.
    """
    if not isinstance(settings, dict):
        return settings
    return {
        key: REDACTED if any(word in str(key).lower() for word in SENSITIVE_KEYS) else value
        for key, value in settings.items()
    }


def scrub_tokens(text: str) -> str:
    return GITHUB_TOKEN_RE.sub(REDACTED, text)


def mask_token(token: Optional[str]) -> str:
    """Render a token as [SET]/[NOT SET] for display."""
    return "[SET]" if token else "[NOT SET]"


def contextual_log(level: str, message: str, extra: Optional[Dict[str, Any]] = None, **fields) -> None:
    """
    Log to the 'ghwizard' logger with structured fields (workflow, operation, status,
    error_type, duration_ms...). Fields given as keywords win over those in `extra`.
    'warn' is accepted for 'warning'; exc_info is passed through to the logger.
    Token-shaped strings in the message are scrubbed before it is emitted.
    """
    exc_info = fields.pop('exc_info', False)
    context = dict(extra or {})
    context.update(fields)
    context.setdefault('operation_id', str(uuid.uuid4()))
    method = getattr(_logger, 'warning' if level == 'warn' else level, _logger.info)
    method(scrub_tokens(str(message)), extra=context, exc_info=exc_info, stacklevel=2)


def build_context(workflow=None, session_id=None, operation=None, **fields) -> Dict[str, Any]:
    """Log fields shared by every record a workflow run emits; None values are left out."""
    context = {'workflow': workflow, 'session_id': session_id, 'operation': operation, **fields}
    return {key: value for key, value in context.items() if value is not None}
