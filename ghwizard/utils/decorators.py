"""
Decorators and logging helpers for the GitHub wizard.
Handles operation timing and workflow error handling.
"""
import time
import functools
from ghwizard import cli_logging_setup
from ghwizard.errors import ErrorKind, GitHubError, ValidationFailure, VersionError
from ghwizard.utils.logging import contextual_log, build_context
from ghwizard.utils.message_utils import info, error

SLOW_THRESHOLDS_MS = {
    "github_api": 2000,
}
DEFAULT_SLOW_THRESHOLD_MS = 5000

def log_timing(operation, kind, duration_ms, status="success"):
    """
    Record how long an operation took. With performance monitoring on, slow operations
    (over 2s for github_api calls, 5s for anything else) are logged as warnings.
    """
    duration_ms = int(duration_ms)
    contextual_log('debug', f"Operation {operation} ({kind}) completed in {duration_ms}ms",
                   operation=operation, duration_ms=duration_ms, status=status)
    if not cli_logging_setup.PERFORMANCE_MONITORING:
        return False
    threshold = SLOW_THRESHOLDS_MS.get(kind, DEFAULT_SLOW_THRESHOLD_MS)
    if duration_ms > threshold:
        contextual_log('warning', f"Slow operation: {operation} took {duration_ms}ms (threshold {threshold}ms)",
                       operation=operation, duration_ms=duration_ms, status="slow")
        return True
    return False

def timed(kind="operation"):
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            start = time.perf_counter()
            status = "success"
            try:
                return func(*args, **kwargs)
            except Exception:
                status = "error"
                raise
            finally:
                log_timing(func.__name__, kind, (time.perf_counter() - start) * 1000, status=status)
        return wrapper
    return decorator

def workflow_error_handler(workflow_name):
    """
    Wrap a workflow entry point taking a WizardContext as its first argument.

    GitHub failures are routed to the context's ErrorHandler and the workflow reports False.
    Malformed release versions are shown and also report False; ValidationFailure is recorded
    as an input error.
    Ctrl-C returns to the menu. Anything else is logged, shown and re-raised.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(ctx, *args, **kwargs):
            session = ctx.session
            context = build_context(workflow_name, session.session_id, func.__name__)
            start_time = time.time()
            contextual_log('info', f"[{workflow_name}] {func.__name__} started", extra=context, status="started")
            try:
                result = func(ctx, *args, **kwargs)
            except GitHubError as e:
                contextual_log('error', f"[{workflow_name}] {func.__name__} failed: {e}", extra=context,
                               error_type=e.kind.value, status="error")
                ctx.errors.handle_github_exception(e, context=func.__name__)
                return False
            except VersionError as e:
                contextual_log('error', f"[{workflow_name}] {func.__name__} failed: {e}", extra=context,
                               error_type="version", status="error")
                error(f"Version error: {e}", "Release tags must look like vMAJOR.MINOR.PATCH.", workflow=workflow_name)
                return False
            except ValidationFailure as e:
                contextual_log('error', f"[{workflow_name}] {func.__name__} rejected input: {e}", extra=context,
                               error_type="input", status="error")
                ctx.errors.handle_error(ErrorKind.INPUT, str(e), None, func.__name__)
                return False
            except (KeyboardInterrupt, EOFError):
                contextual_log('warning', f"[{workflow_name}] Interrupted; returning to menu.", extra=context, status="interrupted")
                info(f"{func.__name__.replace('_', ' ').capitalize()} cancelled.", workflow=workflow_name)
                return False
            except Exception as e:
                contextual_log('error', f"[{workflow_name}] Exception: {e}", exc_info=True, extra=context,
                               error_type=type(e).__name__, status="error")
                error(f"[{workflow_name}] Unexpected error: {e}", workflow=workflow_name)
                raise
            duration = int((time.time() - start_time) * 1000)
            contextual_log('info', f"[{workflow_name}] {func.__name__} finished", extra=context,
                           status="success" if result is not False else "error", duration_ms=duration)
            return result
        return wrapper
    return decorator
