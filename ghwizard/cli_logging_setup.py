"""
Logging setup and configuration for the GitHub wizard and its companion scripts.
"""
import os
import sys
import logging
import socket
import uuid
from logging.handlers import RotatingFileHandler
from pythonjsonlogger import jsonlogger
from ghwizard import __version__

CLI_VERSION = __version__
HOSTNAME = socket.gethostname()
PID = os.getpid()

DEFAULT_LOG_FILE = "./logs/gh-issue-manager.log"
DEFAULT_ROTATION_SIZE = 10485760
DEFAULT_ROTATION_COUNT = 5
LEVEL_NAMES = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}
TEXT_FORMAT = '[%(asctime)s] [%(levelname)s] [%(funcName)s] %(message)s'
TEXT_DATEFMT = '%Y-%m-%d %H:%M:%S'

# Read by the timing decorator; updated on every setup_logging call
PERFORMANCE_MONITORING = False

logger = logging.getLogger("ghwizard")


class WizardJsonFormatter(jsonlogger.JsonFormatter):
    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record['asctime'] = getattr(record, 'asctime', self.formatTime(record, self.datefmt))
        log_record['levelname'] = record.levelname
        log_record['name'] = record.name
        log_record['function'] = message_dict.get('function') or getattr(record, 'function', record.funcName)
        log_record['workflow'] = message_dict.get('workflow') or getattr(record, 'workflow', None)
        log_record['session_id'] = message_dict.get('session_id') or getattr(record, 'session_id', None)
        log_record['operation_id'] = message_dict.get('operation_id') or getattr(record, 'operation_id', str(uuid.uuid4()))
        log_record['operation'] = message_dict.get('operation') or getattr(record, 'operation', None)
        log_record['status'] = message_dict.get('status') or getattr(record, 'status', None)
        log_record['error_type'] = message_dict.get('error_type') or getattr(record, 'error_type', None)
        log_record['duration_ms'] = message_dict.get('duration_ms') or getattr(record, 'duration_ms', None)
        log_record['retry_count'] = message_dict.get('retry_count') or getattr(record, 'retry_count', None)
        log_record['cli_version'] = CLI_VERSION
        log_record['hostname'] = HOSTNAME
        log_record['pid'] = PID


def resolve_level(name):
    """Map a LOG_LEVEL string (WARN included) onto a logging level, INFO when unknown."""
    return LEVEL_NAMES.get(str(name or "INFO").upper(), logging.INFO)


def _as_int(value, default):
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


def build_formatter(log_format):
    if str(log_format).lower() == 'json':
        return WizardJsonFormatter(
            '%(asctime)s %(levelname)s %(name)s %(message)s %(function)s %(workflow)s %(session_id)s %(operation_id)s %(operation)s %(status)s %(error_type)s %(duration_ms)s %(retry_count)s'
        )
    return logging.Formatter(TEXT_FORMAT, datefmt=TEXT_DATEFMT)


def reset_logging():
    """Detach and close every handler previously installed on the ghwizard logger."""
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()


def setup_logging(settings=None):
    """
    Configure the ghwizard logger from a settings mapping.

    Recognised keys: ENABLE_LOGGING, DEBUG_MODE, VERBOSE_MODE, PERFORMANCE_MONITORING,
    LOG_LEVEL, LOG_FILE, LOG_FORMAT, LOG_ROTATION_SIZE, LOG_ROTATION_COUNT.
    Calling it again replaces the previous configuration.

    Returns:
        logging.Logger: the configured ghwizard logger.
    """
    global PERFORMANCE_MONITORING
    settings = settings or {}
    reset_logging()

    debug = bool(settings.get("DEBUG_MODE"))
    enabled = bool(settings.get("ENABLE_LOGGING")) or debug
    PERFORMANCE_MONITORING = bool(settings.get("PERFORMANCE_MONITORING"))
    level = logging.DEBUG if debug else resolve_level(settings.get("LOG_LEVEL"))

    if not enabled:
        logger.addHandler(logging.NullHandler())
        logger.setLevel(level)
        return logger

    log_file = settings.get("LOG_FILE") or DEFAULT_LOG_FILE
    log_dir = os.path.dirname(log_file)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
    handler = RotatingFileHandler(
        log_file,
        maxBytes=_as_int(settings.get("LOG_ROTATION_SIZE"), DEFAULT_ROTATION_SIZE),
        backupCount=_as_int(settings.get("LOG_ROTATION_COUNT"), DEFAULT_ROTATION_COUNT),
        encoding="utf-8",
    )
    handler.setFormatter(build_formatter(settings.get("LOG_FORMAT", "text")))
    logger.addHandler(handler)

    if settings.get("VERBOSE_MODE") or debug:
        echo = logging.StreamHandler(sys.stderr)
        echo.setLevel(logging.WARNING)
        echo.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt=TEXT_DATEFMT))
        logger.addHandler(echo)

    logger.setLevel(level)
    return logger
