import os
import re
import yaml
from dotenv import dotenv_values
from marshmallow import fields, validate, ValidationError, pre_load
from ghwizard.errors import ConfigError
from ghwizard.utils.fields import BaseOptionsSchema, ProjectUrlField
from ghwizard.utils.logging import contextual_log, redact_sensitive, mask_token
from ghwizard.utils.output_utils import print_key_value
from ghwizard.utils.rich_prompt import rich_warning

"""
config.py

Configuration loading for the GitHub wizard and its companion scripts. Values come from the
process environment, `.env.local`, `.env`, an optional YAML file and built-in defaults, in that
order of priority. Every value is validated with a marshmallow schema; invalid values are reported
and replaced by their defaults so the tools can still start.
"""

LOG_LEVELS = ["DEBUG", "INFO", "WARN", "ERROR"]

DEFAULTS = {
    "ENABLE_LOGGING": False,
    "LOG_LEVEL": "INFO",
    "LOG_FILE": "./logs/gh-issue-manager.log",
    "LOG_FORMAT": "text",
    "DEBUG_MODE": False,
    "VERBOSE_MODE": False,
    "PERFORMANCE_MONITORING": False,
    "LOG_ROTATION_SIZE": 10485760,
    "LOG_ROTATION_COUNT": 5,
    "PROJECT_URL": None,
    "GITHUB_TOKEN": None,
    "ERROR_LOG_FILE": "wizard-errors.log",
}

BASIC_CONFIG = """# GitHub wizard configuration
ENABLE_LOGGING=true
LOG_LEVEL=INFO
LOG_FILE=./logs/gh-issue-manager.log
# PROJECT_URL=https://github.com/orgs/OWNER/projects/1
"""


class WizardConfigSchema(BaseOptionsSchema):
    """
    Marshmallow schema for the wizard settings. All keys are optional; missing keys take defaults.
    """
    ENABLE_LOGGING = fields.Boolean(error_messages={"invalid": "ENABLE_LOGGING must be true or false."})
    LOG_LEVEL = fields.Str(validate=validate.OneOf(LOG_LEVELS, error="LOG_LEVEL must be one of DEBUG, INFO, WARN, ERROR."))
    LOG_FILE = fields.Str(validate=validate.Length(min=1))
    LOG_FORMAT = fields.Str(validate=validate.OneOf(["text", "json"], error="LOG_FORMAT must be text or json."))
    DEBUG_MODE = fields.Boolean(error_messages={"invalid": "DEBUG_MODE must be true or false."})
    VERBOSE_MODE = fields.Boolean(error_messages={"invalid": "VERBOSE_MODE must be true or false."})
    PERFORMANCE_MONITORING = fields.Boolean(error_messages={"invalid": "PERFORMANCE_MONITORING must be true or false."})
    LOG_ROTATION_SIZE = fields.Int(strict=False, validate=validate.Range(min=1, error="LOG_ROTATION_SIZE must be a positive integer."))
    LOG_ROTATION_COUNT = fields.Int(strict=False, validate=validate.Range(min=1, error="LOG_ROTATION_COUNT must be a positive integer."))
    PROJECT_URL = ProjectUrlField(allow_none=True)
    GITHUB_TOKEN = fields.Str(allow_none=True)
    ERROR_LOG_FILE = fields.Str(validate=validate.Length(min=1))

    @pre_load
    def uppercase_levels(self, data, **kwargs):
        data = dict(data)
        if isinstance(data.get("LOG_LEVEL"), str):
            data["LOG_LEVEL"] = data["LOG_LEVEL"].strip().upper()
        if isinstance(data.get("LOG_FORMAT"), str):
            data["LOG_FORMAT"] = data["LOG_FORMAT"].strip().lower()
        if data.get("PROJECT_URL") == "":
            data["PROJECT_URL"] = None
        return data


class ConfigLoader:
    """
    Loads and validates configuration for the wizard.
    - Priority: CLI overrides > environment variable > .env.local > .env > YAML > default.
    - Invalid values are reported once and replaced by their defaults.
    """
    def __init__(self, config_path=None, env_file=".env", env_local_file=".env.local", environ=None):
        """
        Args:
            config_path (str, optional): YAML config file. Defaults to 'ghwizard.yaml'.
            env_file (str): dotenv file with project settings.
            env_local_file (str): dotenv file with local overrides.
            environ (dict, optional): environment mapping; os.environ when omitted.
        """
        self.env_file = env_file
        self.env_local_file = env_local_file
        self.environ = os.environ if environ is None else environ
        self.overrides = {}
        self.config = {}
        config_path = config_path or "ghwizard.yaml"
        if os.path.exists(config_path):
            with open(config_path, 'r') as file:
                self.config = yaml.safe_load(file) or {}
        self.dotenv = {}
        for path in (env_file, env_local_file):
            if path and os.path.exists(path):
                self.dotenv.update({k: v for k, v in dotenv_values(path).items() if v is not None})
        self.problems = {}
        self.settings = self._resolve()

    def _raw(self, key):
        if key in self.overrides:
            return self.overrides[key]
        if key in self.environ:
            return self.environ[key]
        if key in self.dotenv:
            return self.dotenv[key]
        if key in self.config:
            return self.config[key]
        if key.lower() in self.config:
            return self.config[key.lower()]
        return None

    def _resolve(self):
        raw = {key: self._raw(key) for key in DEFAULTS}
        present = {k: v for k, v in raw.items() if v is not None}
        schema = WizardConfigSchema()
        try:
            loaded = schema.load(present)
            self.problems = {}
        except ValidationError as err:
            self.problems = {k: (v[0] if isinstance(v, list) else v) for k, v in err.messages.items()}
            loaded = schema.load({k: v for k, v in present.items() if k not in self.problems})
        settings = dict(DEFAULTS)
        settings.update(loaded)
        return settings

    def report_problems(self):
        for key, message in self.problems.items():
            rich_warning(f"Invalid configuration value for {key}: {message}", f"Using default: {DEFAULTS.get(key)}")
            contextual_log('warning', f"Invalid configuration value for {key}: {message}", operation="load_config", status="invalid")

    def get(self, key, default=None):
        """
        Retrieve a resolved setting by key, or default if it is unset.
        """
        key = key.upper()
        value = self.settings.get(key) if key in DEFAULTS else self._raw(key)
        return default if value is None else value

    def apply_overrides(self, **overrides):
        """
        Apply command-line overrides (e.g. DEBUG_MODE=True) and re-resolve.
        Debug mode also turns logging on at DEBUG level.
        """
        for key, value in overrides.items():
            if value is not None:
                self.overrides[key.upper()] = value
        if self.overrides.get("DEBUG_MODE"):
            self.overrides.setdefault("ENABLE_LOGGING", True)
            self.overrides["LOG_LEVEL"] = "DEBUG"
        self.settings = self._resolve()
        contextual_log('debug', f"Configuration overrides applied: {redact_sensitive(self.overrides)}", operation="apply_overrides")
        return self.settings

    def as_dict(self):
        return dict(self.settings)


def update_config(key, value, env_file=".env"):
    """
    Validate a single setting and write it to the dotenv file, replacing any existing line.
    Raises ConfigError for unknown keys or invalid values.
    """
    key = key.strip().upper()
    if key not in DEFAULTS or key in ("GITHUB_TOKEN",):
        raise ConfigError(f"Unknown configuration key: {key}")
    try:
        WizardConfigSchema().load({key: value})
    except ValidationError as err:
        messages = err.messages.get(key, ["Invalid value."])
        raise ConfigError(f"Invalid value for {key}: {messages[0] if isinstance(messages, list) else messages}")
    value = str(value).strip()
    if isinstance(DEFAULTS[key], bool):
        value = value.lower()
    if key == "LOG_LEVEL":
        value = value.upper()
    lines = []
    if os.path.exists(env_file):
        with open(env_file, 'r') as f:
            lines = f.read().splitlines()
    pattern = re.compile(rf'^\s*(export\s+)?{re.escape(key)}\s*=')
    replaced = False
    for index, line in enumerate(lines):
        if pattern.match(line):
            lines[index] = f"{key}={value}"
            replaced = True
    if not replaced:
        lines.append(f"{key}={value}")
    with open(env_file, 'w') as f:
        f.write("\n".join(lines) + "\n")
    contextual_log('info', f"Configuration updated: {key}={value}", operation="update_config", status="success")
    return True


def reset_config(env_file=".env"):
    """Rewrite the dotenv file with the basic defaults."""
    return create_basic_config(env_file)


def create_basic_config(path=".env"):
    with open(path, 'w') as f:
        f.write(BASIC_CONFIG)
    contextual_log('info', f"Created basic configuration at {path}", operation="create_basic_config", status="success")
    return path


def validate_environment(client, config):
    """
    Check everything the tools need before talking to GitHub.
    Returns:
        list[str]: human-readable problems; empty when the environment is usable.
    """
    problems = []
    if client is not None:
        if not client.is_installed("gh"):
            problems.append("GitHub CLI (gh) is not installed")
        elif not client.auth_status():
            problems.append("GitHub CLI is not authenticated (run 'gh auth login')")
        if not client.is_installed("git"):
            problems.append("git is not installed")
        elif not client.in_git_repo():
            problems.append("Not inside a git repository")
    for key, message in getattr(config, "problems", {}).items():
        if key in ("LOG_LEVEL", "PROJECT_URL"):
            problems.append(message)
    return problems


def validate_wizard_config(config):
    """Non-fatal configuration checks. Returns a list of warnings."""
    warnings = []
    settings = config.settings
    if not settings.get("PROJECT_URL"):
        warnings.append("PROJECT_URL is not set; project board features are disabled")
    if settings.get("ENABLE_LOGGING"):
        log_dir = os.path.dirname(settings.get("LOG_FILE") or "") or "."
        if os.path.exists(log_dir) and not os.access(log_dir, os.W_OK):
            warnings.append(f"Log directory {log_dir} is not writable")
    if settings.get("LOG_ROTATION_SIZE", 0) < 1024:
        warnings.append("LOG_ROTATION_SIZE is very small; logs will rotate constantly")
    return warnings


def dump_debug_config(config):
    settings = dict(config.settings)
    settings["GITHUB_TOKEN"] = mask_token(settings.get("GITHUB_TOKEN"))
    print_key_value(sorted(settings.items()), title="Effective configuration")
