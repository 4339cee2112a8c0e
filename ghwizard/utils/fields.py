"""
ghwizard.utils.fields

Custom Marshmallow fields and validators shared by the wizard, the issue manager and the
release manager. Every user-supplied value passes through one of these before it reaches GitHub.
"""
import re
from marshmallow import fields, ValidationError, Schema, pre_load

SEMVER_PATTERN = re.compile(r'^([0-9]+)\.([0-9]+)\.([0-9]+)$')
PROJECT_URL_PATTERN = re.compile(r'^https://github\.com/(orgs|users)/.+/projects/[0-9]+$')
DIGITS = re.compile(r'[0-9]+')
PRE_RELEASE_ID = re.compile(r'[0-9A-Za-z-]+')
CONTROL_CHARS = re.compile(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]')
CONFIRM_YES = ("y", "yes")
CONFIRM_NO = ("n", "no")


def parse_range(range_spec):
    """
    Parse an inclusive 'min-max' range string into a pair of ints.
    Raises ValueError for anything else.
    """
    match = re.match(r'^\s*([0-9]+)\s*-\s*([0-9]+)\s*$', str(range_spec))
    if not match:
        raise ValueError(f"Invalid range specification: {range_spec!r}")
    low, high = int(match.group(1)), int(match.group(2))
    if low > high:
        raise ValueError(f"Invalid range specification: {range_spec!r}")
    return low, high


class MenuOptionField(fields.Str):
    """
    Menu selection within an inclusive range. Deserializes to int.
    """
    def __init__(self, range_spec="1-5", **kwargs):
        super().__init__(**kwargs)
        self.low, self.high = parse_range(range_spec)

    def _deserialize(self, value, attr, data, **kwargs):
        value = super()._deserialize(value, attr, data, **kwargs).strip()
        if not value:
            raise ValidationError("Please enter a menu option.")
        if not DIGITS.fullmatch(value):
            raise ValidationError(f"Please enter a number between {self.low} and {self.high}.")
        number = int(value)
        if number < self.low or number > self.high:
            raise ValidationError(f"Option {number} is out of range ({self.low}-{self.high}).")
        return number


class IssueNumberField(fields.Str):
    """
    GitHub issue number: digits only, greater than zero. Deserializes to int.
    """
    def _deserialize(self, value, attr, data, **kwargs):
        value = super()._deserialize(str(value), attr, data, **kwargs).strip()
        if not value:
            raise ValidationError("Issue number cannot be empty.")
        if not DIGITS.fullmatch(value):
            raise ValidationError("Issue number must be a positive integer (e.g., 42).")
        if int(value) <= 0:
            raise ValidationError("Issue number must be greater than zero.")
        return int(value)


class SemVerField(fields.Str):
    """
    Semantic version triple without a leading 'v' (e.g., 1.2.3).
    """
    def _deserialize(self, value, attr, data, **kwargs):
        value = super()._deserialize(value, attr, data, **kwargs).strip()
        if not SEMVER_PATTERN.match(value):
            raise ValidationError("Version must be MAJOR.MINOR.PATCH (e.g., 1.2.3).")
        return value


class PreReleaseIdField(fields.Str):
    """
    One pre-release identifier, the N in alpha.N: alphanumerics and hyphens,
    numeric identifiers without leading zeros.
    """
    def _deserialize(self, value, attr, data, **kwargs):
        value = super()._deserialize(value, attr, data, **kwargs).strip()
        if not PRE_RELEASE_ID.fullmatch(value):
            raise ValidationError("Use letters, digits or hyphens (e.g., 1 or rc2).")
        if DIGITS.fullmatch(value) and len(value) > 1 and value.startswith("0"):
            raise ValidationError("Numeric pre-release identifiers cannot have leading zeros.")
        return value


class ConfirmationField(fields.Str):
    """
    Case-insensitive y/yes/n/no. Deserializes to bool.
    """
    def _deserialize(self, value, attr, data, **kwargs):
        value = super()._deserialize(value, attr, data, **kwargs).strip().lower()
        if value in CONFIRM_YES:
            return True
        if value in CONFIRM_NO:
            return False
        raise ValidationError("Please answer y, yes, n or no.")


class ProjectUrlField(fields.Str):
    """
    GitHub Projects URL, e.g. https://github.com/orgs/acme/projects/3.
    """
    def _deserialize(self, value, attr, data, **kwargs):
        value = super()._deserialize(value, attr, data, **kwargs).strip()
        if not PROJECT_URL_PATTERN.match(value):
            raise ValidationError("Project URL must look like https://github.com/orgs/OWNER/projects/N.")
        return value


class BaseOptionsSchema(Schema):
    """
    Base schema for CLI options. Strips strings and coerces empty strings to None for required fields.
    """
    @pre_load
    def normalize(self, data, **kwargs):
        data = dict(data)
        for k, v in list(data.items()):
            if isinstance(v, str):
                v = v.strip()
                field_obj = self.fields.get(k)
                if field_obj and getattr(field_obj, 'required', False) and v == '':
                    data[k] = None
                else:
                    data[k] = v
        return data


def validate_text(min_length: int = 1):
    """Build a validator requiring min_length characters after trimming and no control characters."""
    def _validate(value):
        if not isinstance(value, str) or not value.strip():
            raise ValidationError("This field cannot be empty.")
        if len(value.strip()) < min_length:
            raise ValidationError(f"Please enter at least {min_length} characters.")
        if CONTROL_CHARS.search(value):
            raise ValidationError("Text contains control characters.")
    return _validate
