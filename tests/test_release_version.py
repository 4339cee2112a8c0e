import pytest

from ghwizard.errors import VersionError
from ghwizard.release import calculate_next_version, get_current_version, parse_version


@pytest.mark.parametrize("bump, expected", [
    ("patch", "1.2.4"),
    ("minor", "1.3.0"),
    ("major", "2.0.0"),
])
def test_bumps(bump, expected):
    assert calculate_next_version("1.2.3", bump) == expected


def test_default_bump_is_patch():
    assert calculate_next_version("0.9.9") == "0.9.10"


def test_pre_release_tag_is_appended():
    assert calculate_next_version("1.2.3", "patch", pre_release=True, pre_release_tag="alpha.1") == "1.2.4-alpha.1"
    assert calculate_next_version("1.2.3", "major", True, "beta.2") == "2.0.0-beta.2"


def test_tag_ignored_without_pre_release():
    assert calculate_next_version("1.2.3", "patch", pre_release=False, pre_release_tag="alpha.1") == "1.2.4"


@pytest.mark.parametrize("current", ["not.a.version", "1.2", "v1.2.3", "", "1.2.3-alpha"])
def test_malformed_current_version_fails(current):
    with pytest.raises(VersionError):
        calculate_next_version(current, "patch")


def test_version_error_is_a_value_error():
    with pytest.raises(ValueError):
        parse_version("1.2.x")


def test_unknown_bump_kind_fails():
    with pytest.raises(VersionError):
        calculate_next_version("1.2.3", "micro")


def test_pre_release_requires_a_tag():
    with pytest.raises(VersionError):
        calculate_next_version("1.2.3", "patch", pre_release=True)


def test_deterministic():
    assert {calculate_next_version("3.4.5", "minor") for _ in range(5)} == {"3.5.0"}


def test_current_version_from_tags(fake_client):
    assert get_current_version(fake_client) == "0.0.0"
    fake_client.latest_tag = "v2.3.4"
    assert get_current_version(fake_client) == "2.3.4"
    fake_client.latest_tag = "v2.3.4-beta.1"
    assert get_current_version(fake_client) == "2.3.4"
