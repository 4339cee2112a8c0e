import pytest

from ghwizard.utils import validation_utils
from ghwizard.utils.fields import parse_range
from ghwizard.utils.validation_utils import check_input, validate_input, validate_issue_args


@pytest.mark.parametrize("args", [
    ["Parent", "Parent body", "Child", "Child body"],
    ["  padded  ", "x", "y", "z"],
    ["Épique", "多行\nbody", "child", "- [ ] task"],
])
def test_issue_args_accept_non_blank_four_tuples(args):
    assert validate_issue_args(args) is None


@pytest.mark.parametrize("args", [
    ["", "body", "child", "body"],
    ["Parent", "   ", "child", "body"],
    ["Parent", "body", "\t\n", "body"],
    ["Parent", "body", "child", ""],
])
def test_issue_args_reject_blank_elements(args):
    assert validate_issue_args(args) == "All arguments must be non-empty and contain non-whitespace characters"


def test_issue_args_reject_wrong_count():
    assert validate_issue_args(["a", "b", "c"]).startswith("Expected 4 arguments")
    assert validate_issue_args(["a", "b", "c", "d", "e"]).startswith("Expected 4 arguments")


@pytest.mark.parametrize("raw, expected", [("1", 1), ("5", 5), (" 3 ", 3)])
def test_menu_option_accepts_values_in_range(raw, expected):
    assert check_input("menu_option", raw, range_spec="1-5") == (True, expected, None)


@pytest.mark.parametrize("raw", ["", "abc", "0", "6", "-1", "2.5"])
def test_menu_option_rejects(raw):
    ok, value, message = check_input("menu_option", raw, range_spec="1-5")
    assert not ok
    assert value is None
    assert message


def test_menu_option_messages_are_distinct():
    messages = {check_input("menu_option", raw, range_spec="1-5")[2] for raw in ("", "abc", "9")}
    assert len(messages) == 3


@pytest.mark.parametrize("raw, ok", [("42", True), ("1", True), ("0", False), ("-3", False), ("abc", False), ("", False), ("²", False), ("１２", False)])
def test_issue_number(raw, ok):
    assert validate_input("issue_number", raw) is ok


@pytest.mark.parametrize("raw, ok", [("1.2.3", True), ("0.0.0", True), ("v1.2.3", False), ("1.2", False),
                                     ("1.2.3.4", False), ("1.x.3", False)])
def test_version(raw, ok):
    assert validate_input("version", raw) is ok


def test_text_requires_content_and_min_length():
    assert validate_input("text", "hello")
    assert not validate_input("text", "   ")
    assert not validate_input("text", "ab", min_length=3)
    assert check_input("text", "  padded  ") == (True, "padded", None)


@pytest.mark.parametrize("raw, value", [("y", True), ("YES", True), ("n", False), ("No", False)])
def test_confirmation_accepts(raw, value):
    assert check_input("confirmation", raw) == (True, value, None)


@pytest.mark.parametrize("raw", ["", "maybe", "yep", "1"])
def test_confirmation_rejects(raw):
    assert not validate_input("confirmation", raw)


def test_unknown_kind_raises():
    with pytest.raises(ValueError):
        check_input("colour", "red")


def test_parse_range():
    assert parse_range("1-10") == (1, 10)
    with pytest.raises(ValueError):
        parse_range("5-1")
    with pytest.raises(ValueError):
        parse_range("one-two")


def test_prompt_validated_reprompts_until_valid(monkeypatch):
    answers = iter(["zero", "0", "7"])
    monkeypatch.setattr(validation_utils, "prompt_text", lambda message, default=None: next(answers))
    assert validation_utils.prompt_validated("issue_number", "Issue number:") == 7


def test_prompt_validated_optional_blank_returns_none(monkeypatch):
    monkeypatch.setattr(validation_utils, "prompt_text", lambda message, default=None: "  ")
    assert validation_utils.prompt_validated("issue_number", "Parent:", required=False) is None
