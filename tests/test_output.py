import pytest

from ghwizard.utils import output_utils, rich_prompt
from ghwizard.utils.message_utils import error, info, success, warning

MARKUP = "closing tag [/wontfix] and [bold]"


@pytest.mark.parametrize("show", [info, warning, success, error])
def test_messages_print_markup_literally(show, capsys):
    show(MARKUP, MARKUP)
    assert "[/wontfix]" in capsys.readouterr().out


def test_status_lines_and_headers_print_markup_literally(capsys):
    output_utils.print_status_line("error", MARKUP, MARKUP)
    output_utils.print_status_line("plain", MARKUP)
    output_utils.print_section_header("Issue [/x]")
    rich_prompt.panel_welcome("acme/[/weird]")
    assert capsys.readouterr().out.count("[/wontfix]") == 3
