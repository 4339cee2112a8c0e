"""
CLI color constants and the argument parser shared by the wizard and the companion scripts.
"""
import argparse
import sys
from colorama import Fore, Style as ColoramaStyle

GITHUB_GREEN = Fore.GREEN
WARNING_YELLOW = Fore.YELLOW
DANGER_RED = Fore.RED
INFO_BLUE = Fore.CYAN
BOLD = ColoramaStyle.BRIGHT
RESET = ColoramaStyle.RESET_ALL

EXIT_SUCCESS = 0
EXIT_ERROR = 1


def colorize(text, color):
    return f"{color}{text}{RESET}"


class CliArgumentParser(argparse.ArgumentParser):
    """
    argparse with the tools' exit conventions: usage problems exit 1 (2 is reserved for
    authentication failures) and the message names the offending flag.
    """

    def error(self, message):
        sys.stderr.write(colorize(f"Error: {message}", DANGER_RED) + "\n")
        sys.stderr.write(f"Run '{self.prog} --help' for usage.\n")
        sys.exit(EXIT_ERROR)

    def print_help(self, file=None):
        text = self.format_help()
        heading, _, rest = text.partition("\n")
        (file or sys.stdout).write(colorize(heading, BOLD + INFO_BLUE) + "\n" + rest)
