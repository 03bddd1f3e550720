# SPDX-FileCopyrightText: 2026 splitimage contributors
# SPDX-License-Identifier: MIT

"""Terminal status output with a global verbosity level."""

import sys

QUIET = 0
DEFAULT = 1
VERBOSE = 2

_verbosity = DEFAULT


def set_verbosity(level: int) -> None:
    global _verbosity
    _verbosity = level


def get_verbosity() -> int:
    return _verbosity


def status_message(level: int, message: str) -> None:
    """Print a message to stdout if the current verbosity allows it."""
    if level <= _verbosity:
        sys.stdout.write(message if message.endswith("\n") else message + "\n")
        sys.stdout.flush()


def yellow_print(message: str, newline: str = '\n') -> None:
    """Print a message to stderr with yellow highlighting."""
    sys.stderr.write(f'\033[0;33m{message}\033[0m{newline}')
    sys.stderr.flush()


def red_print(message: str, newline: str = '\n') -> None:
    """Print a message to stderr with red highlighting."""
    sys.stderr.write(f'\033[0;31m{message}\033[0m{newline}')
    sys.stderr.flush()
