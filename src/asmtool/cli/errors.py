"""
CLI Error Handling
==================

Consistent error messages and exit codes for the asmtool subcommands.
"""

import sys
import traceback
from enum import IntEnum
from typing import NoReturn

import click


class ExitCode(IntEnum):
    """Exit codes of the asmtool command."""
    SUCCESS = 0
    COMPARE_ERROR = 1    # Unreadable input, missing symbol, mismatched kinds
    INVALID_ARGS = 2     # Invalid arguments or missing files
    INTERNAL_ERROR = 3   # Unexpected internal error


def handle_cli_exception(
    error: Exception,
    verbose: bool = False,
) -> NoReturn:
    """
    Report an exception raised by a subcommand and exit.

    asmtool errors already carry location and hint text, so they are
    printed as they are. Anything unexpected is reported as an internal
    error, with a traceback in verbose mode.

    Args:
        error: The exception that was raised
        verbose: If True, print full traceback for internal errors

    Raises:
        SystemExit: Always exits with an appropriate exit code
    """
    from asmtool.errors import AsmToolError

    if isinstance(error, AsmToolError):
        # Message already starts with "error:" or "file:line: error:"
        click.echo(str(error), err=True)
        sys.exit(ExitCode.COMPARE_ERROR)

    elif isinstance(error, click.BadParameter):
        click.echo(f"Error: {error}", err=True)
        sys.exit(ExitCode.INVALID_ARGS)

    elif isinstance(error, (FileNotFoundError, PermissionError)):
        click.echo(f"Error: {error}", err=True)
        sys.exit(ExitCode.INVALID_ARGS)

    else:
        click.echo(f"Internal error: {error}", err=True)
        if verbose:
            traceback.print_exc()
        sys.exit(ExitCode.INTERNAL_ERROR)
