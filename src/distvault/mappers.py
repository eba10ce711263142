"""
Error mapping and CLI utilities.

Provides centralized exception-to-exit-code mapping and a command wrapper
so CLI commands don't need individual try/except blocks.
"""
from __future__ import annotations

from typing import Callable, TypeVar

import typer

T = TypeVar('T')

EXIT_CODES = {
    "DistNotFound": 1,
    "ValidationError": 2,
    "ValueError": 2,
    "ManifestMissing": 2,
    "ManifestInvalid": 2,
    "FetchFailed": 3,
    "CorruptArchive": 4,
    "RelocationFailed": 5,
    "ManifestRewriteFailed": 6,
}

FALLBACK_EXIT_CODE = 3


def exit_code_for(exc: BaseException) -> int:
    """
    Map exception to exit code.

    - 1: Dist source not found
    - 2: Invalid input (bad identifiers, missing or invalid manifest)
    - 3: Fetch failure or unknown error
    - 4: Corrupt archive
    - 5: Relocation failure
    - 6: Manifest rewrite failure
    """
    return EXIT_CODES.get(type(exc).__name__, FALLBACK_EXIT_CODE)


def run_and_exit(func: Callable[[], T]) -> T:
    """
    Execute func, mapping any exception to typer.Exit with its exit code.

    The error message is printed to stderr before exiting.
    """
    try:
        return func()
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=exit_code_for(e)) from e
