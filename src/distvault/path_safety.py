"""
Path safety utilities for distvault.

Shared validation for storage keys and archive entry names to prevent
directory traversal out of a store root or an extracted package.
"""
from __future__ import annotations

from pathlib import PurePosixPath


def safe_relpath(path: str) -> str:
    """
    Validate and normalize a relative POSIX path.

    Rules:
    - No empty strings or "."
    - No absolute paths (starting with '/')
    - No parent directory references ('..' components)
    - No backslashes

    Args:
        path: Path string (storage key or archive entry name)

    Returns:
        Normalized relative path

    Raises:
        ValueError: If path violates safety rules

    Examples:
        >>> safe_relpath("acme/dist/lib/foo/1.0.0_abc.zip")
        'acme/dist/lib/foo/1.0.0_abc.zip'

        >>> safe_relpath("../secrets.txt")
        ValueError: unsafe path: ../secrets.txt
    """
    rel = PurePosixPath(path)
    s = str(rel)
    if not s or s == ".":
        raise ValueError(f"unsafe path: {path}")
    if "\\" in s:
        raise ValueError(f"unsafe path: {path}")
    if rel.is_absolute() or ".." in rel.parts:
        raise ValueError(f"unsafe path: {path}")
    return s


def safe_segment(value: str, *, what: str = "segment") -> str:
    """Validate a value used as exactly one path segment."""
    if not value or "/" in value or "\\" in value or value in (".", ".."):
        raise ValueError(f"invalid {what}: {value!r}")
    return value


__all__ = ["safe_relpath", "safe_segment"]
