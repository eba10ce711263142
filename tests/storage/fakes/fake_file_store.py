"""
Fake file store implementation for testing.

Explicitly subclasses FileStore so protocol changes break CI immediately.
"""
from __future__ import annotations

import io
import os
from pathlib import Path
from typing import BinaryIO, Dict, List, Optional, Set

from distvault.path_safety import safe_relpath
from distvault.storage.base import ByteStream, FileStore
from distvault.storage.local import copy_stream

__all__ = ["FakeFileStore"]


class FakeFileStore(FileStore):
    """
    In-memory store keyed by relative path.

    This is a test double; not for production use. Set ``fail_writes`` or
    ``fail_moves`` to make the corresponding operations raise OSError.
    """

    def __init__(self) -> None:
        self.files: Dict[str, bytes] = {}
        self.dirs: Set[str] = set()
        self.writes: List[str] = []
        self.fail_writes = False
        self.fail_moves = False

    def exists(self, path: str) -> bool:
        key = safe_relpath(path)
        if key in self.files or key in self.dirs:
            return True
        return any(name.startswith(f"{key}/") for name in self.files)

    def read_stream(self, path: str) -> Optional[BinaryIO]:
        key = safe_relpath(path)
        if key not in self.files:
            return None
        return io.BytesIO(self.files[key])

    def write_stream(self, path: str, stream: ByteStream) -> int:
        key = safe_relpath(path)
        if self.fail_writes:
            raise OSError(f"write refused: {key}")
        buffer = io.BytesIO()
        written = copy_stream(stream, buffer)
        self.files[key] = buffer.getvalue()
        self.writes.append(key)
        return written

    def delete(self, path: str) -> None:
        self.files.pop(safe_relpath(path), None)

    def size(self, path: str) -> Optional[int]:
        data = self.files.get(safe_relpath(path))
        return len(data) if data is not None else None

    def create_dir(self, path: str) -> None:
        parts = safe_relpath(path).split("/")
        for i in range(1, len(parts) + 1):
            self.dirs.add("/".join(parts[:i]))

    def move_in(self, local_path: os.PathLike | str, path: str) -> None:
        if self.fail_moves:
            raise OSError(f"move refused: {path}")
        source = Path(local_path)
        with open(source, "rb") as f:
            self.write_stream(path, f)
        source.unlink()

    def clear(self) -> None:
        """Clear all stored data (test utility)."""
        self.files.clear()
        self.dirs.clear()
        self.writes.clear()
