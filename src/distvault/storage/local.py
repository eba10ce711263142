"""
Local disk FileStore.

Keys are relative POSIX paths resolved under a root directory. Writes go
through a temp file in the target directory followed by an atomic rename.
"""
from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import BinaryIO, Optional

from ..path_safety import safe_relpath
from .base import ByteStream, FileStore

__all__ = ["LocalFileStore", "CHUNK_SIZE", "copy_stream"]

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024  # 1 MiB


def copy_stream(bytestream: ByteStream, out: BinaryIO) -> int:
    """Copy a file-like object or iterable of chunks into out; return bytes copied."""
    written = 0
    if hasattr(bytestream, "read"):
        while True:
            chunk = bytestream.read(CHUNK_SIZE)
            if not chunk:
                break
            out.write(chunk)
            written += len(chunk)
    else:
        for chunk in bytestream:
            out.write(chunk)
            written += len(chunk)
    return written


class LocalFileStore(FileStore):
    """FileStore rooted at a local directory."""

    def __init__(self, root: os.PathLike | str) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        logger.debug(f"Local file store rooted at {self.root}")

    def _abs(self, path: str) -> Path:
        return self.root / safe_relpath(path)

    def exists(self, path: str) -> bool:
        return self._abs(path).exists()

    def read_stream(self, path: str) -> Optional[BinaryIO]:
        try:
            return open(self._abs(path), "rb")
        except (FileNotFoundError, IsADirectoryError):
            return None

    def write_stream(self, path: str, stream: ByteStream) -> int:
        target = self._abs(path)
        target.parent.mkdir(parents=True, exist_ok=True)

        fd, temp_name = tempfile.mkstemp(prefix=".distvault.tmp.", dir=target.parent)
        temp_path = Path(temp_name)
        try:
            with os.fdopen(fd, "wb") as out:
                written = copy_stream(stream, out)
                out.flush()
                os.fsync(out.fileno())
            os.replace(temp_path, target)
        except BaseException:
            try:
                temp_path.unlink()
            except FileNotFoundError:
                pass
            raise

        logger.debug(f"Wrote {written} bytes to {target}")
        return written

    def delete(self, path: str) -> None:
        target = self._abs(path)
        if target.is_dir():
            shutil.rmtree(target)
            return
        try:
            target.unlink()
        except FileNotFoundError:
            pass

    def size(self, path: str) -> Optional[int]:
        try:
            return self._abs(path).stat().st_size
        except FileNotFoundError:
            return None

    def create_dir(self, path: str) -> None:
        self._abs(path).mkdir(parents=True, exist_ok=True)

    def __repr__(self) -> str:
        return f"LocalFileStore({str(self.root)!r})"

    def move_in(self, local_path: os.PathLike | str, path: str) -> None:
        source = Path(local_path)
        target = self._abs(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        try:
            os.replace(source, target)
        except OSError:
            # Different filesystem: copy atomically, then drop the source
            with open(source, "rb") as f:
                self.write_stream(path, f)
            source.unlink()
        logger.debug(f"Moved {source} to {target}")
