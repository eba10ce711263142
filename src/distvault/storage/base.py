"""
Storage interfaces for distvault.

These protocols define the boundary between the dist cache / artifact
ingester and the storage or network implementations, enabling clean
dependency injection and testing with fakes.
"""
from __future__ import annotations

import os
from contextlib import AbstractContextManager
from dataclasses import dataclass
from typing import BinaryIO, Dict, Iterable, Optional, Protocol, Union, runtime_checkable

__all__ = [
    "ByteStream",
    "FileStore",
    "RemoteFetcher",
    "Fetched",
    "Missing",
    "Failed",
    "FetchResult",
    "FetchInterrupted",
]

# File-like object with read() or an iterable of byte chunks
ByteStream = Union[BinaryIO, Iterable[bytes]]


@runtime_checkable
class FileStore(Protocol):
    """
    Protocol for durable storage keyed by relative POSIX paths.

    Not-found is never an exception at this seam: ``exists`` returns False,
    ``read_stream`` returns None, ``size`` returns None and ``delete`` is a
    no-op for an absent path.
    """

    def exists(self, path: str) -> bool:
        """Return True if a file (or directory) exists at path."""
        ...

    def read_stream(self, path: str) -> Optional[BinaryIO]:
        """
        Open path for reading.

        Returns:
            Binary file-like object (caller closes it) or None if absent
        """
        ...

    def write_stream(self, path: str, stream: ByteStream) -> int:
        """
        Write stream to path, replacing any existing content.

        Readers never observe a partially written file.

        Returns:
            Number of bytes written

        Raises:
            OSError: For I/O errors
        """
        ...

    def delete(self, path: str) -> None:
        """Delete path if present."""
        ...

    def size(self, path: str) -> Optional[int]:
        """Return byte size of path or None if absent."""
        ...

    def create_dir(self, path: str) -> None:
        """Create directory path (and parents); no-op if present."""
        ...

    def move_in(self, local_path: os.PathLike | str, path: str) -> None:
        """
        Move a local file into the store at path.

        The local file no longer exists afterwards.

        Raises:
            OSError: If the move fails (the local file is then left in place)
        """
        ...


@dataclass
class Fetched:
    """Successful fetch; ``stream`` is valid until the fetch scope exits."""
    url: str
    stream: ByteStream
    size: Optional[int] = None


@dataclass(frozen=True)
class Missing:
    """Remote resource does not exist."""
    url: str


@dataclass(frozen=True)
class Failed:
    """Fetch failed for any reason other than the resource being absent."""
    url: str
    reason: str


FetchResult = Union[Fetched, Missing, Failed]


class FetchInterrupted(OSError):
    """Transport failure while a Fetched stream was being consumed."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Transfer of {url} interrupted: {reason}")
        self.url = url
        self.reason = reason


@runtime_checkable
class RemoteFetcher(Protocol):
    """Protocol for fetching remote (or local artifact) content."""

    def open(self, url: str, headers: Optional[Dict[str, str]] = None) -> AbstractContextManager[FetchResult]:
        """
        Open url for streaming.

        Usage:
            with fetcher.open(url, headers) as result:
                if isinstance(result, Fetched):
                    store.write_stream(path, result.stream)

        Returns:
            Context manager yielding Fetched, Missing or Failed. Failures
            before the body starts are reported as Failed; reading a
            Fetched stream may raise FetchInterrupted.
        """
        ...
