"""
FileStore factory with backend switching.

Provides a single factory function that creates the FileStore implementation
selected by ``Settings.storage_backend`` without changing call sites.
"""
from __future__ import annotations

from ..settings import Settings
from .base import FileStore
from .local import LocalFileStore


def file_store_for(settings: Settings, root: str) -> FileStore:
    """
    Create a FileStore rooted at root.

    Args:
        settings: Storage configuration
        root: Directory (local backend) or blob prefix (azure backend)

    Returns:
        FileStore implementation

    Raises:
        ValueError: If storage_backend is unknown
    """
    if settings.storage_backend == "local":
        return LocalFileStore(root)
    elif settings.storage_backend == "azure":
        from .object_store import AzureBlobFileStore
        return AzureBlobFileStore(settings=settings, prefix=root)
    else:
        raise ValueError(
            f"Unknown storage_backend: {settings.storage_backend}. "
            f"Supported values: local, azure"
        )


__all__ = ["file_store_for"]
