"""
Object store FileStore adapters.

Implements the FileStore protocol on Azure Blob Storage. Directories are
implicit in blob storage, so ``create_dir`` is a no-op and a directory
"exists" as soon as one blob lives under its prefix.
"""
from __future__ import annotations

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import BinaryIO, Optional

from ..path_safety import safe_relpath
from ..settings import Settings
from .base import ByteStream, FileStore
from .local import CHUNK_SIZE, copy_stream

__all__ = ["AzureBlobFileStore"]

logger = logging.getLogger(__name__)

# Blobs up to this size are buffered in memory on read/write, larger ones spill to disk
SPOOL_MAX_SIZE = 8 * CHUNK_SIZE


def _resource_not_found_error():
    try:
        from azure.core.exceptions import ResourceNotFoundError
    except ImportError:
        raise ImportError("azure-storage-blob package required for Azure blob storage")
    return ResourceNotFoundError


class AzureBlobFileStore(FileStore):
    """
    FileStore adapter for Azure Blob Storage.

    Keys are stored as blob names "{prefix}/{path}" inside ``az_container``.
    Uses connection string or account+key authentication, with optional
    custom endpoint for Azurite and private Azure clouds.
    """

    def __init__(self, *, settings: Settings, prefix: str = "", container_client=None) -> None:
        """
        Initialize Azure adapter with settings.

        Args:
            settings: Settings containing Azure authentication and container
            prefix: Blob name prefix acting as the store root
            container_client: Pre-built ContainerClient (skips SDK construction)

        Raises:
            ValueError: If Azure authentication is not properly configured
        """
        self._settings = settings
        self._prefix = prefix.strip("/")
        if container_client is None:
            container_client = self._build_container_client()
        self._container = container_client

        logger.debug(
            f"Azure file store using container {settings.az_container!r} with prefix {self._prefix!r}"
        )

    def _build_container_client(self):
        """Create a ContainerClient using connection string or account+key auth."""
        try:
            from azure.storage.blob import BlobServiceClient
        except ImportError:
            raise ImportError("azure-storage-blob package required for Azure blob storage")

        settings = self._settings
        if not settings.az_container:
            raise ValueError("Azure blob storage requires az_container")

        retry_kwargs = dict(
            connection_timeout=settings.http_timeout_s,
            retry_total=5,
            retry_backoff_factor=0.4,
        )

        if settings.az_connection_string:
            service_client = None
            if settings.az_blob_endpoint:
                account_match = re.search(r'AccountName=([^;]+)', settings.az_connection_string)
                if account_match:
                    endpoint_url = f"{settings.az_blob_endpoint.rstrip('/')}/{account_match.group(1)}"
                    service_client = BlobServiceClient(account_url=endpoint_url, credential=None, **retry_kwargs)
            if service_client is None:
                service_client = BlobServiceClient.from_connection_string(
                    settings.az_connection_string, **retry_kwargs
                )
        elif settings.az_account and settings.az_key:
            if settings.az_blob_endpoint:
                account_url = f"{settings.az_blob_endpoint.rstrip('/')}/{settings.az_account}"
            else:
                account_url = f"https://{settings.az_account}.blob.core.windows.net"
            service_client = BlobServiceClient(account_url=account_url, credential=settings.az_key, **retry_kwargs)
        else:
            raise ValueError(
                "Azure authentication not configured: need AZURE_STORAGE_CONNECTION_STRING "
                "or (AZURE_STORAGE_ACCOUNT + AZURE_STORAGE_KEY)"
            )

        return service_client.get_container_client(settings.az_container)

    def _blob_name(self, path: str) -> str:
        key = safe_relpath(path)
        return f"{self._prefix}/{key}" if self._prefix else key

    def exists(self, path: str) -> bool:
        name = self._blob_name(path)
        if self._container.get_blob_client(name).exists():
            return True
        # Implicit directory
        for _ in self._container.list_blobs(name_starts_with=f"{name}/"):
            return True
        return False

    def read_stream(self, path: str) -> Optional[BinaryIO]:
        ResourceNotFoundError = _resource_not_found_error()
        name = self._blob_name(path)
        try:
            downloader = self._container.get_blob_client(name).download_blob()
        except ResourceNotFoundError:
            return None

        spool = tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_SIZE)
        try:
            downloader.readinto(spool)
            spool.seek(0)
        except Exception as e:
            spool.close()
            raise OSError(f"Azure blob download error for {name}: {e}") from e
        return spool

    def write_stream(self, path: str, stream: ByteStream) -> int:
        name = self._blob_name(path)
        with tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_SIZE) as spool:
            written = copy_stream(stream, spool)
            spool.seek(0)
            try:
                # Block blobs are only visible after commit
                self._container.get_blob_client(name).upload_blob(spool, length=written, overwrite=True)
            except Exception as e:
                raise OSError(f"Azure blob upload error for {name}: {e}") from e
        logger.debug(f"Uploaded {written} bytes to blob {name}")
        return written

    def delete(self, path: str) -> None:
        ResourceNotFoundError = _resource_not_found_error()
        name = self._blob_name(path)
        try:
            self._container.get_blob_client(name).delete_blob()
        except ResourceNotFoundError:
            pass

    def size(self, path: str) -> Optional[int]:
        ResourceNotFoundError = _resource_not_found_error()
        name = self._blob_name(path)
        try:
            return self._container.get_blob_client(name).get_blob_properties().size
        except ResourceNotFoundError:
            return None

    def create_dir(self, path: str) -> None:
        # Directories are implicit in blob storage
        safe_relpath(path)

    def move_in(self, local_path: os.PathLike | str, path: str) -> None:
        source = Path(local_path)
        with open(source, "rb") as f:
            self.write_stream(path, f)
        source.unlink()
