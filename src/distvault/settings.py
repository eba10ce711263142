"""
Settings and configuration for distvault.

Centralizes configuration values and provides validation with fail-fast behavior.
Loads settings from environment variables at construction time.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

__all__ = ["Settings", "create_settings_from_env", "STORAGE_BACKENDS"]

STORAGE_BACKENDS = ("local", "azure")


@dataclass(frozen=True)
class Settings:
    """
    Configuration settings for the dist cache and artifact ingester.

    Storage Settings:
        storage_root: Root of the dist cache (directory or blob prefix)
        artifacts_root: Root of the artifact repository (defaults to storage_root)
        storage_backend: "local" (disk) or "azure" (blob storage)
        temp_dir: Directory for scoped temporary files (None = system default)

    Distribution Settings:
        dists_url_template: Base URL served for rewritten dists, must contain
            the "{organization}" placeholder

    HTTP Settings:
        http_timeout_s: Request timeout in seconds
        http_retry: Attempts for timed-out requests (1 = no retry)
        user_agent: User-Agent header sent with every fetch

    Azure Settings (storage_backend="azure"):
        az_connection_string: Azure storage connection string
        az_account: Azure storage account name
        az_key: Azure storage account key
        az_blob_endpoint: Custom blob endpoint (Azurite/private endpoints)
        az_container: Blob container holding dists and artifacts
    """
    storage_root: str
    dists_url_template: str
    artifacts_root: Optional[str] = None
    storage_backend: str = "local"
    temp_dir: Optional[str] = None

    http_timeout_s: float = 30.0
    http_retry: int = 3
    user_agent: str = "distvault/0.1.0"

    az_connection_string: Optional[str] = None
    az_account: Optional[str] = None
    az_key: Optional[str] = None
    az_blob_endpoint: Optional[str] = None
    az_container: Optional[str] = None

    def __post_init__(self):
        """Validate settings on construction."""
        if not self.storage_root:
            raise ValueError("storage_root is required")

        if not self.dists_url_template:
            raise ValueError("dists_url_template is required")

        if "{organization}" not in self.dists_url_template:
            raise ValueError(
                f"dists_url_template must contain '{{organization}}': {self.dists_url_template}"
            )

        if self.storage_backend not in STORAGE_BACKENDS:
            raise ValueError(
                f"Unknown storage_backend: {self.storage_backend}. "
                f"Supported values: {', '.join(STORAGE_BACKENDS)}"
            )

        if self.http_timeout_s <= 0:
            raise ValueError(f"http_timeout_s must be positive, got {self.http_timeout_s}")

        if self.http_retry < 1:
            raise ValueError(f"http_retry must be at least 1, got {self.http_retry}")

        has_conn_str = bool(self.az_connection_string)
        has_account_key = bool(self.az_account and self.az_key)

        if has_conn_str and has_account_key:
            raise ValueError("Specify either az_connection_string OR (az_account + az_key), not both")

        if self.az_account and not self.az_key:
            raise ValueError("az_account specified but az_key is missing")
        if self.az_key and not self.az_account:
            raise ValueError("az_key specified but az_account is missing")

        if self.storage_backend == "azure":
            if not has_conn_str and not has_account_key:
                raise ValueError(
                    "Azure storage backend requires AZURE_STORAGE_CONNECTION_STRING "
                    "or (AZURE_STORAGE_ACCOUNT + AZURE_STORAGE_KEY)"
                )
            if not self.az_container:
                raise ValueError("Azure storage backend requires az_container")

    @property
    def effective_artifacts_root(self) -> str:
        """Root of the artifact repository, falling back to the dist cache root."""
        return self.artifacts_root or self.storage_root


def create_settings_from_env() -> Settings:
    """
    Load settings from environment variables.

    Environment Variables:
        Storage:
        - DISTVAULT_STORAGE_ROOT (required)
        - DISTVAULT_ARTIFACTS_ROOT (optional)
        - DISTVAULT_STORAGE_BACKEND (default: local)
        - DISTVAULT_TEMP_DIR (optional)

        Distribution:
        - DISTVAULT_DISTS_URL_TEMPLATE (required)

        HTTP:
        - DISTVAULT_HTTP_TIMEOUT (default: 30.0)
        - DISTVAULT_HTTP_RETRY (default: 3)
        - DISTVAULT_USER_AGENT (default: distvault/0.1.0)

        Azure:
        - AZURE_STORAGE_CONNECTION_STRING (optional)
        - AZURE_STORAGE_ACCOUNT (optional)
        - AZURE_STORAGE_KEY (optional)
        - DISTVAULT_AZURE_BLOB_ENDPOINT (optional)
        - DISTVAULT_AZURE_CONTAINER (optional)

    Returns:
        Settings object with validated configuration

    Raises:
        ValueError: If configuration is invalid or required values missing

    Note:
        Creates a fresh Settings instance every time (no caching).
    """
    def get_float(key: str, default: float) -> float:
        value = os.getenv(key)
        return float(value) if value else default

    def get_int(key: str, default: int) -> int:
        value = os.getenv(key)
        return int(value) if value else default

    storage_root = os.getenv("DISTVAULT_STORAGE_ROOT")
    dists_url_template = os.getenv("DISTVAULT_DISTS_URL_TEMPLATE")

    if not storage_root:
        raise ValueError("DISTVAULT_STORAGE_ROOT environment variable is required")
    if not dists_url_template:
        raise ValueError("DISTVAULT_DISTS_URL_TEMPLATE environment variable is required")

    return Settings(
        storage_root=storage_root,
        dists_url_template=dists_url_template,
        artifacts_root=os.getenv("DISTVAULT_ARTIFACTS_ROOT"),
        storage_backend=os.getenv("DISTVAULT_STORAGE_BACKEND", "local").lower(),
        temp_dir=os.getenv("DISTVAULT_TEMP_DIR"),
        http_timeout_s=get_float("DISTVAULT_HTTP_TIMEOUT", 30.0),
        http_retry=get_int("DISTVAULT_HTTP_RETRY", 3),
        user_agent=os.getenv("DISTVAULT_USER_AGENT", "distvault/0.1.0"),
        az_connection_string=os.getenv("AZURE_STORAGE_CONNECTION_STRING"),
        az_account=os.getenv("AZURE_STORAGE_ACCOUNT"),
        az_key=os.getenv("AZURE_STORAGE_KEY"),
        az_blob_endpoint=os.getenv("DISTVAULT_AZURE_BLOB_ENDPOINT"),
        az_container=os.getenv("DISTVAULT_AZURE_CONTAINER"),
    )
