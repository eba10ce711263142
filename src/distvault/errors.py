"""
Error classes for distvault.

Provides a clear taxonomy of failures that can occur while caching dists and
ingesting uploaded artifacts. Cache misses are never errors: they surface as
None / False / 0 from the storage layer.
"""
from __future__ import annotations

from typing import Optional


class DistVaultError(Exception):
    """Base class for all distvault errors."""
    pass


class DistNotFound(DistVaultError):
    """
    Remote source of a dist does not exist.

    Raised when the fetcher reports the resource missing (HTTP 404 or an
    absent local artifact path).
    """

    def __init__(self, url: str):
        super().__init__(f"File not found at {url}")
        self.url = url


class FetchFailed(DistVaultError):
    """
    Transport failure while fetching a dist.

    Raised when:
    - the network request fails or times out (after retries)
    - the remote answers with a non-404 HTTP error
    """

    def __init__(self, package: str, url: str, reason: Optional[str] = None):
        message = f"Failed to download {package} from {url}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.package = package
        self.url = url
        self.reason = reason


class ManifestMissing(DistVaultError):
    """Archive does not contain a composer.json entry."""

    def __init__(self, source: str):
        super().__init__(f"Could not find any composer.json in the ZIP file '{source}'")
        self.source = source


class ManifestInvalid(DistVaultError):
    """
    Manifest entry exists but cannot be used.

    The raw content is kept on the exception (and in the message) so a bad
    upload can be diagnosed without re-running.
    """

    def __init__(self, source: str, content: str, detail: Optional[str] = None):
        message = f"Parsing error on composer.json in ZIP file '{source}'"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(f"{message}. File content is : {content}")
        self.source = source
        self.content = content


class CorruptArchive(DistVaultError):
    """Container could not be opened as a ZIP archive."""

    def __init__(self, source: str, detail: Optional[str] = None):
        message = f"Error while opening ZIP file '{source}'"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.source = source


class RelocationFailed(DistVaultError):
    """Processed archive could not be moved into the artifact repository."""

    def __init__(self, source: str, destination: str, upload: Optional[str] = None):
        label = f" '{upload}'" if upload else ""
        super().__init__(f"Failed to move ZIP file{label} from '{source}' to '{destination}'")
        self.source = source
        self.destination = destination
        self.upload = upload


class ManifestRewriteFailed(DistVaultError):
    """Manifest rewrite of a cached dist was aborted."""

    def __init__(self, package: str, version: str):
        super().__init__(
            f"Failed to update dist URL in composer.json of package: {package}:{version}"
        )
        self.package = package
        self.version = version


__all__ = [
    "DistVaultError",
    "DistNotFound",
    "FetchFailed",
    "ManifestMissing",
    "ManifestInvalid",
    "CorruptArchive",
    "RelocationFailed",
    "ManifestRewriteFailed",
]
