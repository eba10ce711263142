"""
distvault: dist cache and artifact ingestion for a private package repository.
"""
from .dist_cache import DistCache
from .errors import (
    CorruptArchive,
    DistNotFound,
    DistVaultError,
    FetchFailed,
    ManifestInvalid,
    ManifestMissing,
    ManifestRewriteFailed,
    RelocationFailed,
)
from .ingest import ArtifactIngester, IngestOptions
from .models import Dist, Organization, PackageArtifact, UploadedArchive
from .settings import Settings, create_settings_from_env

__version__ = "0.1.0"

__all__ = [
    "DistCache",
    "ArtifactIngester",
    "IngestOptions",
    "Dist",
    "Organization",
    "PackageArtifact",
    "UploadedArchive",
    "Settings",
    "create_settings_from_env",
    "DistVaultError",
    "DistNotFound",
    "FetchFailed",
    "ManifestMissing",
    "ManifestInvalid",
    "CorruptArchive",
    "RelocationFailed",
    "ManifestRewriteFailed",
]
