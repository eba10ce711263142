"""
Artifact ingestion.

Turns uploaded ZIP archives into package artifacts stored under
"{orgAlias}/{packageName}/{version}_{fingerprint}.{ext}". The package
identity is read from the archive's composer.json without extracting the
archive; archives wrapped in a top-level directory (as VCS exports are) are
repackaged so the package content sits at the archive root.
"""
from __future__ import annotations

import hashlib
import logging
import zlib
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Tuple
from zipfile import BadZipFile

from .archive import entry_prefix, locate_entry, open_archive, plan_strip_prefix, read_entry, rewrite_archive
from .errors import CorruptArchive, DistVaultError, ManifestMissing, RelocationFailed
from .manifest import MANIFEST_NAME, parse_manifest
from .models import Organization, PackageArtifact, UploadedArchive
from .storage.base import FileStore
from .storage.local import CHUNK_SIZE

__all__ = ["IngestOptions", "ArtifactIngester"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestOptions:
    """
    Immutable ingestion configuration, passed to the ingester explicitly.

    Attributes:
        extension: The only accepted upload extension
        manifest_name: File name of the package manifest inside archives
        fingerprint_algorithm: hashlib algorithm for content fingerprints
    """
    extension: str = "zip"
    manifest_name: str = MANIFEST_NAME
    fingerprint_algorithm: str = "sha1"

    def __post_init__(self):
        if self.fingerprint_algorithm not in hashlib.algorithms_available:
            raise ValueError(f"Unknown fingerprint algorithm: {self.fingerprint_algorithm}")


class ArtifactIngester:
    """Ingests uploaded package archives into an organization's namespace."""

    def __init__(self, store: FileStore, options: IngestOptions = IngestOptions()) -> None:
        self.store = store
        self.options = options

    def accepts(self, upload: UploadedArchive) -> bool:
        """True if upload succeeded and has the supported archive extension."""
        return upload.valid and (upload.extension or "").lower() == self.options.extension

    def ingest(self, files: Iterable[UploadedArchive], organization: Organization) -> Dict[str, str]:
        """
        Ingest a batch of uploads sequentially.

        Uploads that failed or are not ZIP archives are skipped. The first
        failing upload aborts the batch; uploads before it stay ingested.

        Returns:
            Mapping of package name to its storage directory

        Raises:
            CorruptArchive, ManifestMissing, ManifestInvalid, RelocationFailed
        """
        self._ensure_dir(organization.alias)
        packages: Dict[str, str] = {}
        for upload in files:
            if not self.accepts(upload):
                logger.info(f"Skipping upload {upload.original_name!r} (extension {upload.extension!r})")
                continue
            artifact = self.ingest_one(upload, organization)
            packages[artifact.name] = artifact.directory
        return packages

    def ingest_collect(
        self, files: Iterable[UploadedArchive], organization: Organization
    ) -> Tuple[Dict[str, str], Dict[str, DistVaultError]]:
        """
        Ingest every upload, collecting per-file failures instead of aborting.

        Returns:
            (package name -> directory, original filename -> error)
        """
        self._ensure_dir(organization.alias)
        packages: Dict[str, str] = {}
        failures: Dict[str, DistVaultError] = {}
        for upload in files:
            if not self.accepts(upload):
                logger.info(f"Skipping upload {upload.original_name!r} (extension {upload.extension!r})")
                continue
            try:
                artifact = self.ingest_one(upload, organization)
            except DistVaultError as e:
                logger.warning(f"Failed to ingest {upload.original_name!r}: {e}")
                failures[upload.original_name] = e
                continue
            packages[artifact.name] = artifact.directory
        return packages, failures

    def ingest_one(self, upload: UploadedArchive, organization: Organization) -> PackageArtifact:
        """
        Ingest a single upload.

        Raises:
            CorruptArchive: If the upload cannot be read as a ZIP archive, or has
                an entry that is encrypted or uses an unsupported compression method
            ManifestMissing: If no composer.json entry exists
            ManifestInvalid: If composer.json is unparseable or lacks identity
            RelocationFailed: If the processed archive cannot be moved
        """
        source = upload.original_name
        manifest_entry, manifest, names = self._inspect(upload.path, source)

        directory = f"{organization.alias}/{manifest.name}"
        self._ensure_dir(directory)

        artifact = PackageArtifact(
            name=manifest.name,
            version=manifest.version,
            fingerprint=self._fingerprint(upload.path),
            extension=self.options.extension,
            directory=directory,
        )

        prefix = entry_prefix(manifest_entry)
        if prefix:
            try:
                plan = plan_strip_prefix(names, prefix)
            except ValueError as e:
                raise CorruptArchive(source, str(e)) from e
            logger.debug(f"Stripping prefix {prefix!r} from {len(names)} entries of {source!r}")
            try:
                rewrite_archive(upload.path, plan)
            except (BadZipFile, zlib.error, OSError, NotImplementedError, RuntimeError) as e:
                raise CorruptArchive(source, str(e)) from e

        self._relocate(upload.path, artifact.path, source)
        logger.info(f"Ingested {artifact.name} {artifact.version} from {source!r} into {artifact.path}")
        return artifact

    def _inspect(self, path: Path, source: str):
        """Return (manifest entry, parsed manifest, entry names) of an archive."""
        with open_archive(path, source) as zf:
            manifest_entry = locate_entry(zf, self.options.manifest_name)
            if manifest_entry is None:
                raise ManifestMissing(source)
            try:
                raw = read_entry(zf, manifest_entry)
            except (BadZipFile, zlib.error, OSError, NotImplementedError, RuntimeError) as e:
                raise CorruptArchive(source, str(e)) from e
            names = tuple(zf.namelist())
        return manifest_entry, parse_manifest(raw, source), names

    def _fingerprint(self, path: Path) -> str:
        digest = hashlib.new(self.options.fingerprint_algorithm)
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
                digest.update(chunk)
        return digest.hexdigest()

    def _ensure_dir(self, path: str) -> None:
        if not self.store.exists(path):
            self.store.create_dir(path)

    def _relocate(self, path: Path, destination: str, source: str) -> None:
        try:
            self.store.move_in(path, destination)
        except OSError as e:
            raise RelocationFailed(str(path), destination, source) from e
