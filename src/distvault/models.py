"""
Data models for dist caching and artifact ingestion.

Dist and Organization are validated Pydantic models so a bad identifier is
rejected before it can be turned into a storage path. Upload and result
records are plain frozen dataclasses.
"""
from __future__ import annotations

import mimetypes
import os
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .path_safety import safe_relpath, safe_segment

__all__ = ["Dist", "Organization", "UploadedArchive", "PackageArtifact"]

# Local file header, empty archive, spanned archive
ZIP_SIGNATURES = (b"PK\x03\x04", b"PK\x05\x06", b"PK\x07\x08")


def _looks_like_zip(path: Path) -> bool:
    try:
        with open(path, "rb") as f:
            header = f.read(4)
    except OSError:
        return False
    return header in ZIP_SIGNATURES or zipfile.is_zipfile(path)


class Dist(BaseModel):
    """
    One versioned, ref-pinned distribution archive of a package.

    The storage path "{repo}/dist/{package}/{version}_{ref}.{format}" is a pure
    function of the five fields. Components are restricted so that the path
    can always be split back unambiguously: only ``package`` may contain "/",
    and ``ref`` never contains "_" or ".".

    ``ref`` is therefore a commit-like identifier (a SHA or similar), which is
    what Composer records as the dist reference. Tag names such as "v1.0.0"
    are rejected; pass the commit the tag points at instead.
    """
    model_config = ConfigDict(frozen=True)

    repo: str = Field(..., description="Source repository identifier")
    package: str = Field(..., description="Package name, e.g. vendor/name")
    version: str = Field(..., description="Package version")
    ref: str = Field(..., description="Commit-like VCS reference (no '_' or '.')")
    format: str = Field(default="zip", description="Archive type")

    @field_validator("repo")
    @classmethod
    def _check_repo(cls, v: str) -> str:
        return safe_segment(v, what="repo")

    @field_validator("package")
    @classmethod
    def _check_package(cls, v: str) -> str:
        if not v or v.endswith("/") or "//" in v:
            raise ValueError(f"invalid package: {v!r}")
        return safe_relpath(v)

    @field_validator("version")
    @classmethod
    def _check_version(cls, v: str) -> str:
        return safe_segment(v, what="version")

    @field_validator("ref")
    @classmethod
    def _check_ref(cls, v: str) -> str:
        safe_segment(v, what="ref")
        if "_" in v or "." in v:
            raise ValueError(f"invalid ref: {v!r} (expected a commit-like identifier without '_' or '.')")
        return v

    @field_validator("format")
    @classmethod
    def _check_format(cls, v: str) -> str:
        if not v or not v.isalnum():
            raise ValueError(f"invalid format: {v!r}")
        return v

    def __str__(self) -> str:
        return f"{self.package}:{self.version}@{self.ref}"


class Organization(BaseModel):
    """Tenant namespace; artifacts live under a path rooted at ``alias``."""
    model_config = ConfigDict(frozen=True)

    alias: str = Field(..., description="Tenant-scoped path segment")
    name: Optional[str] = Field(default=None, description="Display name")

    @field_validator("alias")
    @classmethod
    def _check_alias(cls, v: str) -> str:
        return safe_segment(v, what="organization alias")


@dataclass(frozen=True)
class UploadedArchive:
    """
    Transient upload handed to the ingester.

    Attributes:
        path: Local path of the uploaded bytes
        original_name: Client-side filename, used in error messages
        extension: Guessed extension without the leading dot
        valid: False when the upload itself failed
    """
    path: Path
    original_name: str
    extension: Optional[str] = None
    valid: bool = True

    @classmethod
    def from_path(cls, path: os.PathLike | str, original_name: Optional[str] = None,
                  *, mime_type: Optional[str] = None) -> UploadedArchive:
        """
        Build an upload record, guessing the extension.

        The file's content decides first: anything starting with a ZIP
        signature (or that zipfile recognizes) is "zip", whatever its name.
        Otherwise the client mime type wins over the filename suffix, and a
        "zip" claim that the content contradicts leaves the extension unknown.
        """
        path = Path(path)
        name = original_name or path.name
        valid = path.is_file()
        if valid and _looks_like_zip(path):
            return cls(path=path, original_name=name, extension="zip", valid=valid)

        extension = None
        if mime_type:
            guessed = mimetypes.guess_extension(mime_type, strict=False)
            if guessed:
                extension = guessed.lstrip(".")
        if extension is None:
            suffix = Path(name).suffix or path.suffix
            extension = suffix.lstrip(".").lower() or None
        if valid and extension == "zip":
            extension = None
        return cls(path=path, original_name=name, extension=extension, valid=valid)


@dataclass(frozen=True)
class PackageArtifact:
    """Result of ingesting one uploaded archive."""
    name: str
    version: str
    fingerprint: str
    extension: str
    directory: str

    @property
    def filename(self) -> str:
        # Branch versions such as dev-feature/x must stay one path segment
        return f"{self.version.replace('/', '-')}_{self.fingerprint}.{self.extension}"

    @property
    def path(self) -> str:
        return f"{self.directory}/{self.filename}"
