"""
Composer manifest (composer.json) handling.

Only the identity of a package (name and normalized version) is modelled;
every other key is kept verbatim so a manifest can be rewritten without
losing data.
"""
from __future__ import annotations

import json
import re
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ManifestInvalid

__all__ = [
    "MANIFEST_NAME",
    "PackageManifest",
    "parse_manifest",
    "load_manifest_document",
    "encode_manifest",
    "with_dist",
    "normalize_version",
]

MANIFEST_NAME = "composer.json"

PACKAGE_NAME_PATTERN = re.compile(
    r"^[a-z0-9]([_.-]?[a-z0-9]+)*/[a-z0-9](([_.]|-{1,2})?[a-z0-9]+)*$"
)

_MODIFIER = r"[._-]?(?:(stable|beta|b|RC|alpha|a|patch|pl|p)((?:[.-]?\d+)*)?)?([.-]?dev)?"
_CLASSICAL = re.compile(r"^v?(\d{1,5})(\.\d+)?(\.\d+)?(\.\d+)?" + _MODIFIER + r"$", re.I)
_DATE_BASED = re.compile(r"^v?(\d{4}(?:[.:-]?\d{2}){1,6}(?:[.:-]?\d{1,3}){0,2})" + _MODIFIER + r"$", re.I)
_BRANCH_NUMERIC = re.compile(r"^v?(\d+)(\.(?:\d+|[xX*]))?(\.(?:\d+|[xX*]))?(\.(?:\d+|[xX*]))?$")

_STABILITY_ALIASES = {"a": "alpha", "b": "beta", "p": "patch", "pl": "patch", "rc": "RC"}


def _expand_stability(stability: str) -> str:
    lowered = stability.lower()
    return _STABILITY_ALIASES.get(lowered, lowered)


def _normalize_branch(name: str) -> str:
    name = name.strip()
    match = _BRANCH_NUMERIC.match(name)
    if match:
        version = ""
        for i in range(1, 5):
            part = match.group(i)
            version += part.replace("*", "x").replace("X", "x") if part else ".x"
        return version.replace("x", "9999999") + "-dev"
    return f"dev-{name}"


def normalize_version(version: str) -> str:
    """
    Normalize a version string the way Composer's version parser does.

    Examples:
        >>> normalize_version("1.2")
        '1.2.0.0'
        >>> normalize_version("v1.0.0-beta2")
        '1.0.0.0-beta2'
        >>> normalize_version("2.x-dev")
        '2.9999999.9999999.9999999-dev'
        >>> normalize_version("dev-main")
        'dev-main'

    Raises:
        ValueError: If the version cannot be parsed
    """
    original = version
    version = version.strip()

    alias = re.match(r"^([^,\s]+) +as +([^,\s]+)$", version)
    if alias:
        version = alias.group(1)

    flag = re.match(r"^([^,\s@]+)@(?:stable|RC|beta|alpha|dev)$", version, re.I)
    if flag:
        version = flag.group(1)

    if version.lower().startswith("dev-"):
        return "dev-" + version[4:]

    metadata = re.match(r"^([^,\s+]+)\+\S+$", version)
    if metadata:
        version = metadata.group(1)

    match = _CLASSICAL.match(version)
    if match:
        normalized = match.group(1) + "".join(match.group(i) or ".0" for i in (2, 3, 4))
        index = 5
    else:
        match = _DATE_BASED.match(version)
        if match:
            normalized = re.sub(r"\D", ".", match.group(1))
            index = 2

    if match:
        stability = match.group(index)
        if stability:
            if stability == "stable":
                return normalized
            normalized += "-" + _expand_stability(stability) + (match.group(index + 1) or "").lstrip(".-")
        if match.group(index + 2):
            normalized += "-dev"
        return normalized

    branch = re.match(r"^(.*?)[.-]?dev$", version, re.I)
    if branch:
        normalized = _normalize_branch(branch.group(1))
        # Only numeric branches may end in -dev
        if "dev-" not in normalized:
            return normalized

    raise ValueError(f"Invalid version string {original!r}")


class PackageManifest(BaseModel):
    """Identity fields of a composer.json; other keys are preserved as extras."""
    model_config = ConfigDict(extra="allow")

    name: str = Field(..., description="Package name (vendor/name), lower-cased")
    version: str = Field(..., description="Normalized version")

    @field_validator("name", mode="before")
    @classmethod
    def _check_name(cls, v: Any) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("package has no name defined")
        name = v.strip().lower()
        if not PACKAGE_NAME_PATTERN.match(name):
            raise ValueError(f"invalid package name {v!r}")
        return name

    @field_validator("version", mode="before")
    @classmethod
    def _check_version(cls, v: Any) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("package has no version defined")
        return normalize_version(v)


def load_manifest_document(raw: bytes, source: str) -> Dict[str, Any]:
    """
    Decode raw composer.json bytes into a JSON object.

    Raises:
        ManifestInvalid: If content is not a UTF-8 JSON object
    """
    text = raw.decode("utf-8", errors="replace")
    try:
        document = json.loads(raw.decode("utf-8-sig"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ManifestInvalid(source, text, str(e)) from e
    if not isinstance(document, dict):
        raise ManifestInvalid(source, text, "expected a JSON object")
    return document


def parse_manifest(raw: bytes, source: str) -> PackageManifest:
    """
    Parse raw composer.json bytes into a PackageManifest.

    Args:
        raw: Manifest bytes as stored in the archive
        source: Original upload filename, used in errors

    Raises:
        ManifestInvalid: If content is unparseable or lacks name/version
    """
    document = load_manifest_document(raw, source)
    try:
        return PackageManifest.model_validate(document)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" if err["loc"] else err["msg"]
            for err in e.errors()
        )
        raise ManifestInvalid(source, raw.decode("utf-8", errors="replace"), problems) from e


def with_dist(document: Dict[str, Any], url: str, reference: str) -> Dict[str, Any]:
    """Return a copy of document whose dist points at url."""
    updated = dict(document)
    updated["dist"] = {"type": "zip", "url": url, "reference": reference}
    return updated


def encode_manifest(document: Dict[str, Any]) -> bytes:
    """Pretty-print a manifest the way composer.json files are usually laid out."""
    return json.dumps(document, indent=4, ensure_ascii=False).encode("utf-8") + b"\n"
