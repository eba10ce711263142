"""Tests for composer.json parsing, version normalization and rewriting."""
from __future__ import annotations

import json

import pytest

from distvault.errors import ManifestInvalid
from distvault.manifest import (
    encode_manifest,
    load_manifest_document,
    normalize_version,
    parse_manifest,
    with_dist,
)


class TestNormalizeVersion:
    """Test Composer-style version normalization."""

    @pytest.mark.parametrize("raw,expected", [
        ("1.2", "1.2.0.0"),
        ("1.0.0", "1.0.0.0"),
        ("v2.3.4.5", "2.3.4.5"),
        ("1.0.0-RC1", "1.0.0.0-RC1"),
        ("1.0.0-rc1", "1.0.0.0-RC1"),
        ("v1.0.0-beta2", "1.0.0.0-beta2"),
        ("1.0.0-alpha.3", "1.0.0.0-alpha3"),
        ("1.0.0-pl1", "1.0.0.0-patch1"),
        ("1.0.0-stable", "1.0.0.0"),
        ("1.0.0-dev", "1.0.0.0-dev"),
        ("1.0.0+build.5", "1.0.0.0"),
        ("1.0.0@beta", "1.0.0.0"),
        ("1.0.0 as 2.0.0", "1.0.0.0"),
        ("20240101", "20240101"),
        ("2.x-dev", "2.9999999.9999999.9999999-dev"),
        ("dev-main", "dev-main"),
        ("dev-feature/login", "dev-feature/login"),
        ("  1.2  ", "1.2.0.0"),
    ])
    def test_normalized_forms(self, raw, expected):
        assert normalize_version(raw) == expected

    @pytest.mark.parametrize("raw", ["not a version", "feature-dev", "1.0.0-foo"])
    def test_invalid_versions_raise(self, raw):
        with pytest.raises(ValueError, match="Invalid version string"):
            normalize_version(raw)


class TestParseManifest:
    """Test manifest identity extraction."""

    def test_identity_fields(self):
        raw = json.dumps({"name": "Acme/Widget", "version": "1.2", "type": "library"}).encode()

        manifest = parse_manifest(raw, "widget.zip")

        assert manifest.name == "acme/widget"
        assert manifest.version == "1.2.0.0"
        assert manifest.model_extra == {"type": "library"}

    def test_byte_order_mark_accepted(self):
        raw = b"\xef\xbb\xbf" + json.dumps({"name": "acme/widget", "version": "1.0.0"}).encode()

        assert parse_manifest(raw, "widget.zip").name == "acme/widget"

    def test_unparseable_content(self):
        with pytest.raises(ManifestInvalid) as exc_info:
            parse_manifest(b"{broken", "widget.zip")

        assert exc_info.value.source == "widget.zip"
        assert exc_info.value.content == "{broken"
        assert "File content is : {broken" in str(exc_info.value)

    def test_non_object_document(self):
        with pytest.raises(ManifestInvalid, match="expected a JSON object"):
            parse_manifest(b"[]", "widget.zip")

    def test_missing_name(self):
        with pytest.raises(ManifestInvalid, match="name"):
            parse_manifest(b'{"version": "1.0.0"}', "widget.zip")

    def test_invalid_name(self):
        with pytest.raises(ManifestInvalid, match="invalid package name"):
            parse_manifest(b'{"name": "no-vendor", "version": "1.0.0"}', "widget.zip")

    def test_empty_version(self):
        with pytest.raises(ManifestInvalid, match="package has no version defined"):
            parse_manifest(b'{"name": "acme/widget", "version": ""}', "widget.zip")

    def test_unparseable_version(self):
        with pytest.raises(ManifestInvalid, match="Invalid version string"):
            parse_manifest(b'{"name": "acme/widget", "version": "whenever"}', "widget.zip")


class TestRewriteHelpers:
    """Test dist replacement and encoding."""

    def test_with_dist_replaces_only_dist(self):
        document = {"name": "lib/foo", "require": {"php": ">=8.1"}, "dist": {"type": "tar"}}

        updated = with_dist(document, "https://acme.repo.example.com/dists/lib/foo/1.0.0/abcd123.zip", "abcd123")

        assert updated["require"] == {"php": ">=8.1"}
        assert updated["dist"] == {
            "type": "zip",
            "url": "https://acme.repo.example.com/dists/lib/foo/1.0.0/abcd123.zip",
            "reference": "abcd123",
        }
        assert document["dist"] == {"type": "tar"}

    def test_key_order_preserved(self):
        document = load_manifest_document(b'{"name": "lib/foo", "z": 1, "a": 2}', "foo.zip")

        updated = with_dist(document, "https://x/dists/lib/foo/1/abc.zip", "abc")

        assert list(updated) == ["name", "z", "a", "dist"]

    def test_encode_manifest_layout(self):
        encoded = encode_manifest({"name": "lib/foo", "description": "Ünïcode", "url": "https://x/y"})

        assert encoded.endswith(b"\n")
        assert b'    "name": "lib/foo"' in encoded
        assert "Ünïcode".encode() in encoded
        assert b"https://x/y" in encoded
