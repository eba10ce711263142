"""Tests for dist and ingestion data models."""
from __future__ import annotations

import pytest
from pydantic import ValidationError

from distvault.models import Dist, Organization, PackageArtifact, UploadedArchive
from tests.helpers.archives import make_zip


class TestDist:
    """Test dist identity validation."""

    def test_defaults_and_display(self):
        dist = Dist(repo="acme", package="lib/foo", version="1.0.0", ref="abcd123")

        assert dist.format == "zip"
        assert str(dist) == "lib/foo:1.0.0@abcd123"

    def test_dist_is_frozen(self):
        dist = Dist(repo="acme", package="lib/foo", version="1.0.0", ref="abcd123")

        with pytest.raises(ValidationError):
            dist.version = "2.0.0"

    def test_equal_fields_equal_dists(self):
        a = Dist(repo="acme", package="lib/foo", version="1.0.0", ref="abcd123")
        b = Dist(repo="acme", package="lib/foo", version="1.0.0", ref="abcd123")

        assert a == b
        assert hash(a) == hash(b)

    @pytest.mark.parametrize("field,value", [
        ("repo", ""),
        ("repo", "a/b"),
        ("package", "lib/"),
        ("package", "lib//foo"),
        ("package", "/lib/foo"),
        ("version", "1.0/2"),
        ("ref", "abc_def"),
        ("ref", "abc.def"),
        ("format", "tar.gz"),
        ("format", ""),
    ])
    def test_ambiguous_components_rejected(self, field, value):
        """Test that components which could make two dists share a path are rejected."""
        fields = {"repo": "acme", "package": "lib/foo", "version": "1.0.0", "ref": "abcd123"}
        fields[field] = value

        with pytest.raises(ValidationError):
            Dist(**fields)

    def test_tag_ref_rejected_with_hint(self):
        """Test that a tag name is refused as ref and the error says what is expected."""
        with pytest.raises(ValidationError, match="commit-like identifier"):
            Dist(repo="acme", package="lib/foo", version="1.0.0", ref="v1.0.0")

    def test_commit_sha_ref_accepted(self):
        sha = "0f3b2c9d8e7a6b5c4d3e2f1a0b9c8d7e6f5a4b3c"
        assert Dist(repo="acme", package="lib/foo", version="1.0.0", ref=sha).ref == sha


class TestOrganization:
    def test_alias_must_be_single_segment(self):
        assert Organization(alias="acme").alias == "acme"
        with pytest.raises(ValidationError):
            Organization(alias="acme/evil")


class TestUploadedArchive:
    """Test upload records."""

    def test_zip_detected_from_content(self, tmp_path):
        path = tmp_path / "Widget.ZIP"
        path.write_bytes(make_zip({"composer.json": b"{}"}))

        upload = UploadedArchive.from_path(path)

        assert upload.extension == "zip"
        assert upload.original_name == "Widget.ZIP"
        assert upload.valid

    def test_zip_without_suffix_detected(self, tmp_path):
        """Test that a ZIP stored under a temp name is still recognized."""
        path = tmp_path / "php4Hx2a"
        path.write_bytes(make_zip({"composer.json": b"{}"}))

        upload = UploadedArchive.from_path(path)

        assert upload.extension == "zip"
        assert upload.original_name == "php4Hx2a"

    def test_truncated_zip_still_detected(self, tmp_path):
        path = tmp_path / "upload"
        path.write_bytes(b"PK\x03\x04 truncated")

        assert UploadedArchive.from_path(path).extension == "zip"

    def test_text_named_zip_not_accepted(self, tmp_path):
        path = tmp_path / "notes.zip"
        path.write_text("just some text")

        upload = UploadedArchive.from_path(path)

        assert upload.extension is None
        assert upload.valid

    def test_non_zip_extension_from_filename(self, tmp_path):
        path = tmp_path / "php4Hx2a"
        path.write_bytes(b"tar bytes")

        upload = UploadedArchive.from_path(path, "Widget.TAR")

        assert upload.extension == "tar"
        assert upload.original_name == "Widget.TAR"

    def test_mime_type_wins_over_suffix(self, tmp_path):
        path = tmp_path / "upload.bin"
        path.write_bytes(b"tar bytes")

        upload = UploadedArchive.from_path(path, mime_type="application/x-tar")

        assert upload.extension == "tar"

    def test_missing_file_is_invalid(self, tmp_path):
        upload = UploadedArchive.from_path(tmp_path / "gone.zip")

        assert not upload.valid


class TestPackageArtifact:
    def test_path_layout(self):
        artifact = PackageArtifact(name="acme/widget", version="1.2.0.0", fingerprint="ab12",
                                   extension="zip", directory="acme/acme/widget")

        assert artifact.filename == "1.2.0.0_ab12.zip"
        assert artifact.path == "acme/acme/widget/1.2.0.0_ab12.zip"

    def test_branch_version_stays_one_segment(self):
        artifact = PackageArtifact(name="acme/widget", version="dev-feature/login", fingerprint="ab12",
                                   extension="zip", directory="acme/acme/widget")

        assert artifact.filename == "dev-feature-login_ab12.zip"
