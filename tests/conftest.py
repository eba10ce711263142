"""Root pytest configuration for distvault tests."""
import pytest

from distvault.dist_cache import DistCache
from distvault.ingest import ArtifactIngester
from distvault.models import Organization
from distvault.settings import Settings

from .storage.fakes.fake_fetcher import FakeFetcher
from .storage.fakes.fake_file_store import FakeFileStore

DISTS_URL_TEMPLATE = "https://{organization}.repo.example.com"


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "slow: mark test as slow (may take significant time)"
    )


@pytest.fixture(autouse=True)
def test_env(monkeypatch, tmp_path):
    """Automatically set up test environment variables."""
    monkeypatch.setenv("DISTVAULT_STORAGE_ROOT", str(tmp_path / "storage"))
    monkeypatch.setenv("DISTVAULT_DISTS_URL_TEMPLATE", DISTS_URL_TEMPLATE)
    monkeypatch.delenv("DISTVAULT_ARTIFACTS_ROOT", raising=False)
    monkeypatch.delenv("DISTVAULT_STORAGE_BACKEND", raising=False)


@pytest.fixture
def settings(tmp_path):
    """Standard test settings."""
    return Settings(
        storage_root=str(tmp_path / "storage"),
        dists_url_template=DISTS_URL_TEMPLATE,
        temp_dir=str(tmp_path),
    )


@pytest.fixture
def store():
    """Standard fake file store for testing."""
    return FakeFileStore()


@pytest.fixture
def fetcher():
    """Standard fake fetcher for testing."""
    return FakeFetcher()


@pytest.fixture
def cache(store, fetcher, tmp_path):
    """Dist cache over fakes."""
    return DistCache(store, fetcher, DISTS_URL_TEMPLATE, temp_dir=str(tmp_path))


@pytest.fixture
def ingester(store):
    """Artifact ingester over the fake store."""
    return ArtifactIngester(store)


@pytest.fixture
def organization():
    return Organization(alias="acme")
