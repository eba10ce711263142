# Fake implementations for testing

from .fake_fetcher import FakeFetcher
from .fake_file_store import FakeFileStore

__all__ = ["FakeFetcher", "FakeFileStore"]
