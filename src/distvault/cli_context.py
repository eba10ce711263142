"""
CLI Context for managing application dependencies.

Builds stores, fetcher, cache and ingester lazily from settings so a CLI
command only constructs what it uses, without global state.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .dist_cache import DistCache
from .ingest import ArtifactIngester, IngestOptions
from .settings import Settings, create_settings_from_env
from .storage.base import FileStore, RemoteFetcher
from .storage.http_fetcher import HttpFetcher
from .storage.store_factory import file_store_for


@dataclass
class CLIContext:
    """
    Shared context for CLI commands.

    Dependencies are created on first access and reused for the rest of the
    command execution.
    """
    settings: Settings
    _dist_store: Optional[FileStore] = None
    _artifact_store: Optional[FileStore] = None
    _fetcher: Optional[RemoteFetcher] = None

    @classmethod
    def from_env(cls) -> CLIContext:
        return cls(settings=create_settings_from_env())

    @property
    def dist_store(self) -> FileStore:
        if self._dist_store is None:
            self._dist_store = file_store_for(self.settings, self.settings.storage_root)
        return self._dist_store

    @property
    def artifact_store(self) -> FileStore:
        if self._artifact_store is None:
            if self.settings.artifacts_root is None:
                self._artifact_store = self.dist_store
            else:
                self._artifact_store = file_store_for(self.settings, self.settings.artifacts_root)
        return self._artifact_store

    @property
    def fetcher(self) -> RemoteFetcher:
        if self._fetcher is None:
            self._fetcher = HttpFetcher.from_settings(self.settings)
        return self._fetcher

    @property
    def dist_cache(self) -> DistCache:
        return DistCache.from_settings(self.settings, self.dist_store, self.fetcher)

    def ingester(self, options: Optional[IngestOptions] = None) -> ArtifactIngester:
        return ArtifactIngester(self.artifact_store, options or IngestOptions())
