"""
Dist cache.

Caches remotely sourced package distribution archives on a FileStore under
"{repo}/dist/{package}/{version}_{ref}.{format}". A dist is fetched at most
once per derived path. Dists sourced from a local artifact path (rather than
a hosted URL) get their embedded composer.json rewritten to point at the
locally served distribution URL.
"""
from __future__ import annotations

import logging
import os
import shutil
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from .archive import locate_entry, open_archive, read_entry, replace_entry
from .errors import DistNotFound, FetchFailed, ManifestMissing, ManifestRewriteFailed
from .manifest import encode_manifest, load_manifest_document, with_dist
from .models import Dist
from .settings import Settings
from .storage.base import Failed, FetchInterrupted, FileStore, Missing, RemoteFetcher
from .storage.http_fetcher import is_absolute_url, local_artifact_path
from .storage.local import copy_stream

__all__ = ["DistCache", "KeyedLock"]

logger = logging.getLogger(__name__)


class KeyedLock:
    """Per-key mutual exclusion; lock objects are dropped once unused."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[str, List] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


class DistCache:
    """
    Cache of distribution archives on a FileStore.

    Cache misses are never errors: ``exists`` returns False, ``size`` returns 0
    and ``local_copy`` returns None for an absent dist.
    """

    def __init__(self, store: FileStore, fetcher: RemoteFetcher, dists_url_template: str,
                 *, temp_dir: Optional[str] = None) -> None:
        """
        Args:
            store: FileStore holding cached dists
            fetcher: RemoteFetcher used on cache miss
            dists_url_template: Base URL of served dists with an
                "{organization}" placeholder
            temp_dir: Directory for scoped temp files (None = system default)
        """
        self.store = store
        self.fetcher = fetcher
        self.dists_url_template = dists_url_template
        self.temp_dir = temp_dir
        self._locks = KeyedLock()

    @classmethod
    def from_settings(cls, settings: Settings, store: FileStore, fetcher: RemoteFetcher) -> DistCache:
        return cls(store, fetcher, settings.dists_url_template, temp_dir=settings.temp_dir)

    def filename(self, dist: Dist) -> str:
        """Storage path of dist; a pure function of its five fields."""
        return f"{dist.repo}/dist/{dist.package}/{dist.version}_{dist.ref}.{dist.format}"

    def dist_url(self, dist: Dist) -> str:
        """Externally reachable URL serving the rewritten copy of dist."""
        repository_url = self.dists_url_template.replace("{organization}", dist.repo).rstrip("/")
        return f"{repository_url}/dists/{dist.package}/{dist.version}/{dist.ref}.zip"

    def exists(self, dist: Dist) -> bool:
        return self.store.exists(self.filename(dist))

    def download(self, url: str, dist: Dist, headers: Optional[Dict[str, str]] = None) -> Optional[str]:
        """
        Fetch dist from url into the cache unless already cached.

        Args:
            url: Hosted URL or local artifact path of the archive
            dist: Dist identity
            headers: Extra request headers (e.g. authorization)

        Returns:
            The rewritten distribution URL when url is a local artifact path,
            otherwise None (also None when the dist was already cached)

        Raises:
            DistNotFound: If the source does not exist
            FetchFailed: If the transfer fails
            ManifestRewriteFailed: If rewriting an artifact-sourced dist fails
        """
        filename = self.filename(dist)
        if self.store.exists(filename):
            logger.debug(f"Dist {dist} already cached at {filename}")
            return None

        with self._locks.hold(filename):
            # Another caller may have stored it while we waited
            if self.store.exists(filename):
                logger.debug(f"Dist {dist} stored concurrently at {filename}")
                return None

            self._fetch_into(url, dist, filename, headers or {})

            if not is_absolute_url(url):
                return self._update_dist_url(url, filename, dist)
        return None

    def _fetch_into(self, url: str, dist: Dist, filename: str, headers: Dict[str, str]) -> None:
        with self.fetcher.open(url, headers) as result:
            if isinstance(result, Missing):
                raise DistNotFound(url)
            if isinstance(result, Failed):
                raise FetchFailed(dist.package, url, result.reason)
            try:
                written = self.store.write_stream(filename, result.stream)
            except FetchInterrupted as e:
                raise FetchFailed(dist.package, url, e.reason) from e
        logger.info(f"Cached dist {dist} ({written} bytes) at {filename}")

    def remove(self, dist: Dist) -> None:
        filename = self.filename(dist)
        if self.store.exists(filename):
            self.store.delete(filename)
            logger.info(f"Removed cached dist {filename}")

    def size(self, dist: Dist) -> int:
        size = self.store.size(self.filename(dist))
        return size if size is not None else 0

    def local_copy(self, dist: Dist) -> Optional[Path]:
        """
        Copy the cached archive into a local temp file.

        Returns:
            Path of the temp file (the caller deletes it) or None if not cached
        """
        return self._local_copy_of(self.filename(dist), suffix=f".{dist.format}")

    @contextmanager
    def local_copy_scope(self, dist: Dist) -> Iterator[Optional[Path]]:
        """Like local_copy, deleting the temp file when the scope exits."""
        path = self.local_copy(dist)
        try:
            yield path
        finally:
            if path is not None:
                path.unlink(missing_ok=True)

    def _local_copy_of(self, filename: str, suffix: str = "") -> Optional[Path]:
        stream = self.store.read_stream(filename)
        if stream is None:
            return None

        fd, temp_name = tempfile.mkstemp(prefix="distvault-dist-", suffix=suffix, dir=self.temp_dir)
        temp_path = Path(temp_name)
        try:
            with stream, os.fdopen(fd, "wb") as out:
                copy_stream(stream, out)
        except BaseException:
            temp_path.unlink(missing_ok=True)
            raise
        return temp_path

    def _update_dist_url(self, url: str, filename: str, dist: Dist) -> str:
        """
        Point the dist field of the archive's composer.json at the served URL.

        The archive is edited in a local temp copy, stored back to the cache and
        then published over the artifact file at url. The cached copy is evicted
        if any step fails so the next download starts clean.
        """
        try:
            with self.local_copy_scope(dist) as local:
                if local is None:
                    raise FileNotFoundError(f"Dist vanished from cache: {filename}")

                with open_archive(local, filename) as zf:
                    entry = locate_entry(zf)
                    if entry is None:
                        raise ManifestMissing(filename)
                    document = load_manifest_document(read_entry(zf, entry), filename)

                dist_url = self.dist_url(dist)
                replace_entry(local, entry, encode_manifest(with_dist(document, dist_url, dist.ref)))

                with open(local, "rb") as f:
                    self.store.write_stream(filename, f)
                _publish(local, local_artifact_path(url))
        except Exception as e:
            self._evict(filename)
            raise ManifestRewriteFailed(dist.package, dist.version) from e

        logger.info(f"Rewrote dist URL of {dist} to {dist_url}")
        return dist_url

    def _evict(self, filename: str) -> None:
        try:
            self.store.delete(filename)
        except OSError as e:
            logger.warning(f"Could not evict {filename} after failed rewrite: {e}")


def _publish(source: Path, target: Path) -> None:
    """Atomically replace target with a copy of source."""
    fd, temp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
    temp_path = Path(temp_name)
    try:
        with open(source, "rb") as fin, os.fdopen(fd, "wb") as fout:
            shutil.copyfileobj(fin, fout)
        os.replace(temp_path, target)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise
