"""
Remote fetcher for dist archives.

Streams dist archives over HTTP(S) with httpx, retrying timed-out requests
with tenacity. Sources that are not absolute URLs are treated as local
artifact paths. Outcomes are returned as Fetched / Missing / Failed values;
a transfer that breaks after the body started raises FetchInterrupted from
the stream.
"""
from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, Optional
from urllib.parse import urlparse

import httpx
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..settings import Settings
from .base import Failed, Fetched, FetchInterrupted, FetchResult, Missing, RemoteFetcher
from .local import CHUNK_SIZE

__all__ = ["HttpFetcher", "is_absolute_url", "local_artifact_path"]

logger = logging.getLogger(__name__)


def is_absolute_url(url: str) -> bool:
    """True for well-formed absolute URLs (scheme and host), False for paths."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return bool(parsed.scheme) and bool(parsed.netloc)


def _guarded_chunks(url: str, response: httpx.Response) -> Iterator[bytes]:
    """Iterate the response body, surfacing transport errors as FetchInterrupted."""
    try:
        yield from response.iter_bytes(CHUNK_SIZE)
    except httpx.HTTPError as e:
        raise FetchInterrupted(url, str(e)) from e


def local_artifact_path(url: str) -> Path:
    """Local filesystem path referenced by a non-URL source."""
    if url.startswith("file://"):
        url = url[len("file://"):]
    return Path(url)


class HttpFetcher(RemoteFetcher):
    """
    Fetcher for remote dist archives.

    HTTP 404 maps to Missing; other HTTP errors, network errors and timeouts
    (after retries) map to Failed.
    """

    def __init__(self, *, timeout_s: float = 30.0, retries: int = 3, backoff_s: float = 1.0,
                 user_agent: str = "distvault/0.1.0", client: Optional[httpx.Client] = None):
        """
        Initialize fetcher.

        Args:
            timeout_s: Per-request timeout in seconds
            retries: Attempts for timed-out requests
            backoff_s: Exponential backoff multiplier between attempts
            user_agent: User-Agent header value
            client: Pre-built httpx client (tests inject a MockTransport client)
        """
        self._retries = retries
        self._backoff_s = backoff_s
        self._owns_client = client is None
        self.client = client or httpx.Client(
            timeout=httpx.Timeout(timeout_s, connect=min(timeout_s, 10.0)),
            follow_redirects=True,
            headers={"User-Agent": user_agent},
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> HttpFetcher:
        return cls(
            timeout_s=settings.http_timeout_s,
            retries=settings.http_retry,
            user_agent=settings.user_agent,
        )

    @contextmanager
    def open(self, url: str, headers: Optional[Dict[str, str]] = None) -> Iterator[FetchResult]:
        if not is_absolute_url(url):
            with self._open_local(url) as result:
                yield result
            return

        try:
            response = self._send(url, headers or {})
        except httpx.TimeoutException as e:
            logger.warning(f"Timed out fetching {url} after {self._retries} attempt(s)")
            yield Failed(url=url, reason=f"timeout: {e}")
            return
        except httpx.RequestError as e:
            yield Failed(url=url, reason=f"network error: {e}")
            return

        try:
            if response.status_code == 404:
                yield Missing(url=url)
            elif response.is_error:
                yield Failed(url=url, reason=f"HTTP {response.status_code}")
            else:
                length = response.headers.get("Content-Length")
                yield Fetched(
                    url=url,
                    stream=_guarded_chunks(url, response),
                    size=int(length) if length and length.isdigit() else None,
                )
        finally:
            response.close()

    def _send(self, url: str, headers: Dict[str, str]) -> httpx.Response:
        """Send a streaming GET, retrying timeouts."""
        retrying = Retrying(
            stop=stop_after_attempt(self._retries),
            wait=wait_exponential(multiplier=self._backoff_s, max=10),
            retry=retry_if_exception_type(httpx.TimeoutException),
            reraise=True,
        )
        for attempt in retrying:
            with attempt:
                request = self.client.build_request("GET", url, headers=headers)
                logger.debug(f"GET {url} (attempt {attempt.retry_state.attempt_number})")
                return self.client.send(request, stream=True)
        raise AssertionError("unreachable")

    @contextmanager
    def _open_local(self, url: str) -> Iterator[FetchResult]:
        path = local_artifact_path(url)
        try:
            f = open(path, "rb")
        except (FileNotFoundError, IsADirectoryError):
            yield Missing(url=url)
            return
        except OSError as e:
            yield Failed(url=url, reason=str(e))
            return
        with f:
            yield Fetched(url=url, stream=f, size=os.fstat(f.fileno()).st_size)

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
