"""Storage and fetch backends behind the FileStore / RemoteFetcher protocols."""
from .base import Failed, Fetched, FetchInterrupted, FetchResult, FileStore, Missing, RemoteFetcher
from .http_fetcher import HttpFetcher, is_absolute_url
from .local import LocalFileStore
from .store_factory import file_store_for

__all__ = [
    "FileStore",
    "RemoteFetcher",
    "Fetched",
    "Missing",
    "Failed",
    "FetchResult",
    "FetchInterrupted",
    "HttpFetcher",
    "LocalFileStore",
    "file_store_for",
    "is_absolute_url",
]
