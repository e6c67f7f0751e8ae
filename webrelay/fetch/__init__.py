from .fetcher import (
    FetchedResource,
    FetchError,
    FetchTimeout,
    TooManyRedirects,
    decompress_body,
    fetch_url,
)

__all__ = [
    "FetchedResource",
    "FetchError",
    "FetchTimeout",
    "TooManyRedirects",
    "decompress_body",
    "fetch_url",
]
