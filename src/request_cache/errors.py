"""Error taxonomy for the request cache.

    RequestCacheError
    ├── SerializationError   request could not be canonically serialized
    ├── StoreError           cache store read/write failed
    └── FetchError           anything that stops fetch() from returning
        ├── UpstreamFetchError   transport error, timeout, non-2xx, bad body
        └── StoreFetchError      a StoreError hit during fetch()
"""


class RequestCacheError(Exception):
    """Base class for every error raised by this package."""


class SerializationError(RequestCacheError):
    """The request payload has no canonical serialization.

    This is a programming error on the caller's side and is never retried.
    """


class StoreError(RequestCacheError):
    """The cache store failed to read or write an entry."""


class FetchError(RequestCacheError):
    """Base class for failures on the fetch-or-refresh path."""


class UpstreamFetchError(FetchError):
    """The live call to the upstream API failed."""

    def __init__(self, message: str, upstream: str = "", status_code: int | None = None) -> None:
        super().__init__(message)
        self.upstream = upstream
        self.status_code = status_code


class StoreFetchError(FetchError):
    """A store failure surfaced while serving a fetch.

    The underlying StoreError is available as ``__cause__``.
    """
