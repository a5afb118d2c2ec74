"""Error types raised by the context store.

Every failure surfaced by `ValkeyContextStore` is a `ContextStoreError`
so hosts can catch one type. Backend failures keep the original
`redis` exception as `__cause__`.
"""
from __future__ import annotations


class ContextStoreError(Exception):
    """Base class for all context store failures."""


class NotConnectedError(ContextStoreError):
    """Operation attempted before `open()` or after `close()`."""

    def __init__(self, message: str = "ValkeyContext not connected") -> None:
        super().__init__(message)


class BackendError(ContextStoreError):
    """Network, protocol or script failure reported by the Valkey/Redis server."""


class CodecError(ContextStoreError):
    """A stored value could not be decoded (corrupt envelope or invalid JSON)."""
