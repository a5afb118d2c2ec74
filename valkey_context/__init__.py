"""Cluster-shared context store for flow-based hosts, backed by Valkey/Redis.

The host loads the store through `create_store`:

    store = create_store({"host": "cache.internal", "keyPrefix": "nodered:"})
    await store.open()
    await store.set("global", "user.profile.name", "Alice")
"""
from __future__ import annotations
from typing import Any, Mapping, Union

from valkey_context.config import ContextStoreConfig, load_config
from valkey_context.errors import BackendError, CodecError, ContextStoreError, NotConnectedError
from valkey_context.storage import ContextStore, ValkeyContextStore


def create_store(config: Union[ContextStoreConfig, Mapping[str, Any], None] = None) -> ValkeyContextStore:
    """Return a new, unopened ValkeyContextStore for `config`."""
    return ValkeyContextStore(config)


__all__ = [
    "create_store",
    "ContextStore",
    "ValkeyContextStore",
    "ContextStoreConfig",
    "load_config",
    "ContextStoreError",
    "NotConnectedError",
    "BackendError",
    "CodecError",
]
