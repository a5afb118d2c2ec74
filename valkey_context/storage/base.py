"""Context store interface definitions.

Defines the ContextStore abstract class implemented by the Valkey-backed
store. Scopes are opaque strings (``global``, ``flow:<id>``,
``node:<id>``); keys may address nested properties with dots
(``user.profile.name``).
"""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Iterable, List, Sequence, Union


class ContextStore(ABC):
    """Abstract context store.

    Implementations must be safe to use from concurrent tasks sharing one
    event loop.
    """

    @abstractmethod
    async def open(self) -> None:
        """Establish the backend connection. Called once before any other method."""

    @abstractmethod
    async def close(self) -> None:
        """Release the backend connection."""

    @abstractmethod
    async def get(self, scope: str, key: Union[str, Sequence[str]]) -> Any:
        """Return the value for `key`, or a list of values for a list of keys.

        Missing keys and missing nested properties read as None.
        """

    @abstractmethod
    async def set(self, scope: str, key: str, value: Any) -> None:
        """Store `value` under `key`, creating nested structure as needed."""

    @abstractmethod
    async def keys(self, scope: str) -> List[str]:
        """Return the top-level keys stored in `scope`."""

    @abstractmethod
    async def delete(self, scope: str) -> None:
        """Delete every key in `scope`. Deleting an empty scope is not an error."""

    async def clean(self, active_node_ids: Iterable[str]) -> None:
        """Delete node-scoped data for nodes not in `active_node_ids`.

        Optional capability; stores that cannot enumerate node scopes keep
        this default.
        """
        raise NotImplementedError("clean is not supported by this store")
