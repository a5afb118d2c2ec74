from typing import Protocol, Any, Iterable, List, Sequence, Union, runtime_checkable


@runtime_checkable
class ContextStoreProtocol(Protocol):
    """Context store protocol mirroring `valkey_context.storage.ContextStore`.

    Implementations should follow the semantics documented on the abstract
    base class in `valkey_context.storage.base` (None for missing keys,
    NotConnectedError outside open/close, etc.).
    """

    async def open(self) -> None: ...

    async def close(self) -> None: ...

    async def get(self, scope: str, key: Union[str, Sequence[str]]) -> Any: ...

    async def set(self, scope: str, key: str, value: Any) -> None: ...

    async def keys(self, scope: str) -> List[str]: ...

    async def delete(self, scope: str) -> None: ...

    async def clean(self, active_node_ids: Iterable[str]) -> None: ...
