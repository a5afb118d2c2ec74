"""Error-first callback surface for event-driven hosts.

Hosts that drive context stores with ``callback(err, value)`` functions
instead of awaiting coroutines wrap the store in `CallbackContextStore`.
Each call schedules the operation on the running event loop and reports
its outcome to the callback exactly once; failures never escape into the
loop.
"""
from __future__ import annotations
import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterable, Optional, Sequence, Set, Union

from valkey_context.storage.interfaces import ContextStoreProtocol

logger = logging.getLogger(__name__)

ValueCallback = Callable[..., None]
DoneCallback = Callable[..., None]


class CallbackContextStore:
    def __init__(self, store: ContextStoreProtocol) -> None:
        self.store = store
        # Strong references so scheduled operations are not garbage collected.
        self._pending: Set[asyncio.Task] = set()

    async def open(self) -> None:
        await self.store.open()

    async def close(self) -> None:
        await self.store.close()

    def get(self, scope: str, key: Union[str, Sequence[str]], callback: ValueCallback) -> asyncio.Task:
        task = self._spawn(self.store.get, scope, key)
        task.add_done_callback(lambda t: self._report(t, callback, with_value=True))
        return task

    def set(self, scope: str, key: str, value: Any, callback: DoneCallback) -> asyncio.Task:
        task = self._spawn(self.store.set, scope, key, value)
        task.add_done_callback(lambda t: self._report(t, callback, with_value=False))
        return task

    def keys(self, scope: str, callback: ValueCallback) -> asyncio.Task:
        task = self._spawn(self.store.keys, scope)
        task.add_done_callback(lambda t: self._report(t, callback, with_value=True))
        return task

    def delete(self, scope: str) -> asyncio.Task:
        return self._spawn(self.store.delete, scope)

    def clean(self, active_node_ids: Iterable[str]) -> asyncio.Task:
        return self._spawn(self.store.clean, list(active_node_ids))

    def _spawn(self, operation: Callable[..., Awaitable[Any]], *args: Any) -> asyncio.Task:
        loop = asyncio.get_running_loop()
        task = loop.create_task(operation(*args))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    @staticmethod
    def _report(task: asyncio.Task, callback: Callable[..., None], with_value: bool) -> None:
        if task.cancelled():
            err: Optional[BaseException] = asyncio.CancelledError()
        else:
            err = task.exception()
        try:
            if err is not None:
                callback(err)
            elif with_value:
                callback(None, task.result())
            else:
                callback(None)
        except Exception:
            logger.exception("Context store callback raised")
