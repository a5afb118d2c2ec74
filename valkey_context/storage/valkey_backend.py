"""Valkey/Redis backed context store.

All data lives in the server; nothing is cached between calls, so several
host instances sharing one server always read each other's writes.

Key layout: ``{prefix}context:{scope}:{key}``. A dotted key such as
``user.profile.name`` addresses a property inside the JSON document
stored under ``user``; nested writes run as server-side Lua scripts so
concurrent writers of one document never lose each other's updates.
"""
from __future__ import annotations
import asyncio
import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Union

from redis import asyncio as redis
from redis.asyncio.sentinel import Sentinel
from redis.exceptions import NoScriptError, RedisError

from valkey_context.config import ContextStoreConfig
from valkey_context.errors import BackendError, CodecError, ContextStoreError, NotConnectedError
from valkey_context.storage.accessor import PathAccessor, parse_path
from valkey_context.storage.base import ContextStore
from valkey_context.storage.cleanup import select_stale_keys
from valkey_context.storage.keys import KeyMapper
from valkey_context.storage.scripts import COMPRESSED_DOCUMENT, DELETE_NESTED_SCRIPT, SET_NESTED_SCRIPT
from valkey_context.storage.serializer import deserialize, maybe_compress, maybe_decompress, serialize

logger = logging.getLogger(__name__)

SCAN_COUNT = 500
DELETE_BATCH_SIZE = 500


def create_client(config: ContextStoreConfig) -> redis.Redis:
    """Build an asyncio client for `config`, through Sentinel when sentinels are set."""
    options: Dict[str, Any] = {
        "username": config.username,
        "password": config.password,
        "db": config.db,
        "socket_timeout": config.timeout_seconds,
        "socket_connect_timeout": config.timeout_seconds,
        "decode_responses": True,
    }
    if config.sentinels:
        sentinel_kwargs = {"password": config.sentinel_password} if config.sentinel_password else None
        sentinel = Sentinel(config.sentinels, sentinel_kwargs=sentinel_kwargs, **options)
        return sentinel.master_for(config.name)
    return redis.Redis(host=config.host, port=config.port, ssl=config.tls, **options)


@contextmanager
def _backend_errors(action: str) -> Iterator[None]:
    try:
        yield
    except RedisError as e:
        raise BackendError(f"{action} failed: {e}") from e


class ValkeyContextStore(ContextStore):
    def __init__(
        self,
        config: Union[ContextStoreConfig, Mapping[str, Any], None] = None,
        client_factory: Optional[Callable[[ContextStoreConfig], Any]] = None,
    ) -> None:
        if not isinstance(config, ContextStoreConfig):
            config = ContextStoreConfig.model_validate(dict(config or {}))
        self.config = config
        self.mapper = KeyMapper(config.key_prefix)
        self.compression_enabled = config.enable_compression
        self._client_factory = client_factory or create_client
        self._accessor = PathAccessor()
        self._client: Any = None
        self._script_shas: Dict[str, str] = {}

    @property
    def is_open(self) -> bool:
        return self._client is not None

    def _require_client(self) -> Any:
        if self._client is None:
            raise NotConnectedError()
        return self._client

    async def open(self) -> None:
        if self._client is not None:
            raise ContextStoreError("ValkeyContext is already open")
        client = self._client_factory(self.config)
        try:
            if not await client.ping():
                raise BackendError("Valkey connection verification failed")
            shas = {}
            for script in (SET_NESTED_SCRIPT, DELETE_NESTED_SCRIPT):
                shas[script] = await client.script_load(script)
        except Exception as e:
            logger.exception("Failed to connect to Valkey at %s", self._describe_target())
            await self._discard(client)
            if isinstance(e, RedisError):
                raise BackendError(f"connect failed: {e}") from e
            raise
        self._client = client
        self._script_shas = shas
        logger.info("Connected to Valkey at %s", self._describe_target())

    async def close(self) -> None:
        client, self._client = self._client, None
        self._script_shas = {}
        if client is None:
            return
        with _backend_errors("close"):
            await client.aclose()
        logger.info("Disconnected from Valkey")

    async def get(self, scope: str, key: Union[str, Sequence[str]]) -> Any:
        self._require_client()
        if isinstance(key, str):
            return await self._get_single(scope, key)
        # Let every fetch finish before reporting the first failure.
        results = await asyncio.gather(*(self._get_single(scope, k) for k in key), return_exceptions=True)
        for r in results:
            if isinstance(r, BaseException):
                raise r
        return list(results)

    async def set(self, scope: str, key: str, value: Any) -> None:
        client = self._require_client()
        path = parse_path(key)
        remote_key = self.mapper.build(scope, path.top_level)
        serialized = serialize(value)

        if path.is_nested:
            # Stored uncompressed so the script can decode the document.
            result = await self._run_script(SET_NESTED_SCRIPT, remote_key, path.sub_path, serialized)
            self._check_script_result(result, remote_key)
            if result == 0:
                logger.warning("Nested set of %r in scope %s wrote nothing: path has no segments below %r",
                               key, scope, path.top_level)
            return

        payload = maybe_compress(serialized, self.compression_enabled)
        with _backend_errors(f"SET {remote_key}"):
            await client.set(remote_key, payload)

    async def remove(self, scope: str, key: str) -> bool:
        """Delete a single key or nested property. Returns True if anything changed."""
        client = self._require_client()
        path = parse_path(key)
        remote_key = self.mapper.build(scope, path.top_level)
        if path.is_nested:
            result = await self._run_script(DELETE_NESTED_SCRIPT, remote_key, path.sub_path)
            self._check_script_result(result, remote_key)
            return result == 1
        with _backend_errors(f"DEL {remote_key}"):
            return bool(await client.delete(remote_key))

    async def keys(self, scope: str) -> List[str]:
        remote_keys = await self._scan(self.mapper.scope_pattern(scope))
        prefix = self.mapper.scope_prefix(scope)
        return [k[len(prefix):] for k in remote_keys]

    async def delete(self, scope: str) -> None:
        remote_keys = await self._scan(self.mapper.scope_pattern(scope))
        if not remote_keys:
            return
        deleted = await self._delete_keys(remote_keys)
        logger.debug("Deleted %d keys for scope %s", deleted, scope)

    async def clean(self, active_node_ids: Iterable[str]) -> None:
        remote_keys = await self._scan(self.mapper.node_pattern())
        stale = select_stale_keys(remote_keys, self.mapper, active_node_ids)
        if not stale:
            return
        await self._delete_keys(stale)
        logger.info("Cleaned %d keys for inactive nodes", len(stale))

    async def _get_single(self, scope: str, key: str) -> Any:
        client = self._require_client()
        path = parse_path(key)
        remote_key = self.mapper.build(scope, path.top_level)
        with _backend_errors(f"GET {remote_key}"):
            raw = await client.get(remote_key)
        if raw is None:
            return None
        value = deserialize(maybe_decompress(raw))
        if path.is_nested:
            value = self._accessor.get(value, path.parts[1:])
        return value

    async def _run_script(self, script: str, remote_key: str, *args: str) -> int:
        client = self._require_client()
        sha = self._script_shas[script]
        with _backend_errors(f"script on {remote_key}"):
            try:
                return int(await client.evalsha(sha, 1, remote_key, *args))
            except NoScriptError:
                # Script cache is lost after a server restart or failover.
                logger.warning("Lua script missing on server, reloading")
                sha = self._script_shas[script] = await client.script_load(script)
                return int(await client.evalsha(sha, 1, remote_key, *args))

    @staticmethod
    def _check_script_result(result: int, remote_key: str) -> None:
        if result == COMPRESSED_DOCUMENT:
            raise CodecError(f"cannot update nested property of compressed value at {remote_key}")

    async def _scan(self, pattern: str) -> List[str]:
        client = self._require_client()
        with _backend_errors(f"SCAN {pattern}"):
            found = [k async for k in client.scan_iter(match=pattern, count=SCAN_COUNT)]
        # SCAN may return a key more than once.
        return list(dict.fromkeys(found))

    async def _delete_keys(self, remote_keys: Sequence[str]) -> int:
        client = self._require_client()
        deleted = 0
        for start in range(0, len(remote_keys), DELETE_BATCH_SIZE):
            batch = remote_keys[start:start + DELETE_BATCH_SIZE]
            with _backend_errors(f"DEL of {len(batch)} keys"):
                deleted += await client.delete(*batch)
        return deleted

    async def _discard(self, client: Any) -> None:
        try:
            await client.aclose()
        except RedisError:
            logger.debug("Ignoring error while closing failed connection", exc_info=True)

    def _describe_target(self) -> str:
        if self.config.sentinels:
            return f"sentinel master '{self.config.name}'"
        return f"{self.config.host}:{self.config.port}/{self.config.db}"
