import hashlib
import re
from typing import Any, Dict, Optional

import fakeredis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import NoScriptError

from valkey_context.storage.valkey_backend import ValkeyContextStore


def _glob_to_regex(pattern: str) -> str:
    """Translate a SCAN MATCH glob, honouring backslash escapes."""
    out = []
    i = 0
    while i < len(pattern):
        c = pattern[i]
        if c == '\\' and i + 1 < len(pattern):
            out.append(re.escape(pattern[i + 1]))
            i += 2
            continue
        if c == '*':
            out.append('.*')
        elif c == '?':
            out.append('.')
        else:
            out.append(re.escape(c))
        i += 1
    return ''.join(out)


class FakeValkey:
    """In-memory stand-in for `redis.asyncio.Redis` covering the commands the store uses.

    `evalsha` runs the real Lua scripts on an embedded fakeredis server
    holding a copy of the key, so nested updates behave as they would on
    Valkey. `fail_after`
    makes a command raise after N successful calls and `fail_keys` makes
    GET raise for specific keys.
    """

    def __init__(self, data: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = data if data is not None else {}
        self.scripts: Dict[str, str] = {}
        self.closed = False
        self.ping_result: Any = True
        self.calls: list = []
        self.fail_keys: set = set()
        self._fail_after: Dict[str, int] = {}
        self._counts: Dict[str, int] = {}
        self._lua = fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)

    def fail_after(self, command: str, successes: int = 0) -> None:
        self._fail_after[command] = successes

    def _check(self, command: str, *args: Any) -> None:
        self.calls.append((command,) + args)
        if self.closed:
            raise RedisConnectionError("Connection closed by server.")
        count = self._counts.get(command, 0)
        self._counts[command] = count + 1
        if command in self._fail_after and count >= self._fail_after[command]:
            raise RedisConnectionError(f"{command} failed")

    def commands(self) -> list:
        return [c[0] for c in self.calls]

    async def ping(self):
        self._check('ping')
        return self.ping_result

    async def script_load(self, script: str) -> str:
        self._check('script_load')
        sha = hashlib.sha1(script.encode('utf-8')).hexdigest()
        self.scripts[sha] = script
        return sha

    async def evalsha(self, sha: str, numkeys: int, *keys_and_args: str) -> int:
        self._check('evalsha', *keys_and_args)
        if sha not in self.scripts:
            raise NoScriptError("No matching script. Please use EVAL.")
        keys = keys_and_args[:numkeys]
        # No await between copy-in and copy-out, so the script stays atomic.
        lua = self._lua
        lua.flushall()
        for k in keys:
            if k in self.data:
                lua.set(k, self.data[k])
        result = lua.eval(self.scripts[sha], numkeys, *keys_and_args)
        for k in keys:
            stored = lua.get(k)
            if stored is None:
                self.data.pop(k, None)
            else:
                self.data[k] = stored
        return result

    async def get(self, key: str) -> Optional[str]:
        self._check('get', key)
        if key in self.fail_keys:
            raise RedisConnectionError(f"GET {key} failed")
        return self.data.get(key)

    async def set(self, key: str, value: str) -> bool:
        self._check('set', key)
        self.data[key] = value
        return True

    async def delete(self, *keys: str) -> int:
        self._check('delete', *keys)
        removed = 0
        for k in keys:
            if self.data.pop(k, None) is not None:
                removed += 1
        return removed

    async def scan_iter(self, match: Optional[str] = None, count: Optional[int] = None):
        self._check('scan', match)
        regex = re.compile(_glob_to_regex(match)) if match else None
        for k in list(self.data):
            if regex is None or regex.fullmatch(k):
                yield k

    async def aclose(self) -> None:
        self.closed = True


def make_store(client: Optional[FakeValkey] = None, **config: Any):
    """Return an unopened store wired to `client` (a new FakeValkey by default)."""
    client = client if client is not None else FakeValkey()
    store = ValkeyContextStore(config, client_factory=lambda cfg: client)
    return store, client
