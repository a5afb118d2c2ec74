"""Value codec for context documents.

Values are stored as compact JSON text. When compression is enabled,
payloads longer than `COMPRESSION_THRESHOLD` characters are gzipped and
framed as ``gzip:<base64>``. The marker can never begin valid JSON text,
so its presence alone tells the reader to decompress.
"""
from __future__ import annotations
import base64
import binascii
import gzip
import json
import math
import zlib
from typing import Any, List, Mapping

from valkey_context.errors import CodecError

COMPRESSION_THRESHOLD = 1024
COMPRESSION_PREFIX = "gzip:"


def _circular_marker(index: int, keys: List[str]) -> str:
    if index == 0:
        return "[Circular ~]"
    return "[Circular ~." + ".".join(keys[:index]) + "]"


def _decycle(value: Any, ancestors: List[int], keys: List[str]) -> Any:
    """Return a JSON-compatible copy of `value` with back-references replaced.

    `ancestors` holds the ids of the containers on the current path from the
    root and `keys` the member names leading to each of them, so a reference
    back to an ancestor is rendered by that ancestor's path.
    """
    if value is None or isinstance(value, (str, bool, int)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None

    if id(value) in ancestors:
        return _circular_marker(ancestors.index(id(value)), keys)

    if isinstance(value, Mapping):
        items = [(str(k), v) for k, v in value.items()]
    elif isinstance(value, (list, tuple, set, frozenset)):
        items = [(str(i), v) for i, v in enumerate(value)]
    elif hasattr(value, "__dict__"):
        items = [(k, v) for k, v in vars(value).items() if not k.startswith("_")]
    else:
        return str(value)

    ancestors.append(id(value))
    try:
        out = []
        for k, v in items:
            keys.append(k)
            try:
                out.append((k, _decycle(v, ancestors, keys)))
            finally:
                keys.pop()
    finally:
        ancestors.pop()

    if isinstance(value, (list, tuple, set, frozenset)):
        return [v for _, v in out]
    return dict(out)


def serialize(value: Any) -> str:
    """Serialize `value` to compact JSON, tolerating self-references."""
    return json.dumps(
        _decycle(value, [], []),
        ensure_ascii=False,
        separators=(",", ":"),
    )


def deserialize(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError as e:
        raise CodecError(f"stored value is not valid JSON: {e}") from e


def maybe_compress(serialized: str, enabled: bool) -> str:
    if not enabled or len(serialized) <= COMPRESSION_THRESHOLD:
        return serialized
    compressed = gzip.compress(serialized.encode("utf-8"))
    return COMPRESSION_PREFIX + base64.b64encode(compressed).decode("ascii")


def is_compressed(stored: str) -> bool:
    return stored.startswith(COMPRESSION_PREFIX)


def maybe_decompress(stored: str) -> str:
    if not is_compressed(stored):
        return stored
    payload = stored[len(COMPRESSION_PREFIX):]
    try:
        raw = base64.b64decode(payload, validate=True)
        return gzip.decompress(raw).decode("utf-8")
    except (binascii.Error, OSError, EOFError, zlib.error, UnicodeDecodeError) as e:
        raise CodecError(f"corrupt compressed value: {e}") from e
