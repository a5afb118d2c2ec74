"""Selection of node-scoped keys that belong to nodes no longer deployed.

A node-scoped key looks like ``{prefix}context:node:{nodeId}:{key}``.
Both the prefix and the node id may contain ``:``, so the node id is
taken between the known literal node prefix and the last separator
rather than by splitting the whole key.
"""
from __future__ import annotations
from typing import Iterable, List, Optional

from valkey_context.storage.keys import KeyMapper, SEPARATOR


def node_id_from_key(remote_key: str, mapper: KeyMapper) -> Optional[str]:
    """Return the node id embedded in `remote_key`, or None if it is not node-scoped."""
    node_prefix = mapper.node_prefix
    if not remote_key.startswith(node_prefix):
        return None
    node_id, sep, _key = remote_key[len(node_prefix):].rpartition(SEPARATOR)
    if not sep or not node_id:
        return None
    return node_id


def select_stale_keys(remote_keys: Iterable[str], mapper: KeyMapper, active_node_ids: Iterable[str]) -> List[str]:
    active = set(active_node_ids)
    stale: List[str] = []
    for remote_key in remote_keys:
        node_id = node_id_from_key(remote_key, mapper)
        if node_id is None:
            continue
        if node_id not in active:
            stale.append(remote_key)
    return stale
