"""Mapping of (scope, top-level key) pairs onto flat Valkey key names.

Layout: ``{prefix}context:{scope}:{key}``. Scopes are opaque and may
contain the separator themselves (``node:<id>``, ``flow:<id>``), so keys
are never re-split from the left.
"""
from __future__ import annotations
import re

SEPARATOR = ":"
NAMESPACE = "context"
NODE_SCOPE = "node"
DEFAULT_PREFIX = "nodered:"

_GLOB_SPECIAL = re.compile(r"([\\*?\[\]])")


def escape_pattern(text: str) -> str:
    """Escape glob metacharacters so `text` matches literally in SCAN MATCH."""
    return _GLOB_SPECIAL.sub(r"\\\1", text)


class KeyMapper:
    def __init__(self, prefix: str | None = None) -> None:
        prefix = prefix or DEFAULT_PREFIX
        if not prefix.endswith(SEPARATOR):
            prefix += SEPARATOR
        self.prefix = prefix

    @property
    def namespace_prefix(self) -> str:
        return f"{self.prefix}{NAMESPACE}{SEPARATOR}"

    @property
    def node_prefix(self) -> str:
        """Literal start shared by every node-scoped key."""
        return f"{self.namespace_prefix}{NODE_SCOPE}{SEPARATOR}"

    def build(self, scope: str, key: str) -> str:
        return f"{self.namespace_prefix}{scope}{SEPARATOR}{key}"

    def scope_prefix(self, scope: str) -> str:
        return self.build(scope, "")

    def scope_pattern(self, scope: str) -> str:
        return escape_pattern(self.scope_prefix(scope)) + "*"

    def node_pattern(self) -> str:
        return escape_pattern(self.node_prefix) + "*"
