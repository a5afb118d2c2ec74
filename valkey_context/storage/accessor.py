from dataclasses import dataclass
from typing import Any, List, Mapping, Sequence

PATH_SEPARATOR = "."


@dataclass(frozen=True)
class PropertyPath:
    """A context key split into its dotted segments.

    The first segment names the remote document; the remaining segments
    address a value inside it.
    """

    parts: List[str]
    is_nested: bool

    @property
    def top_level(self) -> str:
        return self.parts[0]

    @property
    def sub_path(self) -> str:
        """Dotted path below the top-level segment ('' for flat keys)."""
        return PATH_SEPARATOR.join(self.parts[1:])


def parse_path(key: str) -> PropertyPath:
    # Purely lexical: 'a..b' keeps its empty middle segment.
    parts = key.split(PATH_SEPARATOR)
    return PropertyPath(parts=parts, is_nested=len(parts) > 1)


class PathAccessor:
    """Read-only navigation of a decoded JSON document.

    Mapping segments are looked up by key. List segments must be decimal
    indices. Any miss along the way yields None instead of raising, so a
    missing nested property reads the same as a missing top-level key.
    """

    def get(self, value: Any, path: Sequence[str]) -> Any:
        cur = value
        for p in path:
            if isinstance(cur, Mapping):
                if p not in cur:
                    return None
                cur = cur[p]
            elif isinstance(cur, list) and p.isascii() and p.isdigit():
                idx = int(p)
                if idx >= len(cur):
                    return None
                cur = cur[idx]
            else:
                return None
        return cur
