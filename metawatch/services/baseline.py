"""
Baseline cache: last observed front-matter value per (document, field).
"""

from typing import Any, Dict, Hashable, Iterable, Tuple

# Sentinel for "no entry", distinct from any front-matter value (including None)
ABSENT = object()


class BaselineCache:
    """
    Maps (document path, watched field) to the last value seen for that pair.

    Owned by one ChangeDispatcher; lives as long as the running service. Entries
    are never deleted: documents that disappear simply stop producing events.
    Keys are two-part tuples, so no separator can collide with a path or field.
    """

    def __init__(self):
        self._values: Dict[Tuple[str, Hashable], Any] = {}

    def get(self, path: str, field: str, default: Any = ABSENT) -> Any:
        return self._values.get((path, field), default)

    def set(self, path: str, field: str, value: Any) -> None:
        self._values[(path, field)] = value

    def snapshot(self, path: str, fields: Iterable[str]) -> Dict[str, Any]:
        """Read the baselines for several fields at once; missing ones map to ABSENT."""
        return {f: self.get(path, f) for f in fields}

    def __len__(self) -> int:
        return len(self._values)
