from __future__ import annotations

from bisect import bisect_left
from collections.abc import Iterator


class PrefixIndex:
    """Ordered set of string keys with prefix lookup.

    Keys are kept sorted so every key sharing a prefix sits in one contiguous
    run starting at ``bisect_left(keys, prefix)``.
    """

    def __init__(self) -> None:
        self._keys: list[str] = []

    def add(self, key: str) -> bool:
        pos = bisect_left(self._keys, key)
        if pos < len(self._keys) and self._keys[pos] == key:
            return False
        self._keys.insert(pos, key)
        return True

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        pos = bisect_left(self._keys, key)
        return pos < len(self._keys) and self._keys[pos] == key

    def __len__(self) -> int:
        return len(self._keys)

    def __iter__(self) -> Iterator[str]:
        return iter(self._keys)

    def keys_with_prefix(self, prefix: str) -> list[str]:
        out: list[str] = []
        pos = bisect_left(self._keys, prefix)
        while pos < len(self._keys) and self._keys[pos].startswith(prefix):
            out.append(self._keys[pos])
            pos += 1
        return out
