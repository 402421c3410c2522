"""In-process cache backend."""

from __future__ import annotations

from llmactions.cache.base import CacheEngine
from llmactions.errors import CacheKeyError


class MemoryCache(CacheEngine):
    def __init__(self) -> None:
        self._entries: dict[str, str] = {}

    def get(self, key: str) -> str:
        try:
            return self._entries[key]
        except KeyError:
            raise CacheKeyError(key) from None

    def has(self, key: str) -> bool:
        return key in self._entries

    def set(self, key: str, content: str) -> None:
        self._entries[key] = content

    def delete(self, key: str) -> None:
        if self._entries.pop(key, None) is None:
            raise CacheKeyError(key)

    def keys(self) -> list[str]:
        return sorted(self._entries)
