"""Key/value cache contract shared by every storage backend."""

from __future__ import annotations

from abc import ABC, abstractmethod
from hashlib import md5

HASH_LENGTH = 10


def hash_content(content: str) -> str:
    """Return the truncated content digest used in cache keys."""
    return md5(content.encode("utf-8")).hexdigest()[:HASH_LENGTH]


class CacheEngine(ABC):
    """String store addressed by slash-separated keys.

    ``get`` raises ``CacheKeyError`` for an absent key and returns ``""`` for a
    key stored with empty content.
    """

    @abstractmethod
    def get(self, key: str) -> str:
        raise NotImplementedError

    @abstractmethod
    def has(self, key: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, content: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete(self, key: str) -> None:
        raise NotImplementedError
