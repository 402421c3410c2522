"""Local filesystem cache backend."""

from __future__ import annotations

from pathlib import Path, PurePosixPath

from llmactions.cache.base import CacheEngine
from llmactions.errors import CacheKeyError


class FileCache(CacheEngine):
    """Stores each key as a UTF-8 file below ``cache_dir``."""

    def __init__(self, cache_dir: str | Path = ".cache") -> None:
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        relative = PurePosixPath(key)
        if relative.is_absolute() or ".." in relative.parts:
            raise ValueError(f"Invalid cache key: {key}")
        return self.cache_dir.joinpath(*relative.parts)

    def get(self, key: str) -> str:
        try:
            return self._path(key).read_text(encoding="utf-8")
        except FileNotFoundError:
            raise CacheKeyError(key) from None

    def has(self, key: str) -> bool:
        return self._path(key).is_file()

    def set(self, key: str, content: str) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            raise CacheKeyError(key) from None
