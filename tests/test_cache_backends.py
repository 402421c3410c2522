from __future__ import annotations

import pytest

from llmactions.cache import FileCache, MemoryCache, SqliteCache
from llmactions.errors import CacheKeyError


@pytest.fixture(params=["memory", "file", "sqlite"])
def engine(request, tmp_path):
    if request.param == "memory":
        return MemoryCache()
    if request.param == "file":
        return FileCache(tmp_path / "cache")
    return SqliteCache(tmp_path / "cache.sqlite3")


def test_set_get_has_delete(engine):
    key = "agent/0-abcdef0123-prompt.txt"
    assert not engine.has(key)
    engine.set(key, "hello")
    assert engine.has(key)
    assert engine.get(key) == "hello"
    engine.delete(key)
    assert not engine.has(key)


def test_absent_key_differs_from_empty_content(engine):
    engine.set("empty.txt", "")
    assert engine.get("empty.txt") == ""
    with pytest.raises(CacheKeyError):
        engine.get("missing.txt")


def test_delete_missing_key_raises(engine):
    with pytest.raises(CacheKeyError):
        engine.delete("missing.txt")


def test_overwrite(engine):
    engine.set("k", "one")
    engine.set("k", "two")
    assert engine.get("k") == "two"


def test_file_cache_creates_directories(tmp_path):
    cache = FileCache(tmp_path)
    cache.set("a/b/c/0-hash-answer.txt", "answer")
    assert (tmp_path / "a" / "b" / "c" / "0-hash-answer.txt").read_text(encoding="utf-8") == "answer"


def test_file_cache_rejects_escaping_keys(tmp_path):
    cache = FileCache(tmp_path / "cache")
    with pytest.raises(ValueError):
        cache.set("../outside.txt", "x")
