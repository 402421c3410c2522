"""Cache backends and the prompt/answer cache."""

from llmactions.cache.base import CacheEngine, hash_content
from llmactions.cache.file import FileCache
from llmactions.cache.memory import MemoryCache
from llmactions.cache.prompt import PromptCache
from llmactions.cache.sqlite import SqliteCache

__all__ = [
    "CacheEngine",
    "FileCache",
    "MemoryCache",
    "PromptCache",
    "SqliteCache",
    "hash_content",
]
