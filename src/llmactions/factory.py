"""Shared construction helpers for models, caches and providers."""

from __future__ import annotations

import json
from pathlib import Path

from llmactions.cache.base import CacheEngine
from llmactions.cache.file import FileCache
from llmactions.cache.memory import MemoryCache
from llmactions.cache.prompt import PromptCache
from llmactions.cache.sqlite import SqliteCache
from llmactions.config import Settings
from llmactions.instructions.base import Action
from llmactions.instructions.builtins.filesystem import (
    CopyFileAction,
    CreateDirectoryAction,
    ListFilesAction,
    ReadFileAction,
)
from llmactions.listeners import AgentListeners
from llmactions.models.base import BaseCompletionModel
from llmactions.models.mock import ScriptedCompletionModel
from llmactions.models.openai_compat import OpenAICompatCompletionModel
from llmactions.provider import CompletionProvider
from llmactions.util.logging import set_level


def build_model(settings: Settings, use_mock: bool = False) -> BaseCompletionModel:
    if use_mock or not settings.openai_api_key:
        return ScriptedCompletionModel()
    extra_headers = None
    if settings.openai_extra_headers:
        extra_headers = json.loads(settings.openai_extra_headers)
    return OpenAICompatCompletionModel(
        base_url=settings.openai_base_url,
        api_key=settings.openai_api_key,
        model=settings.openai_model,
        timeout_seconds=settings.openai_timeout_seconds,
        extra_headers=extra_headers,
    )


def build_cache(settings: Settings) -> CacheEngine | None:
    if settings.cache_backend == "none":
        return None
    if settings.cache_backend == "memory":
        return MemoryCache()
    if settings.cache_backend == "sqlite":
        return SqliteCache(Path(settings.cache_dir) / "cache.sqlite3")
    return FileCache(settings.cache_dir)


def build_provider(
    settings: Settings,
    model: BaseCompletionModel | None = None,
    listeners: AgentListeners | None = None,
) -> CompletionProvider:
    set_level(settings.log_level)
    return CompletionProvider(
        model=model or build_model(settings),
        cache=PromptCache(build_cache(settings)),
        listeners=listeners,
        temperature=settings.temperature,
    )


def build_workspace_actions(settings: Settings, workspace_dir: str) -> list[Action]:
    options = {"feedback_size_limit": settings.feedback_size_limit}
    return [
        ListFilesAction(workspace_dir, **options),
        ReadFileAction(workspace_dir, **options),
        CopyFileAction(workspace_dir, **options),
        CreateDirectoryAction(workspace_dir, **options),
    ]
