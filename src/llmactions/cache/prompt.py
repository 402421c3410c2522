"""Content-addressed prompt/answer cache."""

from __future__ import annotations

import posixpath
from typing import Literal

from llmactions.cache.base import CacheEngine, hash_content
from llmactions.util.logging import get_logger

CacheKind = Literal["prompt", "answer"]

logger = get_logger(__name__)


class PromptCache:
    """Read-through/write-through memo of completion calls.

    Keys are derived from the agent name, the call index and a digest of the
    prompt, so identical prompt text sent by another agent or at another
    index is a different entry.
    """

    def __init__(self, engine: CacheEngine | None = None, namespace: str = "") -> None:
        self.engine = engine
        self.namespace = namespace.strip("/")

    @property
    def enabled(self) -> bool:
        return self.engine is not None

    def cache_key(
        self, agent_name: str, step_index: int, prompt: str, kind: CacheKind
    ) -> str:
        if kind not in ("prompt", "answer"):
            raise ValueError(f"Unknown cache kind: {kind}")
        filename = f"{step_index}-{hash_content(prompt)}-{kind}.txt"
        parts = [part for part in (self.namespace, agent_name) if part]
        return posixpath.join(*parts, filename)

    def get(self, agent_name: str, step_index: int, prompt: str) -> str | None:
        if self.engine is None:
            return None
        answer_key = self.cache_key(agent_name, step_index, prompt, "answer")
        if not self.engine.has(answer_key):
            return None
        logger.info("Using cached answer %s", answer_key)
        return self.engine.get(answer_key)

    def save_prompt(self, agent_name: str, step_index: int, prompt: str) -> None:
        if self.engine is None:
            return
        self.engine.set(self.cache_key(agent_name, step_index, prompt, "prompt"), prompt)

    def save(self, agent_name: str, step_index: int, prompt: str, answer: str) -> None:
        if self.engine is None:
            return
        self.save_prompt(agent_name, step_index, prompt)
        self.engine.set(self.cache_key(agent_name, step_index, prompt, "answer"), answer)
