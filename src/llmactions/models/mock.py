"""Scripted completion model for offline runs and tests."""

from __future__ import annotations

from typing import Callable, Iterable

from llmactions.models.base import BaseCompletionModel


class ScriptedCompletionModel(BaseCompletionModel):
    """Replays scripted answers in order, then falls back to ``fallback``.

    Every prompt received is kept in ``prompts`` for inspection.
    """

    default_model = "scripted"

    def __init__(
        self,
        scripted: Iterable[str] | None = None,
        fallback: Callable[[str], str] | None = None,
    ) -> None:
        self._scripted = list(scripted or [])
        self._fallback = fallback
        self.prompts: list[str] = []
        self.calls: list[dict[str, object]] = []

    def complete(
        self, prompt: str, *, model: str | None = None, temperature: float | None = None
    ) -> str:
        self.prompts.append(prompt)
        self.calls.append({"prompt": prompt, "model": model, "temperature": temperature})
        if self._scripted:
            return self._scripted.pop(0)
        if self._fallback is not None:
            return self._fallback(prompt)
        return '<Action name="done" />'
