"""Completion model interface."""

from __future__ import annotations

from abc import ABC, abstractmethod


class BaseCompletionModel(ABC):
    """Text in, text out."""

    default_model: str = ""

    @abstractmethod
    def complete(
        self, prompt: str, *, model: str | None = None, temperature: float | None = None
    ) -> str:
        """Send a prompt and return the raw completion."""
        raise NotImplementedError
