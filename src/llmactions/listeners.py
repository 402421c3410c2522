"""Prompt/answer telemetry callbacks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable


@dataclass(frozen=True)
class PromptEvent:
    id: str
    agent_name: str
    key: str
    model: str
    prompt: str
    cost: float


@dataclass(frozen=True)
class AnswerEvent:
    id: str
    agent_name: str
    key: str
    model: str
    answer: str
    cost: float


PromptListener = Callable[[PromptEvent], None]
AnswerListener = Callable[[AnswerEvent], None]


@dataclass(frozen=True)
class AgentListeners:
    """Callbacks fixed at provider construction.

    Fired around every live completion call; cached answers fire nothing.
    """

    on_prompt: tuple[PromptListener, ...] = ()
    on_answer: tuple[AnswerListener, ...] = ()

    def emit_prompt(self, event: PromptEvent) -> None:
        for listener in self.on_prompt:
            listener(event)

    def emit_answer(self, event: AnswerEvent) -> None:
        for listener in self.on_answer:
            listener(event)

    def merged(self, other: "AgentListeners") -> "AgentListeners":
        return AgentListeners(
            on_prompt=self.on_prompt + other.on_prompt,
            on_answer=self.on_answer + other.on_answer,
        )
