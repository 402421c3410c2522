"""Completion provider: prompt cache, model call, telemetry and cost accounting."""

from __future__ import annotations

from dataclasses import dataclass
import threading
from uuid import uuid4

from llmactions.cache.prompt import PromptCache
from llmactions.listeners import AgentListeners, AnswerEvent, PromptEvent
from llmactions.models.base import BaseCompletionModel
from llmactions.util.logging import get_logger

logger = get_logger(__name__)

# USD per 1000 tokens.
MODELS_COST: dict[str, dict[str, float]] = {
    "gpt-4": {"input": 0.03, "output": 0.06},
    "gpt-3.5-turbo-16k": {"input": 0.003, "output": 0.004},
    "gpt-4-1106-preview": {"input": 0.01, "output": 0.03},
}

CHARS_PER_TOKEN = 3


@dataclass
class TokenUsage:
    input: float = 0.0
    output: float = 0.0


@dataclass(frozen=True)
class CacheKeys:
    prompt_key: str
    answer_key: str


class CompletionProvider:
    """Calls the completion model through the prompt cache.

    One provider may serve several agents, including from worker threads;
    accounting is guarded by a lock.
    """

    def __init__(
        self,
        model: BaseCompletionModel,
        cache: PromptCache | None = None,
        listeners: AgentListeners | None = None,
        temperature: float = 0.0,
    ) -> None:
        self.model = model
        self.cache = cache or PromptCache()
        self.listeners = listeners or AgentListeners()
        self.temperature = temperature
        self.tokens = TokenUsage()
        self.cost = 0.0
        self._lock = threading.Lock()

    def cache_keys(self, agent_name: str, step_index: int, prompt: str) -> CacheKeys:
        return CacheKeys(
            prompt_key=self.cache.cache_key(agent_name, step_index, prompt, "prompt"),
            answer_key=self.cache.cache_key(agent_name, step_index, prompt, "answer"),
        )

    def call(
        self,
        agent_name: str,
        step_index: int,
        prompt: str,
        *,
        model: str | None = None,
        temperature: float | None = None,
    ) -> str:
        cached = self.cache.get(agent_name, step_index, prompt)
        if cached is not None:
            return cached

        model_name = model or self.model.default_model
        keys = self.cache_keys(agent_name, step_index, prompt)
        call_id = str(uuid4())
        self.listeners.emit_prompt(
            PromptEvent(
                id=call_id,
                agent_name=agent_name,
                key=keys.prompt_key,
                model=model_name,
                prompt=prompt,
                cost=self._account(len(prompt), model_name, "input"),
            )
        )
        self.cache.save_prompt(agent_name, step_index, prompt)

        answer = self.model.complete(
            prompt,
            model=model,
            temperature=self.temperature if temperature is None else temperature,
        )

        answer_cost = self._account(len(answer), model_name, "output")
        logger.debug("%s call %d answered (%.4f$)", agent_name, step_index, answer_cost)
        self.listeners.emit_answer(
            AnswerEvent(
                id=call_id,
                agent_name=agent_name,
                key=keys.answer_key,
                model=model_name,
                answer=answer,
                cost=answer_cost,
            )
        )
        self.cache.save(agent_name, step_index, prompt, answer)
        return answer

    def _account(self, length: int, model: str, kind: str) -> float:
        tokens = length / CHARS_PER_TOKEN
        price = MODELS_COST.get(model, {}).get(kind, 0.0)
        cost = price * (tokens / 1000)
        with self._lock:
            setattr(self.tokens, kind, getattr(self.tokens, kind) + tokens)
            self.cost += cost
        return cost
