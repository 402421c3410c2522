"""Shared agent plumbing: prompt rendering, model calls, parsing and execution."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable

from llmactions.errors import ActionNotFoundError, AgentParseError, ParseError
from llmactions.instructions.base import ActionFeedback, Instruction
from llmactions.instructions.registry import InstructionRegistry
from llmactions.protocol import ParsedInvocation, parse_protocol
from llmactions.provider import CacheKeys, CompletionProvider
from llmactions.util.logging import get_logger

logger = get_logger(__name__)

PROMPT_ENHANCER = (
    "The task I'm asking you is vital to my career, and I greatly value your thorough analysis."
)


class BaseAgent(ABC):
    """Base class of the one-shot and looping agents.

    ``name`` identifies the agent in cache keys and telemetry and must be set
    either as a class attribute or through the constructor. Every completion
    call made by the agent gets its own index, starting at 0, so the keys of a
    run are reproducible and a retried prompt never reads back the answer it
    is retrying.
    """

    name: str = ""

    def __init__(
        self,
        provider: CompletionProvider,
        instructions: Iterable[Instruction] = (),
        *,
        name: str | None = None,
        tries: int = 1,
        model: str | None = None,
        temperature: float | None = None,
    ) -> None:
        if name is not None:
            self.name = name
        if not self.name:
            raise ValueError(f"{type(self).__name__} must declare a name")
        if tries < 0:
            raise ValueError("tries must be >= 0")
        self.provider = provider
        self.registry = InstructionRegistry(self._build_instructions(list(instructions)))
        self.tries = tries
        self.model = model
        self.temperature = temperature
        self.actions_count = 0
        self.actions_error_count = 0
        self._call_index = 0

    def _build_instructions(self, instructions: list[Instruction]) -> list[Instruction]:
        return instructions

    @abstractmethod
    def format_prompt(self, instructions_description: str, feedback_steps: list[str]) -> str:
        """Render the full prompt for the next call."""
        raise NotImplementedError

    @property
    def prompt_enhancer(self) -> str:
        """Sentence some templates append to improve answer quality."""
        return PROMPT_ENHANCER

    def describe_instructions(self) -> str:
        return self.registry.describe()

    @staticmethod
    def describe_feedback_steps(steps: list[list[str]]) -> list[str]:
        described = []
        for number, feedback in enumerate(steps, start=1):
            lines = "\n  ".join(feedback)
            described.append(f'<Step number="{number}">\n  {lines}\n</Step>')
        return described

    def call_model(
        self, prompt: str, *, model: str | None = None, temperature: float | None = None
    ) -> tuple[str, CacheKeys]:
        step_index = self._call_index
        self._call_index += 1
        keys = self.provider.cache_keys(self.name, step_index, prompt)
        answer = self.provider.call(
            self.name,
            step_index,
            prompt,
            model=model or self.model,
            temperature=self.temperature if temperature is None else temperature,
        )
        return answer, keys

    def parse(self, answer: str) -> list[ParsedInvocation]:
        return parse_protocol(answer, self.registry.names)

    def parse_error(self, error: ParseError, keys: CacheKeys) -> AgentParseError:
        logger.error(
            "%s could not parse answer (prompt=%s, answer=%s): %s",
            self.name,
            keys.prompt_key,
            keys.answer_key,
            error,
        )
        return AgentParseError(str(error), prompt_key=keys.prompt_key, answer_key=keys.answer_key)

    def execute(self, invocation: ParsedInvocation) -> ActionFeedback:
        try:
            action = self.registry.action(invocation.name)
        except ActionNotFoundError as exc:
            feedback = ActionFeedback.error(str(exc))
        else:
            feedback = action.execute(invocation.parameters)
        if feedback.is_error:
            self.actions_error_count += 1
        else:
            self.actions_count += 1
        return feedback

    def describe_feedback(self, invocation: ParsedInvocation, feedback: ActionFeedback) -> str:
        try:
            action = self.registry.action(invocation.name)
        except ActionNotFoundError as exc:
            return str(exc)
        return action.describe_feedback(feedback, invocation.parameters)
