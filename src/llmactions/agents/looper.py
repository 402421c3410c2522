"""Looping agent: act, observe feedback, repeat until done."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from llmactions.agents.base import BaseAgent
from llmactions.errors import AgentStepLimitError, ParseError
from llmactions.instructions.base import Instruction
from llmactions.instructions.builtins.done import DONE_ACTION_NAME, DoneAction
from llmactions.provider import CompletionProvider
from llmactions.util.logging import get_logger

logger = get_logger(__name__)


@dataclass
class RunState:
    step_index: int = 0
    tries_remaining: int = 0
    done: bool = False
    error_in_step: bool = False


class LoopingAgent(BaseAgent):
    """Agent that keeps calling the model with the history of executed steps.

    Only executable actions are accepted. A ``done`` action is registered
    automatically; the loop ends on the first step that contains ``done`` and
    whose other actions all succeeded.
    """

    def __init__(
        self,
        provider: CompletionProvider,
        instructions: Iterable[Instruction] = (),
        *,
        max_steps: int | None = None,
        **kwargs,
    ) -> None:
        super().__init__(provider, instructions, **kwargs)
        if max_steps is not None and max_steps < 1:
            raise ValueError("max_steps must be >= 1")
        self.max_steps = max_steps
        self.steps: list[list[str]] = []
        self.state: RunState | None = None

    def _build_instructions(self, instructions: list[Instruction]) -> list[Instruction]:
        for instruction in instructions:
            if not instruction.executable:
                raise TypeError(
                    f"{type(self).__name__} only accepts actions "
                    f'("{instruction.name}" is not an action)'
                )
        if not any(instruction.name == DONE_ACTION_NAME for instruction in instructions):
            instructions = [*instructions, DoneAction()]
        return instructions

    def run(self) -> None:
        state = RunState(tries_remaining=self.tries)
        self.state = state
        self.steps = []

        while not state.done:
            if self.max_steps is not None and state.step_index >= self.max_steps:
                raise AgentStepLimitError(
                    f"{self.name} did not finish within {self.max_steps} steps"
                )
            logger.info("%s step %d", self.name, state.step_index)

            prompt = self.format_prompt(
                self.describe_instructions(), self.describe_feedback_steps(self.steps)
            )
            answer, keys = self.call_model(prompt)

            try:
                invocations = self.parse(answer)
            except ParseError as exc:
                if state.tries_remaining == 0:
                    raise self.parse_error(exc, keys) from exc
                state.tries_remaining -= 1
                logger.warning(
                    "%s retrying step %d (%d tries left): %s",
                    self.name,
                    state.step_index,
                    state.tries_remaining,
                    exc,
                )
                continue

            step: list[str] = []
            state.error_in_step = False
            for invocation in invocations:
                if invocation.name == DONE_ACTION_NAME:
                    continue
                feedback = self.execute(invocation)
                step.append(self.describe_feedback(invocation, feedback))
                if feedback.is_error:
                    state.error_in_step = True
            self.steps.append(step)

            finished = any(invocation.name == DONE_ACTION_NAME for invocation in invocations)
            state.done = finished and not state.error_in_step
            logger.info(
                "%s step %d done (%d actions, %d errors so far)",
                self.name,
                state.step_index,
                self.actions_count,
                self.actions_error_count,
            )
            state.step_index += 1

        logger.info("%s total cost %.4f$", self.name, self.provider.cost)
