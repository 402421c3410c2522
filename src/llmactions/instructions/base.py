"""Instruction and action definitions and their protocol rendering."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import ClassVar, Iterable, Literal, Mapping

from pydantic import BaseModel, ValidationError

from llmactions.protocol import ParsedInvocation

InstructionFormat = Literal["singleline", "multiline"]
FeedbackType = Literal["success", "error"]

DEFAULT_FEEDBACK_SIZE_LIMIT = 2000
DEFAULT_FEEDBACK_SIZE_LIMIT_MESSAGE = (
    "action feedback was truncated because it exceeded the size limit"
)


@dataclass(frozen=True)
class ActionParameter:
    name: str
    usage: str


class ActionFeedback(BaseModel):
    message: str
    type: FeedbackType
    metadata: dict[str, str] | None = None

    @classmethod
    def success(cls, message: str, **metadata: str) -> "ActionFeedback":
        return cls(message=message, type="success", metadata=metadata or None)

    @classmethod
    def error(cls, message: str, **metadata: str) -> "ActionFeedback":
        return cls(message=message, type="error", metadata=metadata or None)

    @property
    def is_error(self) -> bool:
        return self.type == "error"


class Instruction(ABC):
    """A named, parameterized answer the model may produce.

    Plain instructions are structured answers: they are parsed and handed
    back to the caller but never executed. ``Action`` subclasses are the
    executable variant.
    """

    name: str = ""
    usage: str = ""
    parameters: tuple[ActionParameter, ...] = ()
    format: InstructionFormat = "singleline"
    executable: ClassVar[bool] = False

    def __init__(self, *, format: InstructionFormat | None = None) -> None:
        if not self.name:
            raise ValueError(f"{type(self).__name__} must declare a name")
        if format is not None:
            self.format = format
        if self.format not in ("singleline", "multiline"):
            raise ValueError(f"Unknown instruction format: {self.format}")

    def describe(self) -> str:
        """Render the usage block shown to the model in the prompt."""
        if self.format == "singleline":
            placeholders = {param.name: f"<{param.usage}>" for param in self.parameters}
            return f"Use this action to: {self.usage}\n{self._singleline(placeholders)}"
        result = f'Use this action to: {self.usage}\n<Action name="{self.name}">'
        for param in self.parameters:
            result += (
                f'\n  <Parameter name="{param.name}">\n    // {param.usage}\n  </Parameter>'
            )
        return result + "\n</Action>"

    def render(self, parameters: Mapping[str, str]) -> str:
        """Render a concrete invocation the way the model is asked to write it.

        A singleline tag cannot span lines, so values containing a newline
        switch the invocation to the block form. Block values are read back
        stripped: leading and trailing whitespace does not survive the block
        form.
        """
        spans_lines = any("\n" in value for value in parameters.values())
        if self.format == "singleline" and not spans_lines:
            return self._singleline(parameters)
        result = f'<Action name="{self.name}">'
        for name, value in self._ordered(parameters):
            result += f'\n  <Parameter name="{name}">\n    {value}\n  </Parameter>'
        return result + "\n</Action>"

    def find(self, invocations: Iterable[ParsedInvocation]) -> ParsedInvocation | None:
        """Return the first invocation of this instruction, if any."""
        return next((inv for inv in invocations if inv.name == self.name), None)

    def select(self, invocations: Iterable[ParsedInvocation]) -> list[ParsedInvocation]:
        return [inv for inv in invocations if inv.name == self.name]

    def _ordered(self, parameters: Mapping[str, str]) -> list[tuple[str, str]]:
        declared = [param.name for param in self.parameters]
        extra = [name for name in parameters if name not in declared]
        return [(name, parameters.get(name, "")) for name in declared + extra]

    def _singleline(self, parameters: Mapping[str, str], suffix: str = "") -> str:
        result = f'<Action name="{self.name}"'
        for name, value in self._ordered(parameters):
            result += f' parameter:{name}="{value}"'
        return f"{result}{suffix} />"


class Action(Instruction):
    """Executable instruction producing an ``ActionFeedback``.

    Subclasses implement ``execute_action``, which only runs once the raw
    parameters passed ``input_schema`` validation. Failures the action can
    anticipate should come back as ``error`` feedback so the loop can correct
    itself; anything raised out of ``execute_action`` propagates to the
    caller.
    """

    executable: ClassVar[bool] = True
    input_schema: ClassVar[type[BaseModel] | None] = None

    def __init__(
        self,
        *,
        format: InstructionFormat | None = None,
        feedback_size_limit: int = DEFAULT_FEEDBACK_SIZE_LIMIT,
        feedback_size_limit_message: str = DEFAULT_FEEDBACK_SIZE_LIMIT_MESSAGE,
    ) -> None:
        super().__init__(format=format)
        if feedback_size_limit < 0:
            raise ValueError("feedback_size_limit must be >= 0")
        self.feedback_size_limit = feedback_size_limit
        self.feedback_size_limit_message = feedback_size_limit_message

    @abstractmethod
    def execute_action(self, parameters: dict[str, str]) -> ActionFeedback:
        """Run the action with raw parameter values."""
        raise NotImplementedError

    def execute(self, parameters: Mapping[str, str]) -> ActionFeedback:
        values = dict(parameters)
        if self.input_schema is not None:
            try:
                self.input_schema.model_validate(values)
            except ValidationError as exc:
                return self.truncate(
                    ActionFeedback.error(f"Invalid parameters for {self.name}: {exc}")
                )
        feedback = self.execute_action(values)
        return self.truncate(feedback)

    def truncate(self, feedback: ActionFeedback) -> ActionFeedback:
        if len(feedback.message) <= self.feedback_size_limit:
            return feedback
        message = (
            feedback.message[: self.feedback_size_limit]
            + f"[{self.feedback_size_limit_message}]"
        )
        return feedback.model_copy(update={"message": message})

    def describe_feedback(
        self, feedback: ActionFeedback, parameters: Mapping[str, str]
    ) -> str:
        """Render an executed invocation with its feedback, in this action's format."""
        if self.format == "singleline":
            return self._singleline(
                parameters,
                suffix=f' feedback:type="{feedback.type}" feedback:message="{feedback.message}"',
            )
        result = f'  <Action name="{self.name}">'
        for name, value in self._ordered(parameters):
            result += f'\n    <Parameter name="{name}">\n      {value}\n    </Parameter>'
        result += f'\n    <Feedback type="{feedback.type}">\n      {feedback.message}\n    </Feedback>'
        return result + "\n  </Action>"
