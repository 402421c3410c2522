"""Tag-based action protocol parser."""

from __future__ import annotations

from dataclasses import dataclass, field
import re
from typing import Collection

from llmactions.errors import HallucinatedInstructionError, ParseError

_LINE_SPLIT = re.compile(r"\r?\n")
_ACTION_OPEN = re.compile(r"^<Action(?=[\s/>]|$)")
_ACTION_CLOSE = "</Action>"
_PARAMETER_OPEN = re.compile(r"^<Parameter(?=[\s/>]|$)")
_PARAMETER_CLOSE = "</Parameter>"
_NAME_ATTRIBUTE = re.compile(r'(?<![\w:])name="([^"]*)"')
_INLINE_PARAMETER = re.compile(r'parameter:([^\s="]+)="([^"]*)"')


@dataclass(frozen=True)
class ParsedInvocation:
    name: str
    parameters: dict[str, str] = field(default_factory=dict)


@dataclass
class _OpenInvocation:
    name: str
    parameters: dict[str, str]


@dataclass
class _OpenParameter:
    name: str | None
    lines: list[str]

    def value(self) -> str:
        return "\n".join(self.lines).strip()


def _name_of(line: str) -> str:
    match = _NAME_ATTRIBUTE.search(line)
    return match.group(1) if match else ""


def _open_invocation(line: str) -> _OpenInvocation:
    parameters = {key: value for key, value in _INLINE_PARAMETER.findall(line)}
    return _OpenInvocation(name=_name_of(line), parameters=parameters)


def _parameter_head(line: str) -> tuple[str | None, str, bool]:
    """Split an opening ``<Parameter>`` line into name, inline text and closed flag."""
    name = _name_of(line) or None
    end_of_tag = line.find(">")
    rest = line[end_of_tag + 1 :] if end_of_tag != -1 and not line.endswith("/>") else ""
    closing = rest.find(_PARAMETER_CLOSE)
    if closing != -1:
        return name, rest[:closing], True
    return name, rest, line.endswith("/>")


def extract_invocations(answer: str) -> list[ParsedInvocation]:
    """Recover every complete invocation from an answer, in order of appearance.

    Lines outside an ``<Action>`` block are commentary and are skipped. A block
    left open at the end of the answer, or cut short by the next ``<Action``
    line, is dropped, as is any invocation without a name.
    """
    invocations: list[ParsedInvocation] = []
    current: _OpenInvocation | None = None
    parameter: _OpenParameter | None = None

    def close_parameter() -> None:
        nonlocal parameter
        if current is not None and parameter is not None and parameter.name:
            current.parameters[parameter.name] = parameter.value()
        parameter = None

    def close_invocation() -> None:
        nonlocal current
        if current is not None and current.name:
            invocations.append(
                ParsedInvocation(name=current.name, parameters=dict(current.parameters))
            )
        current = None

    for line in _LINE_SPLIT.split(answer):
        trimmed = line.strip()
        if parameter is not None and _ACTION_OPEN.match(trimmed):
            # a new action abandons the unterminated one
            parameter = None
            current = None
        if parameter is not None:
            if trimmed.startswith(_ACTION_CLOSE):
                close_parameter()
                close_invocation()
            elif trimmed.endswith(_PARAMETER_CLOSE):
                head = trimmed[: -len(_PARAMETER_CLOSE)]
                if head:
                    parameter.lines.append(head)
                close_parameter()
            else:
                parameter.lines.append(line)
            continue

        if _ACTION_OPEN.match(trimmed):
            current = _open_invocation(trimmed)
            if trimmed.endswith("/>"):
                close_invocation()
        elif current is None:
            continue
        elif trimmed.startswith(_ACTION_CLOSE):
            close_invocation()
        elif _PARAMETER_OPEN.match(trimmed):
            name, text, closed = _parameter_head(trimmed)
            parameter = _OpenParameter(name=name, lines=[text] if text else [])
            if closed:
                close_parameter()

    return invocations


def parse_protocol(
    answer: str, known_names: Collection[str] | None = None
) -> list[ParsedInvocation]:
    """Parse an answer into invocations, validating names when ``known_names`` is given."""
    invocations = extract_invocations(answer)
    if not invocations:
        raise ParseError("Incorrect answer format. Cannot parse actions.")
    if known_names is not None:
        for invocation in invocations:
            if invocation.name not in known_names:
                raise HallucinatedInstructionError(invocation.name)
    return invocations
