"""Instruction registry."""

from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Iterator, Mapping

from llmactions.errors import ActionNotFoundError
from llmactions.instructions.base import Action, Instruction


class InstructionRegistry(Mapping[str, Instruction]):
    """Read-only set of instructions available to one agent.

    Built once when the agent is constructed; the parser validates names
    against it and the executor resolves actions from it.
    """

    def __init__(self, instructions: Iterable[Instruction]) -> None:
        table: dict[str, Instruction] = {}
        for instruction in instructions:
            if instruction.name in table:
                raise ValueError(f'Duplicate instruction name "{instruction.name}"')
            table[instruction.name] = instruction
        self._instructions = MappingProxyType(table)
        self._actions = MappingProxyType(
            {
                name: instruction
                for name, instruction in table.items()
                if isinstance(instruction, Action)
            }
        )

    def __getitem__(self, name: str) -> Instruction:
        return self._instructions[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._instructions)

    def __len__(self) -> int:
        return len(self._instructions)

    @property
    def names(self) -> frozenset[str]:
        return frozenset(self._instructions)

    def actions(self) -> Mapping[str, Action]:
        return self._actions

    def action(self, name: str) -> Action:
        try:
            return self._actions[name]
        except KeyError:
            raise ActionNotFoundError(name) from None

    def is_executable(self, name: str) -> bool:
        return name in self._actions

    def describe(self) -> str:
        return "\n".join(instruction.describe() for instruction in self._instructions.values())
