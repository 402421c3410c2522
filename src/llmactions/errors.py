"""Error taxonomy for parsing, execution, caching and completion."""

from __future__ import annotations


class ParseError(ValueError):
    """Raised when no invocation can be recovered from an answer."""


class HallucinatedInstructionError(ParseError):
    """Raised when an answer names an instruction the agent never registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f'Hallucinated instruction "{name}"')
        self.name = name


class ActionNotFoundError(LookupError):
    """Raised when an invocation targets a name with no executable action."""

    def __init__(self, name: str) -> None:
        super().__init__(f'Action "{name}" not found')
        self.name = name


class AgentParseError(RuntimeError):
    """Raised once the parse retry budget is exhausted.

    ``prompt_key`` and ``answer_key`` point at the cache entries of the last
    attempt so the exchange can be inspected offline.
    """

    def __init__(self, message: str, prompt_key: str, answer_key: str) -> None:
        super().__init__(message)
        self.prompt_key = prompt_key
        self.answer_key = answer_key


class AgentStepLimitError(RuntimeError):
    """Raised when a looping agent reaches its step bound without finishing."""


class CacheKeyError(KeyError):
    """Raised when a cache key is absent."""


class CompletionError(RuntimeError):
    """Raised when the completion backend fails after retries."""
