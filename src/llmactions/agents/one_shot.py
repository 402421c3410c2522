"""One-shot agent: a single structured answer."""

from __future__ import annotations

from llmactions.agents.base import BaseAgent
from llmactions.errors import ParseError
from llmactions.protocol import ParsedInvocation
from llmactions.util.logging import get_logger

logger = get_logger(__name__)


class OneShotAgent(BaseAgent):
    """Ask once, parse, and execute whatever actions the answer contains.

    Plain instructions in the answer are returned to the caller without being
    executed. ``tries`` extra attempts are allowed when the answer cannot be
    parsed.
    """

    def run(
        self, model: str | None = None, temperature: float | None = None
    ) -> list[ParsedInvocation]:
        tries_remaining = self.tries
        while True:
            prompt = self.format_prompt(self.describe_instructions(), [])
            answer, keys = self.call_model(prompt, model=model, temperature=temperature)
            try:
                invocations = self.parse(answer)
                break
            except ParseError as exc:
                if tries_remaining == 0:
                    raise self.parse_error(exc, keys) from exc
                tries_remaining -= 1
                logger.warning("%s retrying (%d tries left): %s", self.name, tries_remaining, exc)

        for invocation in invocations:
            if self.registry.is_executable(invocation.name):
                self.execute(invocation)
        return invocations
