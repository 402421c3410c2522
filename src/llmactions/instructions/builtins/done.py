"""Terminal action ending a looping agent run."""

from __future__ import annotations

from llmactions.instructions.base import Action, ActionFeedback

DONE_ACTION_NAME = "done"


class DoneAction(Action):
    name = DONE_ACTION_NAME
    usage = "indicate that your task is done"

    def execute_action(self, parameters: dict[str, str]) -> ActionFeedback:
        return ActionFeedback.success("task is done")
