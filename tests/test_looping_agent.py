from __future__ import annotations

import pytest

from llmactions.agents.looper import LoopingAgent
from llmactions.cache import FileCache, MemoryCache, PromptCache
from llmactions.errors import (
    AgentParseError,
    AgentStepLimitError,
    HallucinatedInstructionError,
)
from llmactions.instructions.base import Action, ActionFeedback, ActionParameter, Instruction
from llmactions.listeners import AgentListeners
from llmactions.models.mock import ScriptedCompletionModel
from llmactions.provider import CompletionProvider

GARBAGE = "Sure! I will list the files now."
DONE = '<Action name="done" />'


class MockedListFilesAction(Action):
    name = "listFiles"
    usage = "list all files in a directory"
    parameters = (ActionParameter("directory", "path of the directory to list"),)

    def execute_action(self, parameters: dict[str, str]) -> ActionFeedback:
        directory = parameters["directory"]
        if directory == "/bad":
            return ActionFeedback.error(f"{directory} does not exist")
        return ActionFeedback.success(f"Files in {directory}: so.rs much.ts files.go")


class TestableAgent(LoopingAgent):
    name = "testable-agent"

    def format_prompt(self, instructions_description: str, feedback_steps: list[str]) -> str:
        history = "\n".join(feedback_steps)
        return f"{instructions_description}{history}"


def build_agent(answers, tries=1, cache=None, **kwargs):
    model = ScriptedCompletionModel(scripted=answers)
    provider = CompletionProvider(model, cache=PromptCache(cache))
    agent = TestableAgent(provider, [MockedListFilesAction()], tries=tries, **kwargs)
    return agent, model


def test_run_feeds_history_back_into_prompts():
    agent, model = build_agent(
        [
            '<Action name="listFiles" parameter:directory="/home/aschen" />',
            '<Action name="listFiles" parameter:directory="/home/ocav" />',
            DONE,
        ]
    )
    agent.run()

    description = agent.describe_instructions()
    assert len(model.prompts) == 3
    assert model.prompts[0] == description
    assert model.prompts[1] == (
        description
        + '<Step number="1">\n'
        + '  <Action name="listFiles" parameter:directory="/home/aschen" '
        + 'feedback:type="success" feedback:message="Files in /home/aschen: so.rs much.ts files.go" />\n'
        + "</Step>"
    )
    assert model.prompts[2] == (
        model.prompts[1]
        + '\n<Step number="2">\n'
        + '  <Action name="listFiles" parameter:directory="/home/ocav" '
        + 'feedback:type="success" feedback:message="Files in /home/ocav: so.rs much.ts files.go" />\n'
        + "</Step>"
    )
    assert agent.actions_count == 2
    assert agent.actions_error_count == 0


def test_done_is_registered_once():
    agent, _ = build_agent([DONE])
    assert sorted(agent.registry.names) == ["done", "listFiles"]


def test_single_action_step_does_not_terminate():
    agent, model = build_agent(
        ['<Action name="listFiles" parameter:directory="/a" />', DONE]
    )
    agent.run()
    assert len(model.prompts) == 2
    assert len(agent.steps[0]) == 1
    assert agent.steps[0][0].startswith('<Action name="listFiles" parameter:directory="/a"')


def test_done_alone_terminates_without_error():
    agent, model = build_agent([DONE])
    agent.run()
    assert len(model.prompts) == 1
    assert agent.state.done
    assert not agent.state.error_in_step
    assert agent.steps == [[]]


def test_done_with_error_keeps_looping():
    agent, model = build_agent(
        [
            '<Action name="listFiles" parameter:directory="/bad" />\n' + DONE,
            '<Action name="listFiles" parameter:directory="/good" />\n' + DONE,
        ]
    )
    agent.run()
    assert len(model.prompts) == 2
    assert agent.actions_error_count == 1
    assert agent.actions_count == 1
    assert 'feedback:type="error"' in agent.steps[0][0]
    assert 'feedback:type="success"' in agent.steps[1][0]


def test_unparsable_answer_with_no_tries_fails_immediately():
    agent, model = build_agent([GARBAGE, DONE], tries=0)
    with pytest.raises(AgentParseError) as excinfo:
        agent.run()
    assert len(model.prompts) == 1
    assert excinfo.value.prompt_key.startswith("testable-agent/0-")
    assert excinfo.value.prompt_key.endswith("-prompt.txt")
    assert excinfo.value.answer_key.endswith("-answer.txt")


def test_unparsable_answer_is_retried_once_then_fails():
    agent, model = build_agent([GARBAGE, GARBAGE, DONE], tries=1)
    with pytest.raises(AgentParseError) as excinfo:
        agent.run()
    assert len(model.prompts) == 2
    assert excinfo.value.prompt_key
    assert excinfo.value.answer_key.startswith("testable-agent/1-")
    assert agent.steps == []


@pytest.mark.parametrize("tries", [1, 2, 4])
def test_retry_budget_consumes_exactly_n_attempts(tries):
    agent, model = build_agent([GARBAGE] * (tries + 1), tries=tries)
    with pytest.raises(AgentParseError):
        agent.run()
    assert len(model.prompts) == tries + 1


@pytest.mark.parametrize("tries", [1, 3])
def test_success_within_budget(tries):
    agent, model = build_agent([GARBAGE] * tries + [DONE], tries=tries)
    agent.run()
    assert len(model.prompts) == tries + 1
    assert agent.state.tries_remaining == 0


def test_hallucinated_action_is_a_parse_failure():
    agent, model = build_agent(['<Action name="deleteEverything" />'], tries=0)
    with pytest.raises(AgentParseError) as excinfo:
        agent.run()
    assert isinstance(excinfo.value.__cause__, HallucinatedInstructionError)
    assert excinfo.value.__cause__.name == "deleteEverything"
    assert agent.actions_count == 0


def test_retry_does_not_replay_cached_bad_answer():
    agent, model = build_agent([GARBAGE, DONE], tries=1, cache=MemoryCache())
    agent.run()
    assert len(model.prompts) == 2


def test_second_run_replays_from_cache(tmp_path):
    answers = ['<Action name="listFiles" parameter:directory="/a" />', DONE]
    first, first_model = build_agent(list(answers), cache=FileCache(tmp_path))
    first.run()
    second, second_model = build_agent([], cache=FileCache(tmp_path))
    second.run()
    assert len(first_model.prompts) == 2
    assert second_model.prompts == []
    assert second.steps == first.steps


def test_step_limit():
    model = ScriptedCompletionModel(
        fallback=lambda prompt: '<Action name="listFiles" parameter:directory="/a" />'
    )
    agent = TestableAgent(
        CompletionProvider(model), [MockedListFilesAction()], max_steps=3
    )
    with pytest.raises(AgentStepLimitError):
        agent.run()
    assert len(agent.steps) == 3
    assert agent.actions_count == 3


def test_counters_are_cumulative_across_runs():
    agent, _ = build_agent(
        [
            '<Action name="listFiles" parameter:directory="/a" />\n' + DONE,
            '<Action name="listFiles" parameter:directory="/b" />\n' + DONE,
        ]
    )
    agent.run()
    agent.run()
    assert agent.actions_count == 2


def test_plain_instructions_are_rejected():
    class Thought(Instruction):
        name = "thought"
        usage = "think"

    with pytest.raises(TypeError):
        TestableAgent(CompletionProvider(ScriptedCompletionModel()), [Thought()])


def test_agent_requires_name():
    class Anonymous(LoopingAgent):
        def format_prompt(self, instructions_description, feedback_steps):
            return ""

    with pytest.raises(ValueError):
        Anonymous(CompletionProvider(ScriptedCompletionModel()))


def test_listeners_see_every_live_call():
    seen = []
    model = ScriptedCompletionModel(scripted=[GARBAGE, DONE])
    provider = CompletionProvider(
        model, listeners=AgentListeners(on_answer=(lambda event: seen.append(event.answer),))
    )
    TestableAgent(provider, [MockedListFilesAction()], tries=1).run()
    assert seen == [GARBAGE, DONE]


def test_multiline_actions_render_history_in_their_format():
    class MultilineList(MockedListFilesAction):
        format = "multiline"

    model = ScriptedCompletionModel(
        scripted=[
            '<Action name="listFiles">\n<Parameter name="directory">/a</Parameter>\n</Action>',
            DONE,
        ]
    )
    agent = TestableAgent(CompletionProvider(model), [MultilineList()])
    agent.run()
    assert agent.steps[0][0].startswith('  <Action name="listFiles">\n')
    assert '<Feedback type="success">' in model.prompts[1]
