"""Branch-solve-merge: grade candidate answers against generated criteria.

The branch agent proposes evaluation criteria for a question, one solve agent
per (criterion, answer) pair grades the answer, and the merge agent reads all
analyses to pick or write the final answer. Solve runs are independent and
fan out over a thread pool; the merge only starts once every solve returned.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
import re
from typing import Sequence

from llmactions.agents.one_shot import OneShotAgent
from llmactions.cache.base import hash_content
from llmactions.instructions.base import ActionParameter, Instruction
from llmactions.provider import CompletionProvider
from llmactions.util.logging import get_logger

logger = get_logger(__name__)

_NOTE = re.compile(r"-?\d+")


class CriteriaInstruction(Instruction):
    name = "criteria"
    usage = (
        "describe one of the criteria to evaluate the answer. "
        "you can use this action multiple times to describe multiple criteria"
    )
    parameters = (
        ActionParameter("criteria", "name of the criteria"),
        ActionParameter("definition", "definition of the criteria"),
    )
    format = "multiline"


class AnalysisInstruction(Instruction):
    name = "analysis"
    usage = "analysis of the answer to the question based on the criteria"
    parameters = (
        ActionParameter("analysis", "content of the analysis"),
        ActionParameter("note", "note on 10 of the answer based on the criteria"),
    )
    format = "multiline"


class BestAnswerInstruction(Instruction):
    name = "bestAnswer"
    usage = "best answer number based on the analysis"
    parameters = (ActionParameter("index", "number of the answer"),)
    format = "multiline"


class MergedAnswerInstruction(Instruction):
    name = "mergedAnswer"
    usage = "use the analyses and the answer content to create a new answer to the question"
    parameters = (ActionParameter("answer", "content of the answer"),)
    format = "multiline"


BRANCH_TEMPLATE = """You are an expert in question and answer analysis.
You have a lot of experience in every field.

You will be given a question and you need to take an analytical approach to determine {criteria_count} criteria
in order to verify quality of potential answers.

{existing_criteria}

The question is the following:
# BEGIN QUESTION
{question}
# END QUESTION

Answer with the following actions:
{instructions}

{existing_criteria_emphasis}
"""

SOLVE_TEMPLATE = """You are an expert in question and answer analysis.
You have a lot of experience in every field.

A question was asked to you:
# BEGIN QUESTION
{question}
# END QUESTION

You need to evaluate the pertinence of an answer based on the following criteria:
# BEGIN CRITERIA
{criteria}
# END CRITERIA

This criteria is used to evaluate the answer.

The answer is:
# BEGIN ANSWER
{answer}
# END ANSWER

Write an extensive analysis on the answer to the question based on the criteria.
Also give a note on 10 to the answer based on the criteria.

Answer with the following actions:
{instructions}
"""

MERGE_TEMPLATE = """You are an expert in question and answer analysis.
You have a lot of experience in every field.

A question was asked to you:
# BEGIN QUESTION
{question}
# END QUESTION

Other experts have examinated the pertinence of answers regarding a particular question.
You need to merge their analysis into a single analysis.

# BEGIN ANALYSIS
{analyses}
# END ANALYSIS

Answer with the following actions:
{instructions}
"""


@dataclass(frozen=True)
class Analysis:
    criteria_name: str
    answer_index: int
    answer: str
    analysis: str
    note: int


@dataclass(frozen=True)
class CriterionAnalysis:
    criteria: str
    analysis: str
    note: int


@dataclass
class AnswerAnalyses:
    answer_index: int
    answer: str
    analyses: list[CriterionAnalysis] = field(default_factory=list)


@dataclass
class MergeResult:
    notes: dict[int, int]
    answers_analyses: list[AnswerAnalyses]
    best_index: int | None
    merged_answer: str | None


def parse_note(value: str) -> int:
    match = _NOTE.search(value)
    return int(match.group(0)) if match else 0


class BranchAgent(OneShotAgent):
    name = "branch-agent"

    def __init__(
        self,
        provider: CompletionProvider,
        question: str,
        criteria_count: int = 2,
        criteria: Sequence[str] | None = None,
        **kwargs,
    ) -> None:
        super().__init__(provider, [CriteriaInstruction()], **kwargs)
        self.question = question
        self.criteria_count = criteria_count
        self.criteria = list(criteria or [])

    def format_prompt(self, instructions_description: str, feedback_steps: list[str]) -> str:
        names = ", ".join(self.criteria)
        return BRANCH_TEMPLATE.format(
            question=self.question,
            criteria_count=len(self.criteria) or self.criteria_count,
            existing_criteria=(
                "Create a detailled description of those criteria regarding the question "
                f"to evaluate: {names}"
                if self.criteria
                else ""
            ),
            existing_criteria_emphasis=(
                f"ONLY ANSWER DESCRIPTION FOR THE {len(self.criteria)} CRITERIAS I GAVE TO YOU: {names}"
                if self.criteria
                else ""
            ),
            instructions=instructions_description,
        )


class SolveAgent(OneShotAgent):
    def __init__(
        self,
        provider: CompletionProvider,
        question: str,
        criteria: str,
        answer: str,
        **kwargs,
    ) -> None:
        kwargs.setdefault("name", "solve-agent")
        super().__init__(provider, [AnalysisInstruction()], **kwargs)
        self.question = question
        self.criteria = criteria
        self.answer = answer

    def format_prompt(self, instructions_description: str, feedback_steps: list[str]) -> str:
        return SOLVE_TEMPLATE.format(
            question=self.question,
            criteria=self.criteria,
            answer=self.answer,
            instructions=instructions_description,
        )


class MergeAgent(OneShotAgent):
    name = "merge-agent"

    def __init__(
        self,
        provider: CompletionProvider,
        question: str,
        answers_analyses: list[AnswerAnalyses],
        **kwargs,
    ) -> None:
        super().__init__(
            provider, [BestAnswerInstruction(), MergedAnswerInstruction()], **kwargs
        )
        self.question = question
        self.answers_analyses = answers_analyses

    def describe_analyses(self) -> str:
        description = ""
        for answer_analyses in self.answers_analyses:
            description += f"## Answer {answer_analyses.answer_index}\n"
            description += f"{answer_analyses.answer}\n\n"
            for item in answer_analyses.analyses:
                description += f"### Criteria {item.criteria}\n"
                description += f"#### Analysis (note: {item.note})\n"
                description += f"{item.analysis}\n\n"
        return description

    def format_prompt(self, instructions_description: str, feedback_steps: list[str]) -> str:
        return MERGE_TEMPLATE.format(
            question=self.question,
            analyses=self.describe_analyses(),
            instructions=instructions_description,
        )


class BranchSolveMerge:
    def __init__(
        self,
        provider: CompletionProvider,
        question: str,
        answers: Sequence[str],
        criteria_count: int = 2,
        criteria: Sequence[str] | None = None,
        max_workers: int | None = None,
        tries: int = 1,
    ) -> None:
        if not answers:
            raise ValueError("at least one answer is required")
        self.provider = provider
        self.question = question
        self.answers = list(answers)
        self.criteria_count = criteria_count
        self.criteria: dict[str, str] = {name: "" for name in criteria or []}
        self.max_workers = max_workers
        self.tries = tries

    def execute(self) -> MergeResult:
        branch = BranchAgent(
            self.provider,
            self.question,
            criteria_count=self.criteria_count,
            criteria=list(self.criteria),
            tries=self.tries,
        )
        for invocation in CriteriaInstruction().select(branch.run()):
            name = invocation.parameters.get("criteria", "").strip()
            if name:
                self.criteria[name] = invocation.parameters.get("definition", "")
        logger.info("Branch produced %d criteria", len(self.criteria))

        tasks = [
            (criteria_name, definition, index, answer)
            for criteria_name, definition in self.criteria.items()
            for index, answer in enumerate(self.answers)
        ]
        analyses: list[Analysis] = []
        if tasks:
            with ThreadPoolExecutor(max_workers=self.max_workers or len(tasks)) as pool:
                futures = [pool.submit(self._solve, *task) for task in tasks]
                analyses = [future.result() for future in futures]

        notes, answers_analyses = self.classic_merge(analyses)
        best_index, merged_answer = self.agent_merge(answers_analyses)
        return MergeResult(
            notes=notes,
            answers_analyses=answers_analyses,
            best_index=best_index,
            merged_answer=merged_answer,
        )

    def _solve(self, criteria_name: str, definition: str, answer_index: int, answer: str) -> Analysis:
        agent = SolveAgent(
            self.provider,
            self.question,
            definition or criteria_name,
            answer,
            name=f"solve-agent/{hash_content(criteria_name)}-{answer_index}",
            tries=self.tries,
        )
        invocation = AnalysisInstruction().find(agent.run())
        parameters = invocation.parameters if invocation else {}
        return Analysis(
            criteria_name=criteria_name,
            answer_index=answer_index,
            answer=answer,
            analysis=parameters.get("analysis", ""),
            note=parse_note(parameters.get("note", "")),
        )

    @staticmethod
    def classic_merge(
        analyses: list[Analysis],
    ) -> tuple[dict[int, int], list[AnswerAnalyses]]:
        notes: dict[int, int] = {}
        grouped: dict[int, AnswerAnalyses] = {}
        for item in analyses:
            notes[item.answer_index] = notes.get(item.answer_index, 0) + item.note
            entry = grouped.setdefault(
                item.answer_index, AnswerAnalyses(answer_index=item.answer_index, answer=item.answer)
            )
            entry.analyses.append(
                CriterionAnalysis(criteria=item.criteria_name, analysis=item.analysis, note=item.note)
            )
        return notes, [grouped[index] for index in sorted(grouped)]

    def agent_merge(self, answers_analyses: list[AnswerAnalyses]) -> tuple[int | None, str | None]:
        agent = MergeAgent(self.provider, self.question, answers_analyses, tries=self.tries)
        invocations = agent.run()
        best = BestAnswerInstruction().find(invocations)
        merged = MergedAnswerInstruction().find(invocations)
        best_index = None
        if best is not None:
            match = _NOTE.search(best.parameters.get("index", ""))
            best_index = int(match.group(0)) if match else None
        return best_index, merged.parameters.get("answer") if merged else None
