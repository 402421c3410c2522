"""Command-line interface."""

from __future__ import annotations

import argparse
import sys
from typing import Any, Sequence
from uuid import uuid4

from llmactions.agents.branch_solve_merge import BranchSolveMerge
from llmactions.config import Settings
from llmactions.errors import AgentParseError, CacheKeyError
from llmactions.factory import build_cache, build_provider
from llmactions.trace import TraceRecorder


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="llmactions CLI")
    parser.add_argument("--cache-dir", dest="cache_dir")
    parser.add_argument("--cache-backend", choices=["file", "sqlite", "memory", "none"])
    parser.add_argument("--api-key", dest="api_key")
    parser.add_argument("--base-url", dest="base_url")
    parser.add_argument("--model", dest="model")
    parser.add_argument("--tries", type=int, dest="tries")
    subparsers = parser.add_subparsers(dest="command", required=True)

    inspect = subparsers.add_parser("inspect", help="Print cached prompts or answers")
    inspect.add_argument("keys", nargs="+")

    bsm = subparsers.add_parser("bsm", help="Grade answers with branch-solve-merge")
    bsm.add_argument("question")
    bsm.add_argument("--answer", action="append", dest="answers", required=True)
    bsm.add_argument("--criteria", action="append", dest="criteria")
    bsm.add_argument("--criteria-count", type=int, dest="criteria_count", default=2)
    bsm.add_argument("--max-workers", type=int, dest="max_workers")
    bsm.add_argument("--trace-dir", dest="trace_dir", help="Write a JSON trace of the run here")
    return parser.parse_args(argv)


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    data: dict[str, Any] = settings.model_dump()
    if args.cache_dir:
        data["cache_dir"] = args.cache_dir
    if args.cache_backend:
        data["cache_backend"] = args.cache_backend
    if args.api_key:
        data["openai_api_key"] = args.api_key
    if args.base_url:
        data["openai_base_url"] = args.base_url
    if args.model:
        data["openai_model"] = args.model
    if args.tries is not None:
        data["tries"] = args.tries
    return Settings(**data)


def run_inspect(settings: Settings, keys: Sequence[str]) -> int:
    engine = build_cache(settings)
    if engine is None:
        print("Cache is disabled", file=sys.stderr)
        return 1
    status = 0
    for key in keys:
        print(f"==> {key} <==")
        try:
            print(engine.get(key))
        except CacheKeyError:
            print("(missing)")
            status = 1
    return status


def run_bsm(settings: Settings, args: argparse.Namespace) -> int:
    recorder = None
    listeners = None
    if args.trace_dir:
        recorder = TraceRecorder(trace_id=uuid4().hex, workspace_dir=args.trace_dir)
        listeners = recorder.listeners()
    provider = build_provider(settings, listeners=listeners)
    pipeline = BranchSolveMerge(
        provider,
        args.question,
        args.answers,
        criteria_count=args.criteria_count,
        criteria=args.criteria,
        max_workers=args.max_workers,
        tries=settings.tries,
    )
    try:
        result = pipeline.execute()
    except AgentParseError as exc:
        print(f"Could not parse answer: {exc}", file=sys.stderr)
        print(f"Prompt: {exc.prompt_key}\nAnswer: {exc.answer_key}", file=sys.stderr)
        return 2
    for index in sorted(result.notes):
        print(f"Answer {index}: {result.notes[index]}")
    print("Best answer:", result.best_index if result.best_index is not None else "none")
    print("Merged answer:\n", result.merged_answer or "")
    print(f"Cost: {provider.cost:.4f}$")
    if recorder is not None:
        trace_path = recorder.finalize(
            {
                "cost": provider.cost,
                "notes": result.notes,
                "best_index": result.best_index,
            }
        )
        print(f"Trace: {trace_path}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    settings = apply_overrides(Settings(), args)
    if args.command == "inspect":
        return run_inspect(settings, args.keys)
    return run_bsm(settings, args)


if __name__ == "__main__":
    sys.exit(main())
