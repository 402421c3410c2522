"""Trace recorder for agent runs."""

from __future__ import annotations

import json
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from llmactions.listeners import AgentListeners, AnswerEvent, PromptEvent
from llmactions.util.logging import redact


@dataclass
class TraceRecorder:
    trace_id: str
    workspace_dir: str
    started_at: float = field(default_factory=time.time)
    events: list[dict[str, Any]] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def record(self, event_type: str, payload: dict[str, Any]) -> None:
        with self._lock:
            self.events.append(
                {
                    "type": event_type,
                    "timestamp": time.time(),
                    "payload": payload,
                }
            )

    def record_prompt(self, event: PromptEvent) -> None:
        self.record(
            "prompt",
            {
                "id": event.id,
                "agent": event.agent_name,
                "key": event.key,
                "model": event.model,
                "prompt": redact(event.prompt),
                "cost": event.cost,
            },
        )

    def record_answer(self, event: AnswerEvent) -> None:
        self.record(
            "answer",
            {
                "id": event.id,
                "agent": event.agent_name,
                "key": event.key,
                "model": event.model,
                "answer": redact(event.answer),
                "cost": event.cost,
            },
        )

    def listeners(self) -> AgentListeners:
        return AgentListeners(on_prompt=(self.record_prompt,), on_answer=(self.record_answer,))

    def summary(self) -> dict[str, Any]:
        """Live calls and their cost, per agent."""
        agents: dict[str, dict[str, float]] = {}
        with self._lock:
            events = list(self.events)
        for event in events:
            payload = event["payload"]
            if "agent" not in payload:
                continue
            totals = agents.setdefault(payload["agent"], {"calls": 0, "cost": 0.0})
            if event["type"] == "answer":
                totals["calls"] += 1
            totals["cost"] += payload.get("cost", 0.0)
        return agents

    def finalize(self, stats: dict[str, Any]) -> str:
        """Write the trace to ``<workspace_dir>/traces/<trace_id>.json``."""
        path = Path(self.workspace_dir, "traces", f"{self.trace_id}.json")
        path.parent.mkdir(parents=True, exist_ok=True)
        document = {
            "trace_id": self.trace_id,
            "started_at": self.started_at,
            "ended_at": time.time(),
            "stats": stats,
            "agents": self.summary(),
        }
        with self._lock:
            document["events"] = list(self.events)
        path.write_text(json.dumps(document, indent=2, default=str), encoding="utf-8")
        return str(path)
