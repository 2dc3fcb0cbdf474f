# src/smart_todo/core/state.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

from ..oracle.service import TaskOracle
from ..todos.todo_store import TodoStore


class Phase(IntEnum):
    """Feature gates for the presentation layer (each phase includes the previous ones)."""

    BASIC = 1
    PRIORITY = 2
    AI_BREAKDOWN = 3
    SMART_SCHEDULE = 4
    AGENTIC_HUB = 5

    @property
    def title(self) -> str:
        return _PHASE_TITLES[self]


_PHASE_TITLES = {
    Phase.BASIC: "Phase 1: Basic Todo",
    Phase.PRIORITY: "Phase 2: Priority & Tags",
    Phase.AI_BREAKDOWN: "Phase 3: AI Breakdown",
    Phase.SMART_SCHEDULE: "Phase 4: Smart Schedule",
    Phase.AGENTIC_HUB: "Phase 5: Agentic Hub",
}


@dataclass
class AppState:
    # Settings are kept on the state so handlers never read global config.
    settings: Any

    store: TodoStore
    oracle: TaskOracle
    phase: Phase = Phase.BASIC

    # In-flight oracle calls, e.g. "breakdown:<todo_id>" or "schedule".
    processing: set[str] = field(default_factory=set)
    insight: str = ""
    offline: bool = False

    def phase_at_least(self, phase: Phase) -> bool:
        return self.phase >= phase
