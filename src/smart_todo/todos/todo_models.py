# src/smart_todo/todos/todo_models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Final


class Priority(StrEnum):
    """
    Priority levels.

    Sorting uses a fixed weight (high first); an unset priority counts as medium.
    """

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def parse(cls, raw: Any, default: Priority | None = None) -> Priority | None:
        """Case-insensitive lookup; unknown or empty values yield `default`."""
        if raw is None:
            return default
        s = str(raw).strip().lower()
        if not s:
            return default
        try:
            return cls(s)
        except ValueError:
            return default

    @property
    def weight(self) -> int:
        return PRIORITY_WEIGHT[self]


PRIORITY_WEIGHT: Final[dict[Priority, int]] = {
    Priority.HIGH: 0,
    Priority.MEDIUM: 1,
    Priority.LOW: 2,
}


def priority_weight(priority: Priority | None) -> int:
    """Ascending sort weight; None is treated as medium."""
    return PRIORITY_WEIGHT[priority or Priority.MEDIUM]


def _opt_str(v: Any) -> str | None:
    if v is None:
        return None
    return str(v)


@dataclass(frozen=True, slots=True)
class SubTask:
    id: str
    text: str
    completed: bool = False
    priority: Priority | None = Priority.MEDIUM
    estimated_time: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "text": self.text,
            "completed": self.completed,
        }
        if self.priority is not None:
            out["priority"] = self.priority.value
        if self.estimated_time is not None:
            out["estimatedTime"] = self.estimated_time
        return out

    @classmethod
    def from_dict(cls, data: Any) -> SubTask:
        if not isinstance(data, dict):
            raise ValueError("subtask must be an object")
        sid = data.get("id")
        text = data.get("text")
        if not isinstance(sid, str) or not sid or not isinstance(text, str):
            raise ValueError("subtask requires string id and text")
        return cls(
            id=sid,
            text=text,
            completed=bool(data.get("completed", False)),
            priority=Priority.parse(data.get("priority")),
            estimated_time=_opt_str(data.get("estimatedTime")),
        )


@dataclass(frozen=True, slots=True)
class Todo:
    """
    A top-level task.

    `completed` mirrors "all subtasks completed" whenever sub_tasks is non-empty;
    TodoStore keeps that true after every mutation.
    """

    id: str
    text: str
    created_at: int
    completed: bool = False
    priority: Priority = Priority.MEDIUM
    estimated_time: str | None = None
    suggested_slot: str | None = None
    collapsed: bool = False
    sub_tasks: tuple[SubTask, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "text": self.text,
            "completed": self.completed,
            "priority": self.priority.value,
            "createdAt": self.created_at,
            "collapsed": self.collapsed,
            "subTasks": [st.to_dict() for st in self.sub_tasks],
        }
        if self.estimated_time is not None:
            out["estimatedTime"] = self.estimated_time
        if self.suggested_slot is not None:
            out["suggestedSlot"] = self.suggested_slot
        return out

    @classmethod
    def from_dict(cls, data: Any) -> Todo:
        if not isinstance(data, dict):
            raise ValueError("todo must be an object")
        tid = data.get("id")
        text = data.get("text")
        if not isinstance(tid, str) or not tid or not isinstance(text, str):
            raise ValueError("todo requires string id and text")

        raw_subs = data.get("subTasks") or []
        if not isinstance(raw_subs, list):
            raise ValueError("subTasks must be a list")

        try:
            created_at = int(data.get("createdAt") or 0)
        except (TypeError, ValueError, OverflowError):
            created_at = 0

        return cls(
            id=tid,
            text=text,
            created_at=created_at,
            completed=bool(data.get("completed", False)),
            priority=Priority.parse(data.get("priority"), Priority.MEDIUM) or Priority.MEDIUM,
            estimated_time=_opt_str(data.get("estimatedTime")),
            suggested_slot=_opt_str(data.get("suggestedSlot")),
            collapsed=bool(data.get("collapsed", False)),
            sub_tasks=tuple(SubTask.from_dict(s) for s in raw_subs),
        )


@dataclass(frozen=True, slots=True)
class SubTaskDraft:
    """One oracle-proposed subtask (no id yet)."""

    text: str
    priority: Priority
    estimated_time: str


@dataclass(frozen=True, slots=True)
class ScheduleSuggestion:
    """Oracle-proposed priority/time/slot for an existing task, correlated by id."""

    id: str
    priority: Priority
    estimated_time: str
    suggested_slot: str
