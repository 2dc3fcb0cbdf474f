# src/smart_todo/oracle/service.py

"""
AI oracle: subtask breakdown, schedule suggestions and productivity insights.

The oracle never touches the TodoStore. It turns todo data into prompts,
asks the LLM for schema-constrained JSON (or free text for insights) and parses
the answer into typed drafts. Every transport or parse failure is logged and
reported as a failed OracleResult; nothing is raised to the caller.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from ..core.ports import LLMClient
from ..llm.client import friendly_llm_error_message
from ..todos.todo_models import Priority, ScheduleSuggestion, SubTaskDraft, Todo

logger = logging.getLogger(__name__)

T = TypeVar("T")

_PRIORITY_ENUM = [p.value for p in Priority]

JSON_SYSTEM_PROMPT = """
You are a task planning assistant inside a to-do app.

Output format:
Return STRICT JSON only that matches the requested schema. No extra text. No Markdown.
Priorities are exactly one of: low, medium, high.
Estimated times are short labels like "15m", "1h", "1h 30m".
""".strip()

BREAKDOWN_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "subtasks": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "text": {"type": "string"},
                    "priority": {"type": "string", "enum": _PRIORITY_ENUM},
                    "estimatedTime": {"type": "string"},
                },
                "required": ["text", "priority", "estimatedTime"],
            },
        }
    },
    "required": ["subtasks"],
}

SCHEDULE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "suggestions": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "id": {"type": "string"},
                    "priority": {"type": "string", "enum": _PRIORITY_ENUM},
                    "estimatedTime": {"type": "string"},
                    "suggestedSlot": {"type": "string"},
                },
                "required": ["id", "priority", "estimatedTime", "suggestedSlot"],
            },
        }
    },
    "required": ["suggestions"],
}


@dataclass(frozen=True, slots=True)
class OracleResult(Generic[T]):
    """Outcome of one oracle call: either ok with a value, or failed with a reason."""

    ok: bool
    value: T | None = None
    error: str | None = None

    @classmethod
    def succeeded(cls, value: T) -> OracleResult[T]:
        return cls(ok=True, value=value)

    @classmethod
    def failed(cls, error: str) -> OracleResult[T]:
        return cls(ok=False, error=error)

    def unwrap_or(self, default: T) -> T:
        if self.ok and self.value is not None:
            return self.value
        return default


# ---- prompts ----

def build_breakdown_prompt(task_text: str) -> str:
    return (
        f'Break down this task into 3-5 actionable subtasks: "{task_text}". '
        "For each subtask, provide a priority (low, medium, high) "
        'and a short estimated time (e.g., "15m", "1h").'
    )


def build_schedule_prompt(tasks: Iterable[tuple[str, str]]) -> str:
    lines = "\n".join(f"ID: {tid}, Task: {text}" for tid, text in tasks)
    return (
        "Analyze these tasks and suggest priority, estimated time, and a logical time slot "
        "for each. Return the data mapped to the provided IDs.\n\n"
        f"Tasks:\n{lines}"
    )


def build_insights_prompt(texts: list[str], completed: int, pending: int) -> str:
    return (
        f"Analyze this todo list: {json.dumps(texts, ensure_ascii=False)}.\n"
        f"Completed: {completed}, Pending: {pending}.\n"
        'Provide a 2-sentence executive summary and one "tip of the day" for productivity.'
    )


# ---- parsing ----

def _extract_json(raw: str) -> Any:
    """
    Best-effort JSON decode of a model answer.

    Accepts plain JSON, JSON wrapped in a Markdown fence, or JSON surrounded by
    prose (first opening bracket to the matching last closing one).
    Raises ValueError when nothing decodes (including nesting too deep to decode).
    """
    s = (raw or "").strip()
    if s.startswith("```"):
        s = s.strip("`")
        if s.lower().startswith("json"):
            s = s[4:]
        s = s.strip()

    try:
        return json.loads(s)
    except (ValueError, RecursionError):
        pass

    for open_ch, close_ch in (("{", "}"), ("[", "]")):
        first = s.find(open_ch)
        last = s.rfind(close_ch)
        if first != -1 and last > first:
            try:
                return json.loads(s[first : last + 1])
            except (ValueError, RecursionError):
                continue

    raise ValueError("response is not JSON")


def _items(data: Any, key: str) -> list[Any]:
    if isinstance(data, dict):
        data = data.get(key)
    if not isinstance(data, list):
        raise ValueError(f"expected a list under {key!r}")
    return data


def _req_str(item: dict[str, Any], key: str) -> str | None:
    v = item.get(key)
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        v = str(v)
    if not isinstance(v, str):
        return None
    v = v.strip()
    return v or None


def parse_breakdown(raw: str) -> list[SubTaskDraft]:
    """Parse `{subtasks: [...]}` (or a bare list). Items missing a field are dropped."""
    out: list[SubTaskDraft] = []
    for item in _items(_extract_json(raw), "subtasks"):
        if not isinstance(item, dict):
            continue
        text = _req_str(item, "text")
        prio = _req_str(item, "priority")
        est = _req_str(item, "estimatedTime")
        if text is None or prio is None or est is None:
            logger.debug("Dropping incomplete breakdown item: %r", item)
            continue
        out.append(
            SubTaskDraft(
                text=text,
                priority=Priority.parse(prio, Priority.MEDIUM) or Priority.MEDIUM,
                estimated_time=est,
            )
        )
    return out


def parse_schedule(raw: str) -> list[ScheduleSuggestion]:
    """Parse `{suggestions: [...]}` (or a bare list). Items missing a field are dropped."""
    out: list[ScheduleSuggestion] = []
    for item in _items(_extract_json(raw), "suggestions"):
        if not isinstance(item, dict):
            continue
        sid = _req_str(item, "id")
        prio = _req_str(item, "priority")
        est = _req_str(item, "estimatedTime")
        slot = _req_str(item, "suggestedSlot")
        if sid is None or prio is None or est is None or slot is None:
            logger.debug("Dropping incomplete schedule item: %r", item)
            continue
        out.append(
            ScheduleSuggestion(
                id=sid,
                priority=Priority.parse(prio, Priority.MEDIUM) or Priority.MEDIUM,
                estimated_time=est,
                suggested_slot=slot,
            )
        )
    return out


class TaskOracle:
    """Thin request/response layer over an LLMClient."""

    def __init__(self, llm: LLMClient) -> None:
        self._llm = llm

    async def _ask(self, what: str, prompt: str, *, json_schema: dict[str, Any] | None) -> OracleResult[str]:
        try:
            raw = await self._llm.complete(
                [{"role": "user", "content": prompt}],
                system_prompt=JSON_SYSTEM_PROMPT if json_schema is not None else None,
                json_schema=json_schema,
            )
        except RuntimeError as e:
            msg = friendly_llm_error_message(e)
            logger.warning("Oracle %s failed: %s", what, msg)
            return OracleResult.failed(msg)
        except Exception as e:
            logger.exception("Oracle %s crashed.", what)
            return OracleResult.failed(f"{e.__class__.__name__}: {e}")
        return OracleResult.succeeded(raw or "")

    # ---- result-typed API ----

    async def request_breakdown(self, task_text: str) -> OracleResult[list[SubTaskDraft]]:
        res = await self._ask("breakdown", build_breakdown_prompt(task_text), json_schema=BREAKDOWN_SCHEMA)
        if not res.ok:
            return OracleResult.failed(res.error or "request failed")
        try:
            drafts = parse_breakdown(res.value or "")
        except ValueError as e:
            logger.warning("Failed to parse breakdown response: %s", e)
            return OracleResult.failed(f"unparseable response: {e}")
        logger.info("Oracle breakdown produced %d subtasks", len(drafts))
        return OracleResult.succeeded(drafts)

    async def request_schedule(self, tasks: Iterable[tuple[str, str]]) -> OracleResult[list[ScheduleSuggestion]]:
        pairs = list(tasks)
        if not pairs:
            return OracleResult.succeeded([])
        res = await self._ask("schedule", build_schedule_prompt(pairs), json_schema=SCHEDULE_SCHEMA)
        if not res.ok:
            return OracleResult.failed(res.error or "request failed")
        try:
            suggestions = parse_schedule(res.value or "")
        except ValueError as e:
            logger.warning("Failed to parse scheduling response: %s", e)
            return OracleResult.failed(f"unparseable response: {e}")
        logger.info("Oracle schedule produced %d suggestions for %d tasks", len(suggestions), len(pairs))
        return OracleResult.succeeded(suggestions)

    async def request_insights(self, todos: Iterable[Todo]) -> OracleResult[str]:
        items = list(todos)
        completed = sum(1 for t in items if t.completed)
        pending = len(items) - completed
        prompt = build_insights_prompt([t.text for t in items], completed, pending)
        res = await self._ask("insights", prompt, json_schema=None)
        if not res.ok:
            return res
        text = (res.value or "").strip()
        if not text:
            logger.warning("Oracle insights returned no text.")
            return OracleResult.failed("empty response")
        return OracleResult.succeeded(text)

    # ---- fallback API (empty / absent on failure) ----

    async def breakdown(self, task_text: str) -> list[SubTaskDraft]:
        return (await self.request_breakdown(task_text)).unwrap_or([])

    async def suggest_schedule(self, tasks: Iterable[tuple[str, str]]) -> list[ScheduleSuggestion]:
        return (await self.request_schedule(tasks)).unwrap_or([])

    async def project_insights(self, todos: Iterable[Todo]) -> str | None:
        return (await self.request_insights(todos)).value
