# src/smart_todo/todos/todo_api.py

"""
Oracle orchestration: run one oracle call and merge its result into the store.

Merges are keyed by id and happen against the state current at merge time, so
a todo deleted while its breakdown was in flight simply makes the merge a no-op.
Each call marks a key in `state.processing` while it is pending.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from ..core.state import AppState
from ..oracle.service import OracleResult
from .todo_models import ScheduleSuggestion, SubTaskDraft

logger = logging.getLogger(__name__)

SCHEDULE_KEY = "schedule"
INSIGHTS_KEY = "insights"


def breakdown_key(todo_id: str) -> str:
    return f"breakdown:{todo_id}"


@contextmanager
def _in_flight(state: AppState, key: str) -> Iterator[None]:
    state.processing.add(key)
    try:
        yield
    finally:
        state.processing.discard(key)


async def run_breakdown(state: AppState, todo_id: str) -> OracleResult[list[SubTaskDraft]]:
    """
    Replace a todo's subtasks with an oracle breakdown of its text.

    The store is left untouched when the call fails or returns no subtasks.
    `breakdown:<id>` stays in `state.processing` until the merge is done; a
    second run for the same todo fails fast while it is there.
    """
    todo = state.store.get(todo_id)
    if todo is None:
        return OracleResult.failed(f"todo not found: {todo_id}")

    key = breakdown_key(todo_id)
    if key in state.processing:
        return OracleResult.failed(f"breakdown already running for {todo_id}")

    with _in_flight(state, key):
        result = await state.oracle.request_breakdown(todo.text)

        if result.ok and result.value:
            if state.store.get(todo_id) is None:
                logger.info("Todo %s was deleted during breakdown; dropping result.", todo_id)
            else:
                state.store.apply_breakdown(todo_id, result.value)
        elif result.ok:
            logger.info("Breakdown for todo %s returned no subtasks.", todo_id)
    return result


async def run_smart_schedule(state: AppState) -> OracleResult[list[ScheduleSuggestion]]:
    todos = state.store.todos
    if not todos:
        return OracleResult.succeeded([])

    with _in_flight(state, SCHEDULE_KEY):
        result = await state.oracle.request_schedule((t.id, t.text) for t in todos)

    if result.ok and result.value:
        state.store.apply_schedule_suggestions(result.value)
    return result


async def fetch_insights(state: AppState) -> OracleResult[str]:
    with _in_flight(state, INSIGHTS_KEY):
        result = await state.oracle.request_insights(state.store.todos)

    state.insight = result.unwrap_or("")
    return result
