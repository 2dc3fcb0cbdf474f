# src/smart_todo/todos/todo_store.py

from __future__ import annotations

import json
import logging
import time
import uuid
from collections.abc import Callable, Iterable
from dataclasses import replace
from enum import StrEnum

from ..core.duration import parse_duration
from ..core.ports import BlobStore
from .todo_models import Priority, ScheduleSuggestion, SubTask, SubTaskDraft, Todo, priority_weight

logger = logging.getLogger(__name__)

PersistCallback = Callable[[list[Todo]], None]


class SortCriteria(StrEnum):
    PRIORITY = "priority"
    TIME = "time"


def _new_id() -> str:
    return str(uuid.uuid4())


def _now_ms() -> int:
    return int(time.time() * 1000)


def _completion_from_subtasks(todo: Todo, sub_tasks: tuple[SubTask, ...]) -> bool:
    # With no subtasks left the parent keeps its current flag.
    if not sub_tasks:
        return todo.completed
    return all(st.completed for st in sub_tasks)


# ---- serialization ----

def dumps_todos(todos: Iterable[Todo]) -> str:
    return json.dumps([t.to_dict() for t in todos], ensure_ascii=False)


def loads_todos(raw: str) -> list[Todo]:
    """
    Decode a persisted blob.

    Raises ValueError if the blob is not a JSON array. Malformed entries and
    duplicate ids are skipped (first occurrence wins).
    """
    try:
        data = json.loads(raw)
    except RecursionError as e:
        raise ValueError("persisted todos are nested too deeply") from e
    if not isinstance(data, list):
        raise ValueError("persisted todos must be a JSON array")

    out: list[Todo] = []
    seen: set[str] = set()
    for i, item in enumerate(data):
        try:
            todo = Todo.from_dict(item)
        except ValueError as e:
            logger.warning("Skipping malformed persisted todo #%d: %s", i, e)
            continue
        if todo.id in seen:
            logger.warning("Skipping duplicate persisted todo id=%s", todo.id)
            continue
        seen.add(todo.id)
        out.append(todo)
    return out


def load_todos(blob_store: BlobStore, key: str) -> list[Todo]:
    """Best-effort load: a missing or corrupt blob yields an empty list."""
    try:
        raw = blob_store.get(key)
    except Exception:
        logger.exception("Failed to read persisted todos key=%s", key)
        return []

    if not raw:
        return []

    try:
        return loads_todos(raw)
    except ValueError:
        logger.exception("Persisted todos are corrupt key=%s; starting empty.", key)
        return []


def save_todos(blob_store: BlobStore, key: str, todos: list[Todo]) -> None:
    blob_store.set(key, dumps_todos(todos))


class TodoStore:
    """
    Authoritative in-memory todo collection.

    Every mutator:
    - computes the next state from immutable Todo/SubTask values,
    - swaps it in with a single assignment (readers never see partial updates),
    - calls the persist callback with the full new list,
    - returns the new state.

    Missing ids and blank text are no-ops: the current state is returned
    and nothing is persisted.
    """

    def __init__(
        self,
        todos: Iterable[Todo] = (),
        *,
        persist: PersistCallback | None = None,
        id_factory: Callable[[], str] = _new_id,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._todos: list[Todo] = list(todos)
        self._persist = persist
        self._new_id = id_factory
        self._clock = clock

    @classmethod
    def open(cls, blob_store: BlobStore, key: str = "ai_todos", **kwargs) -> TodoStore:
        """Restore from `blob_store` and persist every change back under `key`."""
        todos = load_todos(blob_store, key)
        store = cls(todos, persist=lambda items: save_todos(blob_store, key, items), **kwargs)
        logger.info("TodoStore ready key=%s total=%d", key, len(todos))
        return store

    # ---- read API ----

    @property
    def todos(self) -> list[Todo]:
        return list(self._todos)

    def __len__(self) -> int:
        return len(self._todos)

    def get(self, todo_id: str) -> Todo | None:
        for t in self._todos:
            if t.id == todo_id:
                return t
        return None

    def counts(self) -> tuple[int, int]:
        """(completed, pending) over top-level todos."""
        completed = sum(1 for t in self._todos if t.completed)
        return completed, len(self._todos) - completed

    # ---- low-level helpers ----

    def _commit(self, todos: list[Todo]) -> list[Todo]:
        self._todos = todos
        if self._persist is not None:
            try:
                self._persist(list(todos))
            except Exception:
                # Best-effort: the in-memory state stays authoritative.
                logger.exception("Failed to persist todos (total=%d).", len(todos))
        return list(todos)

    def _update(self, todo_id: str, fn: Callable[[Todo], Todo | None]) -> list[Todo]:
        for i, todo in enumerate(self._todos):
            if todo.id != todo_id:
                continue
            updated = fn(todo)
            if updated is None or updated == todo:
                return self.todos
            todos = list(self._todos)
            todos[i] = updated
            return self._commit(todos)

        logger.debug("Todo not found id=%s; ignoring.", todo_id)
        return self.todos

    # ---- todos ----

    def add_task(self, text: str) -> list[Todo]:
        trimmed = (text or "").strip()
        if not trimmed:
            return self.todos

        todo = Todo(id=self._new_id(), text=trimmed, created_at=self._clock())
        logger.debug("Todo added id=%s", todo.id)
        return self._commit([todo, *self._todos])

    def delete_task(self, todo_id: str) -> list[Todo]:
        todos = [t for t in self._todos if t.id != todo_id]
        if len(todos) == len(self._todos):
            return self.todos
        logger.debug("Todo deleted id=%s", todo_id)
        return self._commit(todos)

    def toggle_task(self, todo_id: str) -> list[Todo]:
        def fn(todo: Todo) -> Todo:
            done = not todo.completed
            subs = tuple(replace(st, completed=done) for st in todo.sub_tasks)
            return replace(todo, completed=done, sub_tasks=subs)

        return self._update(todo_id, fn)

    def edit_task_text(self, todo_id: str, text: str) -> list[Todo]:
        trimmed = (text or "").strip()
        if not trimmed:
            return self.todos
        return self._update(todo_id, lambda todo: replace(todo, text=trimmed))

    def toggle_collapse(self, todo_id: str) -> list[Todo]:
        return self._update(todo_id, lambda todo: replace(todo, collapsed=not todo.collapsed))

    # ---- subtasks ----

    def add_subtask(self, todo_id: str, text: str) -> list[Todo]:
        trimmed = (text or "").strip()
        if not trimmed:
            return self.todos

        def fn(todo: Todo) -> Todo:
            sub = SubTask(id=self._new_id(), text=trimmed, priority=Priority.MEDIUM)
            return replace(
                todo,
                sub_tasks=(*todo.sub_tasks, sub),
                completed=False,
                collapsed=False,
            )

        return self._update(todo_id, fn)

    def delete_subtask(self, todo_id: str, subtask_id: str) -> list[Todo]:
        def fn(todo: Todo) -> Todo | None:
            subs = tuple(st for st in todo.sub_tasks if st.id != subtask_id)
            if len(subs) == len(todo.sub_tasks):
                return None
            return replace(todo, sub_tasks=subs, completed=_completion_from_subtasks(todo, subs))

        return self._update(todo_id, fn)

    def toggle_subtask(self, todo_id: str, subtask_id: str) -> list[Todo]:
        def fn(todo: Todo) -> Todo | None:
            if not any(st.id == subtask_id for st in todo.sub_tasks):
                return None
            subs = tuple(
                replace(st, completed=not st.completed) if st.id == subtask_id else st
                for st in todo.sub_tasks
            )
            return replace(todo, sub_tasks=subs, completed=_completion_from_subtasks(todo, subs))

        return self._update(todo_id, fn)

    def edit_subtask(
        self,
        todo_id: str,
        subtask_id: str,
        text: str,
        priority: Priority | str | None,
        estimated_time: str | None,
    ) -> list[Todo]:
        """
        Replace text, priority and estimated time together, or not at all.

        A blank estimated time clears the field.
        """
        trimmed = (text or "").strip()
        if not trimmed:
            return self.todos

        prio = Priority.parse(priority, Priority.MEDIUM)
        est = (estimated_time or "").strip() or None

        def fn(todo: Todo) -> Todo | None:
            if not any(st.id == subtask_id for st in todo.sub_tasks):
                return None
            subs = tuple(
                replace(st, text=trimmed, priority=prio, estimated_time=est)
                if st.id == subtask_id
                else st
                for st in todo.sub_tasks
            )
            return replace(todo, sub_tasks=subs)

        return self._update(todo_id, fn)

    def sort_subtasks(self, todo_id: str, criteria: SortCriteria | str) -> list[Todo]:
        """Stable in-place reorder by priority weight or parsed duration."""
        try:
            crit = SortCriteria(criteria)
        except ValueError:
            logger.debug("Unknown sort criteria=%r; ignoring.", criteria)
            return self.todos

        if crit is SortCriteria.PRIORITY:
            key: Callable[[SubTask], int] = lambda st: priority_weight(st.priority)
        else:
            key = lambda st: parse_duration(st.estimated_time)

        return self._update(
            todo_id, lambda todo: replace(todo, sub_tasks=tuple(sorted(todo.sub_tasks, key=key)))
        )

    # ---- oracle merges ----

    def apply_breakdown(self, todo_id: str, drafts: Iterable[SubTaskDraft]) -> list[Todo]:
        """Replace the subtask list wholesale with fresh, incomplete subtasks."""
        drafts = list(drafts)

        def fn(todo: Todo) -> Todo:
            subs = tuple(
                SubTask(
                    id=self._new_id(),
                    text=d.text,
                    completed=False,
                    priority=d.priority,
                    estimated_time=d.estimated_time,
                )
                for d in drafts
            )
            return replace(todo, sub_tasks=subs, completed=False, collapsed=False)

        return self._update(todo_id, fn)

    def apply_schedule_suggestions(self, suggestions: Iterable[ScheduleSuggestion]) -> list[Todo]:
        by_id = {s.id: s for s in suggestions}
        if not by_id:
            return self.todos

        changed = False
        todos: list[Todo] = []
        for todo in self._todos:
            s = by_id.get(todo.id)
            if s is None:
                todos.append(todo)
                continue
            todos.append(
                replace(
                    todo,
                    priority=s.priority,
                    estimated_time=s.estimated_time,
                    suggested_slot=s.suggested_slot,
                )
            )
            changed = True

        if not changed:
            logger.debug("No schedule suggestion matched an existing todo.")
            return self.todos
        return self._commit(todos)
