# tests/conftest.py

from __future__ import annotations

import itertools
from pathlib import Path
from types import SimpleNamespace

import pytest

from smart_todo.core.state import AppState, Phase
from smart_todo.oracle.service import TaskOracle
from smart_todo.todos.kv_store import KeyValueStore
from smart_todo.todos.todo_store import TodoStore

from .fakes import Counter, FakeLLMClient


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the CLI bootstrap.

    A SimpleNamespace keeps unit tests isolated from the real environment.
    """
    return SimpleNamespace(
        app_name="smart-todo-test",
        log_level="DEBUG",
        api_key=None,
        base_url="",
        llm_models=["fake-model"],
        llm_connect_timeout=1.0,
        llm_read_timeout=1.0,
        data_dir=tmp_path,
        kv_db_path=tmp_path / "storage.sqlite3",
        storage_key="ai_todos",
        phase=5,
    )


@pytest.fixture()
def kv(settings: SimpleNamespace) -> KeyValueStore:
    return KeyValueStore(settings.kv_db_path)


@pytest.fixture()
def store(kv: KeyValueStore) -> TodoStore:
    """Persistent store with predictable ids ("id1", "id2", ...) and timestamps."""
    ticks = itertools.count(1_700_000_000_000)
    return TodoStore.open(kv, "ai_todos", id_factory=Counter(), clock=lambda: next(ticks))


@pytest.fixture()
def llm() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture()
def state(settings: SimpleNamespace, store: TodoStore, llm: FakeLLMClient) -> AppState:
    return AppState(
        settings=settings,
        store=store,
        oracle=TaskOracle(llm),
        phase=Phase.AGENTIC_HUB,
    )
