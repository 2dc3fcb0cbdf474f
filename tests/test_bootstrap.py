# tests/test_bootstrap.py

from __future__ import annotations

from types import SimpleNamespace

from smart_todo.cli.bootstrap import create_initial_state
from smart_todo.core.state import Phase
from smart_todo.llm.offline import OfflineLLMClient


def test_bootstrap_without_api_key_uses_offline_client(settings: SimpleNamespace) -> None:
    state = create_initial_state(settings=settings)

    assert state.offline is True
    assert state.phase is Phase.AGENTIC_HUB
    assert state.store.todos == []


def test_state_survives_restart(settings: SimpleNamespace) -> None:
    first = create_initial_state(settings=settings, llm=OfflineLLMClient())
    first.store.add_task("Persist me")

    second = create_initial_state(settings=settings, llm=OfflineLLMClient())

    assert [t.text for t in second.store.todos] == ["Persist me"]


def test_invalid_phase_falls_back_to_basic(settings: SimpleNamespace) -> None:
    settings.phase = 42
    state = create_initial_state(settings=settings, llm=OfflineLLMClient())
    assert state.phase is Phase.BASIC
