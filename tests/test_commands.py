# tests/test_commands.py

from __future__ import annotations

import asyncio
import json

import pytest

from smart_todo.cli.commands import CommandRegistry, registry
from smart_todo.core.state import AppState, Phase
from smart_todo.oracle.service import TaskOracle
from smart_todo.todos.todo_api import breakdown_key

from .fakes import FakeLLMClient, GatedLLMClient


@pytest.mark.asyncio
async def test_command_registry_routes_sync_and_async_handlers(state: AppState) -> None:
    reg = CommandRegistry()
    called = {"sync": 0, "async": 0}

    def h_sync(state, args, emit):
        called["sync"] += 1
        return "sync:" + ",".join(args)

    async def h_async(state, args, emit):
        called["async"] += 1
        if emit is not None:
            emit("note")
        return "async"

    reg.register("a", h_sync, "a")
    reg.register("b", h_async, "b", aliases=["bee"])

    assert await reg.handle(state, "/a x y") == "sync:x,y"
    assert await reg.handle(state, "/BEE", emit=lambda _: None) == "async"
    assert called == {"sync": 1, "async": 1}


@pytest.mark.asyncio
async def test_command_registry_unknown_and_non_command(state: AppState) -> None:
    reg = CommandRegistry()
    assert await reg.handle(state, "hello") is None
    assert "Unknown command" in (await reg.handle(state, "/nope") or "")
    assert "Empty command" in (await reg.handle(state, "/") or "")


@pytest.mark.asyncio
async def test_phase_gating(state: AppState) -> None:
    state.phase = Phase.BASIC
    reply = await registry.handle(state, "/schedule")
    assert "Phase 4" in reply

    help_text = await registry.handle(state, "/help")
    assert "/add" in help_text
    assert "/breakdown" not in help_text

    assert "Switched to Phase 3" in await registry.handle(state, "/phase 3")
    assert state.phase is Phase.AI_BREAKDOWN
    assert "Usage" in await registry.handle(state, "/phase 9")


@pytest.mark.asyncio
async def test_basic_crud_flow_via_commands(state: AppState) -> None:
    reply = await registry.handle(state, "/add Buy milk")
    assert "Buy milk" in reply
    todo_id = state.store.todos[0].id

    await registry.handle(state, f"/sub {todo_id} Check fridge")
    sub_id = state.store.get(todo_id).sub_tasks[0].id

    await registry.handle(state, f"/subdone {todo_id} {sub_id}")
    assert state.store.get(todo_id).completed is True

    await registry.handle(state, f"/edit {todo_id} Buy oat milk")
    assert state.store.get(todo_id).text == "Buy oat milk"

    listing = await registry.handle(state, "/list")
    assert "[x]" in listing and "Check fridge" in listing

    await registry.handle(state, f"/collapse {todo_id}")
    assert "hidden" in await registry.handle(state, "/list")

    await registry.handle(state, f"/subdel {todo_id} {sub_id}")
    assert state.store.get(todo_id).sub_tasks == ()

    assert "deleted" in await registry.handle(state, f"/del {todo_id}")
    assert "No tasks yet" in await registry.handle(state, "/list")


@pytest.mark.asyncio
async def test_subedit_and_sort_commands(state: AppState) -> None:
    todo_id = state.store.add_task("Trip")[0].id
    state.store.add_subtask(todo_id, "slow")
    state.store.add_subtask(todo_id, "fast")
    slow, fast = state.store.get(todo_id).sub_tasks

    await registry.handle(state, f"/subedit {todo_id} {slow.id} low 2h Slow step")
    await registry.handle(state, f"/subedit {todo_id} {fast.id} high 10m Fast step")
    await registry.handle(state, f"/sort {todo_id} time")

    subs = state.store.get(todo_id).sub_tasks
    assert [st.text for st in subs] == ["Fast step", "Slow step"]
    assert "Usage" in await registry.handle(state, f"/subedit {todo_id} {slow.id} urgent 1h x")
    assert "Usage" in await registry.handle(state, f"/sort {todo_id} name")


@pytest.mark.asyncio
async def test_unknown_ids_are_reported(state: AppState) -> None:
    assert "No task matches" in await registry.handle(state, "/done nope")
    todo_id = state.store.add_task("x")[0].id
    assert "No subtask" in await registry.handle(state, f"/subdone {todo_id} nope")


@pytest.mark.asyncio
async def test_breakdown_command_runs_in_background(state: AppState, llm: FakeLLMClient) -> None:
    llm.texts = [
        json.dumps(
            {"subtasks": [{"text": "one", "priority": "high", "estimatedTime": "5m"}]}
        )
    ]
    todo_id = state.store.add_task("Plan trip")[0].id
    emitted: list[str] = []

    reply = await registry.handle(state, f"/breakdown {todo_id}", emit=emitted.append)
    assert "background" in reply

    for _ in range(20):
        if emitted:
            break
        await asyncio.sleep(0)

    assert emitted and "1 subtasks" in emitted[0]
    assert [st.text for st in state.store.get(todo_id).sub_tasks] == ["one"]
    assert state.processing == set()


@pytest.mark.asyncio
async def test_breakdown_in_flight_marker_is_visible_and_blocks_repeat(state: AppState) -> None:
    gated = GatedLLMClient(
        json.dumps({"subtasks": [{"text": "one", "priority": "low", "estimatedTime": "5m"}]})
    )
    state.oracle = TaskOracle(gated)
    todo_id = state.store.add_task("Plan trip")[0].id
    emitted: list[str] = []

    await registry.handle(state, f"/breakdown {todo_id}", emit=emitted.append)
    await gated.started.wait()

    assert state.processing == {breakdown_key(todo_id)}
    assert "already being broken down" in await registry.handle(state, f"/breakdown {todo_id}")

    gated.release.set()
    for _ in range(20):
        if emitted:
            break
        await asyncio.sleep(0)

    assert emitted and "1 subtasks" in emitted[0]
    assert state.processing == set()


@pytest.mark.asyncio
async def test_status_reports_counts(state: AppState) -> None:
    state.store.add_task("a")
    todo_id = state.store.add_task("b")[0].id
    state.store.toggle_task(todo_id)

    status = await registry.handle(state, "/status")

    assert "2 total, 1 completed, 1 pending" in status
