# tests/test_oracle.py

from __future__ import annotations

import json

import pytest

from smart_todo.llm.offline import OfflineLLMClient
from smart_todo.oracle.service import (
    BREAKDOWN_SCHEMA,
    SCHEDULE_SCHEMA,
    OracleResult,
    TaskOracle,
    parse_breakdown,
    parse_schedule,
)
from smart_todo.todos.todo_models import Priority, Todo

from .fakes import FakeLLMClient

BREAKDOWN_JSON = json.dumps(
    {
        "subtasks": [
            {"text": "Pick dates", "priority": "high", "estimatedTime": "15m"},
            {"text": "Book hotel", "priority": "Medium", "estimatedTime": "30m"},
            {"text": "Pack", "priority": "whenever", "estimatedTime": "1h"},
        ]
    }
)


def test_parse_breakdown_normalizes_priorities() -> None:
    drafts = parse_breakdown(BREAKDOWN_JSON)

    assert [d.text for d in drafts] == ["Pick dates", "Book hotel", "Pack"]
    assert [d.priority for d in drafts] == [Priority.HIGH, Priority.MEDIUM, Priority.MEDIUM]
    assert drafts[2].estimated_time == "1h"


def test_parse_breakdown_accepts_fenced_and_wrapped_json() -> None:
    fenced = f"```json\n{BREAKDOWN_JSON}\n```"
    chatty = f"Sure! Here you go: {BREAKDOWN_JSON} Good luck."
    assert len(parse_breakdown(fenced)) == 3
    assert len(parse_breakdown(chatty)) == 3


def test_parse_breakdown_drops_incomplete_items() -> None:
    raw = json.dumps(
        {
            "subtasks": [
                {"text": "ok", "priority": "low", "estimatedTime": "5m"},
                {"text": "no time", "priority": "low"},
                {"text": "  ", "priority": "low", "estimatedTime": "5m"},
                "not an object",
            ]
        }
    )
    assert [d.text for d in parse_breakdown(raw)] == ["ok"]


@pytest.mark.parametrize("raw", ["", "no json here", '{"items": []}', '{"subtasks": "x"}'])
def test_parse_breakdown_rejects_wrong_shape(raw: str) -> None:
    with pytest.raises(ValueError):
        parse_breakdown(raw)


def test_parse_schedule_accepts_object_or_bare_array() -> None:
    items = [
        {"id": "a", "priority": "high", "estimatedTime": "30m", "suggestedSlot": "Morning"},
        {"id": "b", "priority": "low", "estimatedTime": "1h"},
    ]
    wrapped = parse_schedule(json.dumps({"suggestions": items}))
    bare = parse_schedule(json.dumps(items))

    assert wrapped == bare
    assert [(s.id, s.priority, s.suggested_slot) for s in wrapped] == [("a", Priority.HIGH, "Morning")]


@pytest.mark.asyncio
async def test_breakdown_sends_prompt_with_schema() -> None:
    llm = FakeLLMClient(BREAKDOWN_JSON)
    oracle = TaskOracle(llm)

    res = await oracle.request_breakdown("Plan trip")

    assert res.ok
    assert len(res.value) == 3
    call = llm.calls[0]
    assert call["json_schema"] is BREAKDOWN_SCHEMA
    assert '"Plan trip"' in call["messages"][0]["content"]
    assert call["system_prompt"]


@pytest.mark.asyncio
async def test_breakdown_failures_degrade_to_empty() -> None:
    broken = TaskOracle(FakeLLMClient("definitely not json"))
    down = TaskOracle(FakeLLMClient(error=RuntimeError("All LLM models failed.")))
    crashing = TaskOracle(FakeLLMClient(error=KeyError("boom")))

    assert await broken.breakdown("x") == []
    assert await down.breakdown("x") == []
    assert await crashing.breakdown("x") == []

    res = await down.request_breakdown("x")
    assert not res.ok
    assert res.error == "All LLM models failed."


@pytest.mark.asyncio
async def test_deeply_nested_reply_degrades_to_empty() -> None:
    nested_list = TaskOracle(FakeLLMClient("[" * 100000))
    nested_schedule = TaskOracle(FakeLLMClient('{"suggestions":' + "[" * 100000))

    assert await nested_list.breakdown("Plan trip") == []
    assert await nested_schedule.suggest_schedule([("t1", "a")]) == []

    res = await nested_list.request_breakdown("Plan trip")
    assert not res.ok


@pytest.mark.asyncio
async def test_ok_empty_and_failed_are_distinguishable() -> None:
    empty = await TaskOracle(FakeLLMClient('{"subtasks": []}')).request_breakdown("x")
    failed = await TaskOracle(FakeLLMClient("nope")).request_breakdown("x")

    assert empty.ok and empty.value == []
    assert not failed.ok and failed.value is None
    assert empty.unwrap_or(["fallback"]) == []
    assert failed.unwrap_or(["fallback"]) == ["fallback"]


@pytest.mark.asyncio
async def test_schedule_prompt_lists_ids_and_empty_input_skips_call() -> None:
    llm = FakeLLMClient(json.dumps({"suggestions": []}))
    oracle = TaskOracle(llm)

    assert await oracle.suggest_schedule([]) == []
    assert llm.calls == []

    await oracle.suggest_schedule([("a1", "Write report"), ("b2", "Call mom")])
    prompt = llm.calls[0]["messages"][0]["content"]
    assert "ID: a1, Task: Write report" in prompt
    assert "ID: b2, Task: Call mom" in prompt
    assert llm.calls[0]["json_schema"] is SCHEDULE_SCHEMA


@pytest.mark.asyncio
async def test_insights_prompt_carries_counts_and_text_is_free_form() -> None:
    llm = FakeLLMClient("  Good progress. Tip: batch small tasks.  ")
    oracle = TaskOracle(llm)
    todos = [
        Todo(id="a", text="Done thing", created_at=1, completed=True),
        Todo(id="b", text="Open thing", created_at=1),
        Todo(id="c", text="Other", created_at=1),
    ]

    text = await oracle.project_insights(todos)

    assert text == "Good progress. Tip: batch small tasks."
    call = llm.calls[0]
    assert call["json_schema"] is None
    assert "Completed: 1, Pending: 2" in call["messages"][0]["content"]
    assert '"Done thing"' in call["messages"][0]["content"]


@pytest.mark.asyncio
async def test_insights_failure_is_absent() -> None:
    assert await TaskOracle(FakeLLMClient("   ")).project_insights([]) is None
    assert await TaskOracle(FakeLLMClient(error=RuntimeError("x"))).project_insights([]) is None


@pytest.mark.asyncio
async def test_offline_client_round_trips_through_oracle() -> None:
    oracle = TaskOracle(OfflineLLMClient())

    drafts = await oracle.breakdown("Plan trip")
    suggestions = await oracle.suggest_schedule([("a", "A"), ("b", "B")])
    insight = await oracle.project_insights([])

    assert len(drafts) == 3
    assert "Plan trip" in drafts[0].text
    assert [s.id for s in suggestions] == ["a", "b"]
    assert insight


def test_oracle_result_helpers() -> None:
    assert OracleResult.succeeded(3).unwrap_or(0) == 3
    assert OracleResult.failed("x").unwrap_or(0) == 0
