# src/smart_todo/llm/offline.py

from __future__ import annotations

import json
import re
from typing import Any

from ..core.ports import ChatMessage

_QUOTED_RE = re.compile(r'"([^"]+)"')
_TASK_LINE_RE = re.compile(r"^ID:\s*(?P<id>[^,]+),\s*Task:\s*(?P<text>.*)$", re.MULTILINE)


def _last_user_text(messages: list[ChatMessage]) -> str:
    for m in reversed(messages):
        if m.get("role") == "user":
            return m.get("content", "")
    return ""


class OfflineLLMClient:
    """
    Offline deterministic LLM client used for demos when no external API is configured.

    Behavior:
    - Breakdown prompts (schema with "subtasks") -> three generic steps
    - Schedule prompts (schema with "suggestions") -> one suggestion per "ID: ..., Task: ..." line
    - Anything else -> a fixed insight text
    """

    async def complete(
        self,
        messages: list[ChatMessage],
        *,
        system_prompt: str | None = None,
        json_schema: dict[str, Any] | None = None,
    ) -> str:
        user_text = _last_user_text(messages)
        props = (json_schema or {}).get("properties", {})

        if "subtasks" in props:
            m = _QUOTED_RE.search(user_text)
            task = m.group(1) if m else "the task"
            return json.dumps(
                {
                    "subtasks": [
                        {"text": f"Outline what '{task}' needs", "priority": "high", "estimatedTime": "15m"},
                        {"text": f"Do the main work for '{task}'", "priority": "medium", "estimatedTime": "1h"},
                        {"text": f"Review and wrap up '{task}'", "priority": "low", "estimatedTime": "30m"},
                    ]
                }
            )

        if "suggestions" in props:
            slots = ["Morning (9:00-10:00)", "Late morning (10:00-12:00)", "Afternoon (14:00-16:00)"]
            suggestions = []
            for i, m in enumerate(_TASK_LINE_RE.finditer(user_text)):
                suggestions.append(
                    {
                        "id": m.group("id").strip(),
                        "priority": "high" if i == 0 else "medium",
                        "estimatedTime": "30m",
                        "suggestedSlot": slots[i % len(slots)],
                    }
                )
            return json.dumps({"suggestions": suggestions})

        return (
            "Offline demo mode: no external AI is configured, so this summary is generic. "
            "Set SMART_TODO_API_KEY to get real insights.\n"
            "Tip of the day: start with the smallest pending task to build momentum."
        )
