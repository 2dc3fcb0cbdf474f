# src/smart_todo/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps storage and LLM providers swappable and makes testing easier.
"""

from typing import Any, Protocol

ChatMessage = dict[str, str]
# OpenAI-style chat messages: {"role": "...", "content": "..."}.


class LLMClient(Protocol):
    """
    Single-shot chat completion client (OpenAI-compatible).

    When `json_schema` is given the provider is asked for schema-constrained JSON;
    the returned text is still untrusted and must be parsed defensively.
    """

    async def complete(
            self,
            messages: list[ChatMessage],
            *,
            system_prompt: str | None = None,
            json_schema: dict[str, Any] | None = None,
    ) -> str: ...


class BlobStore(Protocol):
    """Local key-value storage holding whole serialized records."""

    def get(self, key: str) -> str | None: ...
    def set(self, key: str, value: str) -> None: ...
