# src/smart_todo/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (storage/LLM/oracle).
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.ports import LLMClient
from ..core.state import AppState, Phase
from ..llm.client import OpenAICompatLLMClient
from ..llm.offline import OfflineLLMClient
from ..oracle.service import TaskOracle
from ..todos.kv_store import KeyValueStore
from ..todos.todo_store import TodoStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.kv_db_path.parent.mkdir(parents=True, exist_ok=True)


def build_llm_client(settings) -> tuple[LLMClient, bool]:
    """Return (client, offline). Falls back to the offline client when not configured."""
    try:
        return OpenAICompatLLMClient(settings), False
    except RuntimeError as e:
        logger.info("Using offline AI client: %s", e)
        return OfflineLLMClient(), True


def create_initial_state(*, settings=None, llm: LLMClient | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    offline = False
    if llm is None:
        llm, offline = build_llm_client(settings)

    kv = KeyValueStore(settings.kv_db_path)
    store = TodoStore.open(kv, key=settings.storage_key)

    try:
        phase = Phase(int(getattr(settings, "phase", 1)))
    except ValueError:
        phase = Phase.BASIC

    return AppState(
        settings=settings,
        store=store,
        oracle=TaskOracle(llm),
        phase=phase,
        offline=offline,
    )
