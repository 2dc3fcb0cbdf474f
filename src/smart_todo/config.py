# src/smart_todo/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time (no API key means offline demo oracle).
- Every consumer also accepts an injected settings object.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

ENV_PREFIX = "SMART_TODO"

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"
DEFAULT_MODELS = ["gemini-3-flash-preview", "gemini-2.5-flash"]


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except ImportError:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [p.strip() for p in raw.replace(",", " ").split() if p.strip()]


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Oracle (OpenAI-compatible endpoint) ----
    api_key: str | None
    base_url: str
    llm_models: list[str]
    llm_connect_timeout: float
    llm_read_timeout: float

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    kv_db_path: Path
    storage_key: str

    # ---- Presentation ----
    phase: int

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "smart-todo") or "smart-todo"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        api_key = _first_env(_k("API_KEY"), "GEMINI_API_KEY", "API_KEY", default=None)
        base_url = _env(_k("BASE_URL"), DEFAULT_BASE_URL)
        llm_models = _env_list(_k("LLM_MODELS"), DEFAULT_MODELS)

        connect_timeout = _env_float(_k("LLM_CONNECT_TIMEOUT_SECONDS"), 5.0)
        read_timeout = _env_float(_k("LLM_READ_TIMEOUT_SECONDS"), 60.0)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/smart_todo"))
        kv_db_path = _env_path(_k("KV_DB_PATH"), data_dir / "storage.sqlite3")
        storage_key = _env(_k("STORAGE_KEY"), "ai_todos").strip() or "ai_todos"

        # Phases are 1..5; anything else falls back to the first one.
        phase = _env_int(_k("PHASE"), 1)
        if phase < 1 or phase > 5:
            phase = 1

        return Settings(
            app_name=app_name,
            log_level=log_level,
            api_key=api_key,
            base_url=base_url,
            llm_models=llm_models,
            llm_connect_timeout=connect_timeout,
            llm_read_timeout=read_timeout,
            data_dir=data_dir,
            kv_db_path=kv_db_path,
            storage_key=storage_key,
            phase=phase,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
