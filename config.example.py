# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets; keep the API key in .env (gitignored).

This file exists to make the repo self-documenting even without opening .env.
"""

ENV_VARS = {
    # App / logging
    "SMART_TODO_APP_NAME": "App display name (default: smart-todo).",
    "SMART_TODO_LOG_LEVEL": "Console logging level (default: INFO).",
    # AI oracle (OpenAI-compatible endpoint)
    "SMART_TODO_API_KEY": "API key; GEMINI_API_KEY and API_KEY are also accepted. Unset -> offline demo AI.",
    "SMART_TODO_BASE_URL": "Endpoint (default: Gemini's OpenAI-compatible URL).",
    "SMART_TODO_LLM_MODELS": "Comma/space separated list of models to try in order.",
    "SMART_TODO_LLM_CONNECT_TIMEOUT_SECONDS": "Connect timeout (default: 5).",
    "SMART_TODO_LLM_READ_TIMEOUT_SECONDS": "Read timeout (default: 60).",
    # Local data
    "SMART_TODO_DATA_DIR": "Local data dir for storage + logs (default: .local/smart_todo).",
    "SMART_TODO_KV_DB_PATH": "SQLite key-value file (default: <data_dir>/storage.sqlite3).",
    "SMART_TODO_STORAGE_KEY": "Key holding the serialized todo list (default: ai_todos).",
    # Presentation
    "SMART_TODO_PHASE": "Initial feature phase 1-5 (default: 1).",
}
