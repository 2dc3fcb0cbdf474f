# src/smart_todo/__init__.py

"""Single-user task list with AI-assisted breakdown, scheduling and insights."""

__version__ = "0.1.0"
