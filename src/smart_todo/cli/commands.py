# src/smart_todo/cli/commands.py

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from collections.abc import Awaitable, Callable

from ..core.state import AppState, Phase
from ..todos.todo_api import breakdown_key, fetch_insights, run_breakdown, run_smart_schedule
from ..todos.todo_models import Priority, SubTask, Todo
from ..todos.todo_store import SortCriteria

CommandEmitter = Callable[[str], None]
CommandHandler = Callable[
    [AppState, list[str], CommandEmitter | None], str | Awaitable[str]
]

logger = logging.getLogger(__name__)

SHORT_ID = 8

# Keep references so background breakdowns are not garbage-collected mid-flight.
_background: set[asyncio.Task] = set()


class CommandRegistry:
    """Slash-command registry used by the console connector (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}
        self._phase: dict[str, Phase] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        *,
        phase: Phase = Phase.BASIC,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        for key in [name.lower(), *(a.lower() for a in aliases)]:
            self._handlers[key] = handler
            self._phase[key] = phase
        self._help[name.lower()] = help_text

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        required = self._phase[name]
        if not state.phase_at_least(required):
            return f"/{name} is available from {required.title}. Use /phase {int(required)}."

        result = handler(state, args, emit)
        if inspect.isawaitable(result):
            result = await result
        return result

    def build_help(self, state: AppState | None = None) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            if state is not None and not state.phase_at_least(self._phase[name]):
                continue
            lines.append(f"  /{name} - {help_text}")
        lines.append("  /exit - Quit.")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- id lookup ----

def _resolve(items: list, ref: str):
    """Exact id, or a unique id prefix."""
    ref = ref.strip()
    if not ref:
        return None
    for item in items:
        if item.id == ref:
            return item
    matches = [item for item in items if item.id.startswith(ref)]
    return matches[0] if len(matches) == 1 else None


def _todo(state: AppState, ref: str) -> Todo | None:
    return _resolve(state.store.todos, ref)


def _subtask(todo: Todo, ref: str) -> SubTask | None:
    return _resolve(list(todo.sub_tasks), ref)


# ---- rendering ----

def render_todo(state: AppState, todo: Todo) -> list[str]:
    mark = "x" if todo.completed else " "
    line = f"[{mark}] {todo.id[:SHORT_ID]} {todo.text}"
    if state.phase_at_least(Phase.PRIORITY):
        line += f" ({todo.priority.value})"
    if state.phase_at_least(Phase.SMART_SCHEDULE):
        if todo.estimated_time:
            line += f" ~{todo.estimated_time}"
        if todo.suggested_slot:
            line += f" @ {todo.suggested_slot}"
    if breakdown_key(todo.id) in state.processing:
        line += " [breaking down...]"

    lines = [line]
    if not todo.sub_tasks:
        return lines

    done = sum(1 for st in todo.sub_tasks if st.completed)
    if todo.collapsed:
        lines.append(f"    ({done}/{len(todo.sub_tasks)} subtasks hidden)")
        return lines

    for st in todo.sub_tasks:
        smark = "x" if st.completed else " "
        sline = f"    [{smark}] {st.id[:SHORT_ID]} {st.text}"
        if state.phase_at_least(Phase.PRIORITY):
            extra = (st.priority or Priority.MEDIUM).value
            if st.estimated_time:
                extra += f", {st.estimated_time}"
            sline += f" ({extra})"
        lines.append(sline)
    return lines


def render_list(state: AppState) -> str:
    todos = state.store.todos
    if not todos:
        return "No tasks yet. Add one with /add <text>."
    lines: list[str] = []
    for todo in todos:
        lines.extend(render_todo(state, todo))
    return "\n".join(lines)


# ---- handlers ----

def cmd_help(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    return registry.build_help(state)


def cmd_status(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    completed, pending = state.store.counts()
    models = ", ".join(list(getattr(state.settings, "llm_models", []) or []))
    ai = "offline demo" if state.offline else f"online ({models})"
    busy = ", ".join(sorted(state.processing)) or "none"
    return (
        "Status:\n"
        f"  {state.phase.title}\n"
        f"  Tasks: {len(state.store)} total, {completed} completed, {pending} pending\n"
        f"  AI: {ai}\n"
        f"  In flight: {busy}"
    )


def cmd_phase(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /phase      -> show current phase
    /phase 1-5  -> switch phase
    """
    if not args:
        return "\n".join(
            f"{'*' if p == state.phase else ' '} {p.title}" for p in Phase
        )
    try:
        state.phase = Phase(int(args[0]))
    except ValueError:
        return "Usage: /phase <1-5>."
    return f"Switched to {state.phase.title}."


def cmd_list(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    return render_list(state)


def cmd_add(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    text = " ".join(args).strip()
    if not text:
        return "Usage: /add <text>."
    todo = state.store.add_task(text)[0]
    return f"Added {todo.id[:SHORT_ID]} {todo.text}"


def cmd_done(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 1:
        return "Usage: /done <id>."
    todo = _todo(state, args[0])
    if todo is None:
        return f"No task matches '{args[0]}'."
    state.store.toggle_task(todo.id)
    updated = state.store.get(todo.id)
    status = "completed" if updated and updated.completed else "reopened"
    return f"Task {todo.id[:SHORT_ID]} {status}."


def cmd_delete(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 1:
        return "Usage: /del <id>."
    todo = _todo(state, args[0])
    if todo is None:
        return f"No task matches '{args[0]}'."
    state.store.delete_task(todo.id)
    return f"Task {todo.id[:SHORT_ID]} deleted."


def cmd_edit(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) < 2:
        return "Usage: /edit <id> <text>."
    todo = _todo(state, args[0])
    if todo is None:
        return f"No task matches '{args[0]}'."
    state.store.edit_task_text(todo.id, " ".join(args[1:]))
    return "\n".join(render_todo(state, state.store.get(todo.id) or todo))


def cmd_collapse(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 1:
        return "Usage: /collapse <id>."
    todo = _todo(state, args[0])
    if todo is None:
        return f"No task matches '{args[0]}'."
    state.store.toggle_collapse(todo.id)
    return "\n".join(render_todo(state, state.store.get(todo.id) or todo))


def cmd_sub(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) < 2:
        return "Usage: /sub <id> <text>."
    todo = _todo(state, args[0])
    if todo is None:
        return f"No task matches '{args[0]}'."
    state.store.add_subtask(todo.id, " ".join(args[1:]))
    return "\n".join(render_todo(state, state.store.get(todo.id) or todo))


def _todo_and_subtask(
    state: AppState, args: list[str]
) -> tuple[Todo | None, SubTask | None, str | None]:
    todo = _todo(state, args[0])
    if todo is None:
        return None, None, f"No task matches '{args[0]}'."
    st = _subtask(todo, args[1])
    if st is None:
        return todo, None, f"No subtask of {todo.id[:SHORT_ID]} matches '{args[1]}'."
    return todo, st, None


def cmd_subdone(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 2:
        return "Usage: /subdone <id> <subtask id>."
    todo, st, err = _todo_and_subtask(state, args)
    if err or todo is None or st is None:
        return err or "Not found."
    state.store.toggle_subtask(todo.id, st.id)
    return "\n".join(render_todo(state, state.store.get(todo.id) or todo))


def cmd_subdel(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 2:
        return "Usage: /subdel <id> <subtask id>."
    todo, st, err = _todo_and_subtask(state, args)
    if err or todo is None or st is None:
        return err or "Not found."
    state.store.delete_subtask(todo.id, st.id)
    return "\n".join(render_todo(state, state.store.get(todo.id) or todo))


def cmd_subedit(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /subedit <id> <subtask id> <low|medium|high> <time|-> <text>
    """
    usage = "Usage: /subedit <id> <subtask id> <low|medium|high> <time|-> <text>."
    if len(args) < 5:
        return usage
    prio = Priority.parse(args[2])
    if prio is None:
        return usage
    todo, st, err = _todo_and_subtask(state, args)
    if err or todo is None or st is None:
        return err or "Not found."
    est = "" if args[3] == "-" else args[3]
    state.store.edit_subtask(todo.id, st.id, " ".join(args[4:]), prio, est)
    return "\n".join(render_todo(state, state.store.get(todo.id) or todo))


def cmd_sort(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 2 or args[1].lower() not in {c.value for c in SortCriteria}:
        return "Usage: /sort <id> priority|time."
    todo = _todo(state, args[0])
    if todo is None:
        return f"No task matches '{args[0]}'."
    state.store.sort_subtasks(todo.id, args[1].lower())
    return "\n".join(render_todo(state, state.store.get(todo.id) or todo))


def cmd_breakdown(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 1:
        return "Usage: /breakdown <id>."
    todo = _todo(state, args[0])
    if todo is None:
        return f"No task matches '{args[0]}'."
    if breakdown_key(todo.id) in state.processing:
        return f"Task {todo.id[:SHORT_ID]} is already being broken down."

    short = todo.id[:SHORT_ID]

    def _done(task: asyncio.Task) -> None:
        _background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background breakdown crashed.", exc_info=exc)
            msg = f"[AI] Breakdown of {short} failed."
        else:
            res = task.result()
            if not res.ok:
                msg = f"[AI] Breakdown of {short} failed: {res.error}"
            elif not res.value:
                msg = f"[AI] No subtasks suggested for {short}."
            else:
                msg = f"[AI] {short} broken into {len(res.value)} subtasks."
        if emit is not None:
            with contextlib.suppress(Exception):
                emit(msg)

    task = asyncio.get_running_loop().create_task(run_breakdown(state, todo.id))
    _background.add(task)
    task.add_done_callback(_done)
    return f"Breaking down {short} in the background..."


async def cmd_schedule(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not len(state.store):
        return "Nothing to schedule."
    if emit is not None:
        with contextlib.suppress(Exception):
            emit("[AI] Asking for a schedule...")
    res = await run_smart_schedule(state)
    if not res.ok:
        return f"[AI] Scheduling failed: {res.error}"
    if not res.value:
        return "[AI] No schedule suggestions returned."
    return f"[AI] {len(res.value)} suggestions applied.\n" + render_list(state)


async def cmd_insights(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if emit is not None:
        with contextlib.suppress(Exception):
            emit("[AI] Analyzing your list...")
    res = await fetch_insights(state)
    if not res.ok:
        return f"[AI] Insights unavailable: {res.error}"
    return f"[AI] {state.insight}"


async def cancel_background() -> None:
    """Cancel pending background oracle calls (used on shutdown)."""
    tasks = list(_background)
    for t in tasks:
        t.cancel()
    if tasks:
        await asyncio.gather(*tasks, return_exceptions=True)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show phase, task counts and AI mode.")
registry.register("phase", cmd_phase, help_text="Show or switch phase: /phase [1-5].")
registry.register("list", cmd_list, help_text="List tasks.", aliases=["ls"])
registry.register("add", cmd_add, help_text="Add a task: /add <text>.")
registry.register("done", cmd_done, help_text="Toggle task completion: /done <id>.")
registry.register("del", cmd_delete, help_text="Delete a task: /del <id>.", aliases=["rm"])
registry.register("edit", cmd_edit, help_text="Edit task text: /edit <id> <text>.")
registry.register("collapse", cmd_collapse, help_text="Show/hide subtasks: /collapse <id>.")
registry.register("sub", cmd_sub, help_text="Add a subtask: /sub <id> <text>.")
registry.register("subdone", cmd_subdone, help_text="Toggle a subtask: /subdone <id> <sid>.")
registry.register("subdel", cmd_subdel, help_text="Delete a subtask: /subdel <id> <sid>.")
registry.register(
    "subedit",
    cmd_subedit,
    help_text="Edit a subtask: /subedit <id> <sid> <priority> <time|-> <text>.",
    phase=Phase.PRIORITY,
)
registry.register(
    "sort", cmd_sort, help_text="Sort subtasks: /sort <id> priority|time.", phase=Phase.PRIORITY
)
registry.register(
    "breakdown",
    cmd_breakdown,
    help_text="AI: split a task into subtasks: /breakdown <id>.",
    phase=Phase.AI_BREAKDOWN,
)
registry.register(
    "schedule",
    cmd_schedule,
    help_text="AI: suggest priority, time and slot for every task.",
    phase=Phase.SMART_SCHEDULE,
)
registry.register(
    "insights",
    cmd_insights,
    help_text="AI: short productivity summary of the list.",
    phase=Phase.AGENTIC_HUB,
)
