# src/smart_todo/logging_setup.py

from __future__ import annotations

import logging
import sys
from collections.abc import Mapping
from pathlib import Path

PROJECT_LOGGER = "smart_todo"
LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

# HTTP client chatter: one line per oracle request at INFO.
QUIET_LOGGERS: Mapping[str, int] = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "openai": logging.WARNING,
}


class _ProjectOnlyFilter(logging.Filter):
    """Console filter: project records pass, anything else only at `min_foreign_level`+."""

    def __init__(self, project: str = PROJECT_LOGGER, min_foreign_level: int = logging.ERROR) -> None:
        super().__init__()
        self.project = project
        self.min_foreign_level = min_foreign_level

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name == self.project or record.name.startswith(self.project + "."):
            return True
        return record.levelno >= self.min_foreign_level


def setup_logging(
    *,
    log_dir: str | Path = ".local/smart_todo",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    quiet: Mapping[str, int] = QUIET_LOGGERS,
) -> Path:
    """
    Send task and oracle activity to stderr and to `<log_dir>/smart_todo.log`.

    The console only shows third-party records at ERROR+; the file keeps them,
    except for the loggers in `quiet`, which are capped at the given level.
    Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "smart_todo.log"

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()

    fmt = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(_ProjectOnlyFilter())
    root.addHandler(console)

    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    for name, level in quiet.items():
        logging.getLogger(name).setLevel(level)

    logging.captureWarnings(True)
    return log_file
