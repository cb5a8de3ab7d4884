"""Two-tier structured logging for contextweave.

Provides:
- Console: one short line per record on stderr
- Debug file: JSON Lines with the tier and file-count context the manager
  attaches to refresh and discovery records
"""

import json
import logging
import os
import platform
import sys
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Any

# ctx keys promoted to top-level fields so log lines can be filtered with jq
PROMOTED_CTX_KEYS = ("tier", "file_count")

LEVEL_SHORT = {
    "DEBUG": "DBG",
    "INFO": "INF",
    "WARNING": "WRN",
    "ERROR": "ERR",
    "CRITICAL": "CRT",
}


def _component(record: logging.LogRecord) -> str:
    # "contextweave.context.manager" -> "manager"
    return record.name.rsplit(".", 1)[-1]


class JSONFormatter(logging.Formatter):
    """Formats log records as JSON Lines.

    Output format:
    {"ts":"2026-02-04T10:15:32.123","level":"INFO","component":"manager",
     "msg":"Memory refreshed: 2 files","file_count":2,"ctx":{...}}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "component": _component(record),
            "msg": record.getMessage(),
        }

        ctx = getattr(record, "ctx", None)
        if isinstance(ctx, dict):
            for key in PROMOTED_CTX_KEYS:
                if key in ctx:
                    entry[key] = ctx[key]
        if ctx is not None:
            entry["ctx"] = ctx

        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """`HH:MM:SS [LVL] component: message`, colored on a terminal."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        level = LEVEL_SHORT.get(record.levelname, record.levelname[:3])
        time_str = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        msg = f"{time_str} [{level}] {_component(record)}: {record.getMessage()}"

        if self.use_colors:
            msg = f"{self.COLORS.get(record.levelname, '')}{msg}{self.RESET}"
        if record.exc_info:
            msg += "\n" + self.formatException(record.exc_info)
        return msg


def get_debug_log_path() -> Path:
    """Debug log location under $XDG_DATA_HOME."""
    data_home = os.environ.get("XDG_DATA_HOME", os.path.expanduser("~/.local/share"))
    return Path(data_home) / "contextweave" / "logs" / "debug.log"


def rotate_debug_log(log_path: Path) -> None:
    """Keep one previous run: debug.log -> debug.log.1."""
    if log_path.exists():
        log_path.replace(log_path.with_suffix(".log.1"))


def setup_logging(
    config: Any,
    console_level: str = "INFO",
    debug_to_file: bool = False,
    use_colors: bool = True,
) -> None:
    """Configure console and (optionally) JSON file logging.

    Args:
        config: Config object recorded in the session header
        console_level: Minimum level for console output
        debug_to_file: Whether to write JSON debug logs to file
        use_colors: Whether to use ANSI colors in console output
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)  # Handlers do the filtering
    root.handlers.clear()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(getattr(logging, console_level.upper()))
    console.setFormatter(ConsoleFormatter(use_colors=use_colors))
    root.addHandler(console)

    if debug_to_file:
        log_path = get_debug_log_path()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        rotate_debug_log(log_path)

        file_handler = logging.FileHandler(log_path, mode="w", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(JSONFormatter())
        root.addHandler(file_handler)

    for lib in ["mcp", "httpx", "asyncio"]:
        logging.getLogger(lib).setLevel(logging.WARNING)

    header = {
        "python_version": platform.python_version(),
        "platform": platform.system(),
        "config": asdict(config) if hasattr(config, "__dataclass_fields__") else str(config),
    }
    logging.getLogger("contextweave").debug("Session started", extra={"ctx": header})
