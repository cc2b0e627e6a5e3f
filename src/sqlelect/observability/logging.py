"""Structured logging for election processes.

Provides:
- JSON-formatted logs for log aggregation systems (ELK, Loki, etc.)
- Human-readable console logs for development
- Election context (election name, candidate) on every record

Usage:
    from sqlelect.observability.logging import ElectionLogContext, configure_logging

    configure_logging(json_format=True, level="INFO")

    with ElectionLogContext(election_name="job-x", candidate="worker/h1/abc"):
        logger.info("Campaigning")  # Includes election and candidate
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

# Context variables for election correlation
election_name_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "election_name", default=""
)
candidate_var: contextvars.ContextVar[str] = contextvars.ContextVar("candidate", default="")

# Standard LogRecord attributes, never copied as extra fields
_STANDARD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    }
)


class JsonFormatter(logging.Formatter):
    """JSON log formatter with election context.

    Output format:
    {
        "timestamp": "2026-10-18T12:34:56.789Z",
        "level": "INFO",
        "logger": "sqlelect.loop",
        "message": "Elected as leader",
        "module": "loop",
        "function": "_handle_claimed",
        "line": 42,
        "election": "job-x",
        "candidate": "worker/h1/abc"
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        election_name = election_name_var.get()
        if election_name:
            log_data["election"] = election_name

        candidate = candidate_var.get()
        if candidate:
            log_data["candidate"] = candidate

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        # Extra fields passed via logger.x(..., extra={...})
        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                try:
                    json.dumps(value)  # Verify it's JSON serializable
                    log_data[key] = value
                except (TypeError, ValueError):
                    log_data[key] = str(value)

        return json.dumps(log_data, default=str, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """Human-readable formatter for development.

    Output format:
    2026-10-18 12:34:56 | INFO | sqlelect.loop | Elected as leader | election=job-x
    """

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        """Format log record for console output."""
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        level = record.levelname

        if self.use_colors:
            color = self.COLORS.get(level, "")
            level = f"{color}{level}{self.RESET}"

        message = record.getMessage()

        election_name = election_name_var.get()
        context = f" | election={election_name}" if election_name else ""

        result = f"{timestamp} | {level:8} | {record.name} | {message}{context}"

        if record.exc_info:
            result += "\n" + self.formatException(record.exc_info)

        return result


def configure_logging(
    json_format: bool = True,
    level: str = "INFO",
    use_colors: bool = True,
) -> None:
    """Configure process-wide logging.

    Args:
        json_format: Use JSON format (recommended for production)
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        use_colors: Use ANSI colors in console format
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)

    if json_format:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(ConsoleFormatter(use_colors=use_colors))

    root_logger.addHandler(handler)

    # SQL echo is noisy at INFO
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


class ElectionLogContext:
    """Context manager binding election context to log records.

    Usage:
        with ElectionLogContext(election_name="job-x", candidate="worker/h1/abc"):
            logger.info("Campaigning")
    """

    def __init__(self, election_name: str | None = None, candidate: str | None = None) -> None:
        self.election_name = election_name
        self.candidate = candidate
        self._tokens: list[tuple[contextvars.ContextVar[str], contextvars.Token[str]]] = []

    def __enter__(self) -> "ElectionLogContext":
        if self.election_name is not None:
            self._tokens.append((election_name_var, election_name_var.set(self.election_name)))
        if self.candidate is not None:
            self._tokens.append((candidate_var, candidate_var.set(self.candidate)))
        return self

    def __exit__(self, *args: Any) -> None:
        for var, token in reversed(self._tokens):
            var.reset(token)
        self._tokens.clear()
