"""Logging setup: console or JSON lines on stderr, with structured extras."""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

# Fields copied from LogRecord extras into the output
EXTRA_FIELDS = [
    "stream",
    "streams",
    "msg_id",
    "group",
    "consumer",
    "function_name",
    "status_code",
    "function_error",
    "attempt",
    "delay_seconds",
    "batch_size",
    "succeeded",
    "failed",
    "ack_failed",
    "error_type",
    "error_message",
]

NOISY_LOGGERS = [
    "boto3",
    "botocore",
    "urllib3",
]


class JSONFormatter(logging.Formatter):
    """
    One JSON object per line for easy parsing with jq/grep.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for field in EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_entry[field] = value

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human readable line with extras appended as key=value."""

    # ANSI color codes
    COLORS = {
        "DEBUG": "\033[96m",
        "INFO": "\033[92m",
        "WARNING": "\033[93m",
        "ERROR": "\033[91m",
        "CRITICAL": "\033[95m",
    }
    RESET = "\033[0m"

    def __init__(self, use_color: bool = False) -> None:
        super().__init__(fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)

        extras = [
            f"{field}={getattr(record, field)}"
            for field in EXTRA_FIELDS
            if getattr(record, field, None) is not None
        ]
        if extras:
            # keep tracebacks on their own lines after the extras
            head, sep, tail = line.partition("\n")
            line = f"{head} [{' '.join(extras)}]{sep}{tail}"

        if self.use_color and record.levelname in self.COLORS:
            line = f"{self.COLORS[record.levelname]}{line}{self.RESET}"

        return line


def setup_logging(level: str = "INFO", fmt: str = "console", suppress_noisy: bool = True) -> logging.Logger:
    """
    Configure the root logger with a single stderr handler.

    Args:
        level: Root log level name (DEBUG, INFO, ...)
        fmt: "console" for human readable lines, "json" for one JSON object per line
        suppress_noisy: Quiet down boto and HTTP client loggers

    Returns:
        The configured root logger
    """
    root = logging.getLogger()
    resolved = logging.getLevelName(level.upper())
    root.setLevel(resolved if isinstance(resolved, int) else logging.INFO)

    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(ConsoleFormatter(use_color=sys.stderr.isatty()))
    root.addHandler(handler)

    if suppress_noisy:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    return root
