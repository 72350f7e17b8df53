"""
Structured logging for comparisons.

Pipeline log calls attach their context through `extra=` (stage, document,
score, ...). JSONFormatter writes those fields into each log line so a log
file can be filtered per stage or per document; ConsoleFormatter shows the
stage inline.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

# Record attributes copied into JSON log lines when present
EXTRA_FIELDS = ["stage", "document", "count", "duration_ms", "score"]

HTTP_LOGGERS = ["httpx", "httpcore", "openai"]


class JSONFormatter(logging.Formatter):
    """One JSON object per record, carrying the pipeline context fields."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update({key: getattr(record, key) for key in EXTRA_FIELDS if hasattr(record, key)})

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable console lines, prefixed with the pipeline stage if any."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")
        stage = getattr(record, "stage", None)
        prefix = f"({stage}) " if stage else ""
        line = f"{timestamp} [{record.levelname:8}] {prefix}{record.getMessage()}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def setup_structured_logging(
    name: str,
    level: int = logging.INFO,
    log_dir: Optional[Path] = None,
    json_output: bool = False,
    console: bool = True,
) -> logging.Logger:
    """
    Configure a logger with a console handler and an optional log file.

    Calling this again replaces the handlers, so it is safe to call once per run.

    Args:
        name: Logger name (the package, or a script under it)
        level: Logging level for the logger and its handlers
        log_dir: Directory for a timestamped log file (None = no file)
        json_output: Write the file as JSON lines instead of plain text
        console: Log to stderr, leaving stdout for results

    Returns:
        The configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.handlers = []

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(ConsoleFormatter())
        logger.addHandler(console_handler)

    if log_dir:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / f"{name}_{datetime.now():%Y%m%d_%H%M%S}.log"

        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        if json_output:
            file_handler.setFormatter(JSONFormatter())
        else:
            file_handler.setFormatter(
                logging.Formatter("%(asctime)s [%(levelname)-8s] %(name)s: %(message)s")
            )
        logger.addHandler(file_handler)
        logger.debug(f"Logging to: {log_file}")

    return logger


def suppress_http_logging():
    """Keep request-level chatter from the OpenAI SDK and httpx out of the logs."""
    for name in HTTP_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
