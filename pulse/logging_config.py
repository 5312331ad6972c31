"""JSON log lines tagged with an execution id and a component name."""

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

# Attributes every LogRecord carries; anything else was passed via `extra`.
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime", "taskName"}

COMPONENTS = (
    "main",
    "aggregator",
    "fetcher",
    "parser",
    "deduplicator",
    "cache",
    "registry",
    "report",
    "store",
    "config",
)


def new_execution_id() -> str:
    return f"exec_{datetime.now(UTC).strftime('%Y%m%d_%H%M%S_%f')}"


class StructuredFormatter(logging.Formatter):
    """Renders each record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        entry.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and key not in entry
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


class ExecutionLogger:
    """Wraps the `pulse.<component>` logger so every call carries context.

    Keyword arguments to the level methods become top-level JSON fields.
    """

    def __init__(self, execution_id: str, component: str = "main"):
        self.execution_id = execution_id
        self.component = component
        self.logger = logging.getLogger(f"pulse.{component}")
        self.started_at: datetime | None = None

    def _emit(self, level: int, message: str, fields: dict[str, Any]) -> None:
        context = {"execution_id": self.execution_id, "component": self.component}
        self.logger.log(level, message, extra={**context, **fields})

    def debug(self, message: str, **fields) -> None:
        self._emit(logging.DEBUG, message, fields)

    def info(self, message: str, **fields) -> None:
        self._emit(logging.INFO, message, fields)

    def warning(self, message: str, **fields) -> None:
        self._emit(logging.WARNING, message, fields)

    def error(self, message: str, **fields) -> None:
        self._emit(logging.ERROR, message, fields)

    def log_execution_start(self, **fields) -> None:
        self.started_at = datetime.now(UTC)
        self.info(
            f"Starting {self.component} execution",
            execution_start=self.started_at.isoformat(),
            **fields,
        )

    def log_execution_end(self, success: bool = True, **fields) -> None:
        """Close the span opened by log_execution_start, with its duration."""
        finished_at = datetime.now(UTC)
        duration = (
            (finished_at - self.started_at).total_seconds() if self.started_at else None
        )
        self.info(
            f"Completed {self.component} execution",
            execution_end=finished_at.isoformat(),
            execution_duration_seconds=duration,
            execution_success=success,
            **fields,
        )

    def log_source_processing(self, source_id: str, articles_count: int) -> None:
        self.info(
            f"Processed source: {articles_count} articles found",
            source_id=source_id,
            articles_count=articles_count,
        )

    def log_metrics(self, metrics: dict[str, Any]) -> None:
        self.info("Execution metrics", metrics=metrics)


def setup_structured_logging(log_level: str = "INFO", stream=None) -> None:
    """Route every Pulse logger through one JSON handler on `stream` (stdout by default)."""
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(StructuredFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers[:] = [handler]
    root_logger.setLevel(level)

    for component in COMPONENTS:
        component_logger = logging.getLogger(f"pulse.{component}")
        component_logger.setLevel(level)
        component_logger.propagate = True


def create_execution_logger(
    component: str, execution_id: str | None = None
) -> ExecutionLogger:
    return ExecutionLogger(execution_id or new_execution_id(), component)
