"""Structured JSON logging and optimizer run ID context."""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Iterator

from mgdispatch.config import settings

run_id_var: ContextVar[str] = ContextVar("run_id", default="")


class JSONFormatter(logging.Formatter):
    """Structured JSON log formatter with run ID injection."""

    def format(self, record: logging.LogRecord) -> str:
        import json

        log_entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        rid = run_id_var.get("")
        if rid:
            log_entry["run_id"] = rid

        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = self.formatException(record.exc_info)

        # Include extra fields
        for key in ("optimizer", "iteration", "best_cost", "alpha", "n_evaluations"):
            val = getattr(record, key, None)
            if val is not None:
                log_entry[key] = val

        return json.dumps(log_entry)


@contextmanager
def optimizer_run(run_id: str | None = None) -> Iterator[str]:
    """Bind a run ID to every log record emitted inside the block."""
    rid = run_id or str(uuid.uuid4())[:8]
    token = run_id_var.set(rid)
    try:
        yield rid
    finally:
        run_id_var.reset(token)


def setup_logging(json_format: bool | None = None, level: str | int | None = None) -> None:
    """Configure root logger. Use json_format=True for machine-readable runs.

    Unset arguments fall back to ``settings.log_json`` and ``settings.log_level``.
    """
    if json_format is None:
        json_format = settings.log_json
    if level is None:
        level = settings.log_level.upper()

    root = logging.getLogger()
    root.setLevel(level)

    handler = logging.StreamHandler()
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

    # Remove existing handlers to avoid duplicates
    root.handlers.clear()
    root.addHandler(handler)
