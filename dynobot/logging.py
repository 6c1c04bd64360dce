from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Generator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from dynobot.config import get_log_path, load_config

# Correlation ID tying together every log line of one command invocation
_correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")


def get_correlation_id() -> str:
    return _correlation_id.get()


@contextmanager
def correlation_context(cid: str | None = None) -> Generator[str, None, None]:
    """Run a block of code under its own correlation ID."""
    token = _correlation_id.set(cid or uuid.uuid4().hex[:12])
    try:
        yield _correlation_id.get()
    finally:
        _correlation_id.reset(token)


class CorrelationFilter(logging.Filter):
    """Logging filter that adds correlation_id to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or "-"
        return True


class StructuredFormatter(logging.Formatter):
    """JSON structured log formatter for machine parsing."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "correlation_id": getattr(record, "correlation_id", "-"),
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


TEXT_FORMAT = "%(asctime)s | %(levelname)s | %(correlation_id)s | %(name)s | %(message)s"
LOG_MAX_BYTES = 5 * 1024 * 1024
LOG_BACKUPS = 3


def build_handlers(log_path: Path, *, use_json: bool = False) -> list[logging.Handler]:
    """Console and rotating-file handlers sharing one formatter and correlation filter."""
    fmt = StructuredFormatter() if use_json else logging.Formatter(TEXT_FORMAT)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handlers: list[logging.Handler] = [
        logging.StreamHandler(),
        RotatingFileHandler(
            log_path, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8"
        ),
    ]
    for handler in handlers:
        handler.setFormatter(fmt)
        handler.addFilter(CorrelationFilter())
    return handlers


def configure_logging(config: dict[str, Any] | None = None) -> None:
    cfg = config or load_config()
    log_cfg = cfg.get("logging", {}) if isinstance(cfg.get("logging"), dict) else {}
    root = logging.getLogger()
    root.setLevel(getattr(logging, str(log_cfg.get("level", "INFO")).upper(), logging.INFO))

    # Handlers are installed once; later calls only adjust the level.
    if root.handlers:
        return

    for handler in build_handlers(get_log_path(cfg), use_json=bool(log_cfg.get("json_format"))):
        root.addHandler(handler)
