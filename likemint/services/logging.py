"""Logging helpers for likemint."""

from __future__ import annotations

import json
import logging
import os
import re
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable, Optional

from flask import Flask


class SensitiveDataFilter(logging.Filter):
    """Masks bearer tokens, API keys and wallet signatures in log lines."""

    _PATTERNS: Iterable[tuple[re.Pattern[str], str]] = (
        (re.compile(r"(authorization=)([^\s]+)", re.I), r"\1***"),
        (re.compile(r"(api[_-]?key=)([^&\s]+)", re.I), r"\1***"),
        (re.compile(r"(x-api-key['\"]?:\s*['\"]?)([^'\"\s,}]+)", re.I), r"\1***"),
        (re.compile(r"(signature=)(0x[0-9a-fA-F]+)", re.I), r"\1***"),
        (re.compile(r"Bearer\s+[A-Za-z0-9._-]+"), "Bearer ***"),
    )

    def __init__(self) -> None:
        super().__init__(name="SensitiveDataFilter")

    @staticmethod
    def _sanitize_value(value: object) -> object:
        if isinstance(value, str):
            sanitized = value
            for pattern, repl in SensitiveDataFilter._PATTERNS:
                sanitized = pattern.sub(repl, sanitized)
            return sanitized
        if isinstance(value, (list, tuple)):
            return type(value)(SensitiveDataFilter._sanitize_value(v) for v in value)
        if isinstance(value, dict):
            return {k: SensitiveDataFilter._sanitize_value(v) for k, v in value.items()}
        return value

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = self._sanitize_value(record.msg)
        if record.args:
            record.args = self._sanitize_value(record.args)
        return True


class JsonFormatter(logging.Formatter):
    """Formatter emitting one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        data = {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        if record.__dict__.get("extra"):
            data["extra"] = record.__dict__["extra"]
        return json.dumps(data, ensure_ascii=False)


def configure_logging(
    app: Flask,
    log_file_path: Path,
    *,
    level: str | int | None = None,
    sentry_dsn: str | None = None,
    sentry_environment: str | None = None,
) -> None:
    """Attach a rotating JSON file handler to the app and ``likemint`` loggers."""

    log_level = level or app.config.get("LOG_LEVEL") or "INFO"
    resolved_level = logging.getLevelName(str(log_level).upper())
    if isinstance(resolved_level, str):  # unknown name returns string
        resolved_level = logging.INFO

    app.logger.setLevel(resolved_level)
    package_logger = logging.getLogger("likemint")
    package_logger.setLevel(resolved_level)

    handler = get_rotating_log_handler(package_logger, log_file_path)
    if handler is None:
        log_file_path.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            log_file_path,
            maxBytes=50 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        package_logger.addHandler(handler)
        app.logger.addHandler(handler)

    handler.setLevel(resolved_level)
    if not any(isinstance(f, SensitiveDataFilter) for f in handler.filters):
        handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(JsonFormatter())

    if sentry_dsn:
        try:
            import sentry_sdk
            from sentry_sdk.integrations.logging import LoggingIntegration

            sentry_logging = LoggingIntegration(
                level=resolved_level,
                event_level=logging.ERROR,
            )
            sentry_sdk.init(
                dsn=sentry_dsn,
                environment=sentry_environment,
                integrations=[sentry_logging],
                traces_sample_rate=float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0")),
            )
            app.logger.info("Sentry initialised")
        except Exception as exc:  # noqa: BLE001
            app.logger.warning("Could not initialise Sentry: %s", exc)


def get_rotating_log_handler(logger: logging.Logger, log_file_path: Path) -> Optional[RotatingFileHandler]:
    """Return the rotating handler already attached for *log_file_path*, if any."""
    for handler in logger.handlers:
        if isinstance(handler, RotatingFileHandler):
            base_filename = getattr(handler, "baseFilename", "")
            if Path(base_filename).resolve() == log_file_path.resolve():
                return handler
    return None
