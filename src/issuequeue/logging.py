"""Structured JSON logging for issuequeue."""

from __future__ import annotations

import json
import logging
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

from .errors import redact

_RESERVED_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


def _extras(record: logging.LogRecord) -> dict[str, Any]:
    # Everything passed through ``extra=`` lands on the record as attributes
    return {k: v for k, v in record.__dict__.items() if k not in _RESERVED_ATTRS and not k.startswith("_")}


class TextFormatter(logging.Formatter):
    """Human-readable lines with the structured fields appended as ``key=value``."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)s %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = " ".join(f"{k}={v}" for k, v in sorted(_extras(record).items()))
        return f"{line} [{fields}]" if fields else line


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for k, v in _extras(record).items():
            entry.setdefault(k, v)
        return json.dumps(entry, default=str)


class StructuredLogger:
    def __init__(
        self, name: str = "issuequeue", json_logging: bool = False, level: str = "INFO"
    ) -> None:
        self._logger = logging.getLogger(name)
        self._logger.setLevel(getattr(logging, level.upper(), logging.INFO))
        for h in list(self._logger.handlers):
            self._logger.removeHandler(h)
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(JSONFormatter() if json_logging else TextFormatter())
        self._logger.addHandler(handler)
        self._logger.propagate = False
        self._dedupe_enabled = json_logging
        self._last_signature: tuple[int, str, tuple[tuple[str, str], ...]] | None = None

    def _emit(self, level: int, message: str, extra: dict[str, Any]) -> None:
        if self._dedupe_enabled:
            signature = (
                level,
                message,
                tuple(sorted((k, repr(v)) for k, v in extra.items())),
            )
            if signature == self._last_signature:
                return
            self._last_signature = signature
        self._logger.log(level, message, extra=extra)

    def log_operation(self, operation: str, **kw: Any) -> None:
        extra = {"operation": operation, **kw}
        self._emit(logging.INFO, f"Operation: {operation}", extra)

    def log_record_action(
        self,
        action: str,
        record_id: int,
        number: int | None = None,
        **kw: Any,
    ) -> None:
        extra: dict[str, Any] = {
            "operation": f"record_{action}",
            "record_id": record_id,
            **kw,
        }
        if number is not None:
            extra["issue_number"] = number
        msg = f"record {action} {record_id}" + (f" #{number}" if number is not None else "")
        self._emit(logging.INFO, msg, extra)

    def log_performance(self, operation: str, duration_ms: float, **kw: Any) -> None:
        extra = {"operation": operation, "duration_ms": round(duration_ms, 2), **kw}
        self._emit(
            logging.INFO,
            f"Performance: {operation} completed in {duration_ms:.2f}ms",
            extra,
        )

    def log_error(self, message: str, error: str | None = None, **kw: Any) -> None:
        extra = dict(kw)
        if error:
            extra["error"] = error
        self._logger.error(message, extra=extra)

    def debug(self, message: str, **kw: Any) -> None:
        self._logger.debug(message, extra=kw)

    def info(self, message: str, **kw: Any) -> None:
        self._logger.info(message, extra=kw)

    def warning(self, message: str, **kw: Any) -> None:
        self._logger.warning(message, extra=kw)

    def error(self, message: str, **kw: Any) -> None:  # noqa: D401
        self._logger.error(message, extra=kw)

    @contextmanager
    def timed_operation(self, operation: str, **kw: Any) -> Iterator[None]:
        """Log ``<operation>_start``, then the duration, or the failure before re-raising."""
        start = time.perf_counter()
        self.log_operation(f"{operation}_start", **kw)
        try:
            yield
        except Exception as exc:
            self.log_error(
                f"operation {operation} failed",
                error=redact(str(exc)),
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
                **kw,
            )
            raise
        self.log_performance(operation, (time.perf_counter() - start) * 1000, **kw)


_GLOBAL: StructuredLogger | None = None


def get_logger() -> StructuredLogger:
    global _GLOBAL  # noqa: PLW0603
    if _GLOBAL is None:
        _GLOBAL = StructuredLogger()
    return _GLOBAL


def configure_logging(json_logging: bool = False, level: str = "INFO") -> StructuredLogger:
    global _GLOBAL  # noqa: PLW0603
    _GLOBAL = StructuredLogger(json_logging=json_logging, level=level)
    return _GLOBAL


__all__ = ["JSONFormatter", "TextFormatter", "StructuredLogger", "get_logger", "configure_logging"]
