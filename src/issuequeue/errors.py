"""Error taxonomy & redaction.

Failures never originate in the reconciler itself; they come from the
GitHub fetch, the single-record refresh, or the cache file. This module
gives the queue and CLI one place to turn an exception into a category
that can be logged and shown to the user without leaking tokens.

Public API:
- classify_error(exc) -> ErrorInfo
- redact(text) -> str
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

import requests

_SENSITIVE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"gh[pousr]_[A-Za-z0-9]{20,255}"),  # classic, OAuth, app and refresh tokens
    re.compile(r"github_pat_\w{20,}"),  # fine-grained tokens
    re.compile(r"(?i)(authorization:\s*(?:bearer|token)\s+)\S+"),
]

_REDACTION_PLACEHOLDER = "<redacted>"

HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403
HTTP_NOT_FOUND = 404
HTTP_TOO_MANY_REQUESTS = 429


@dataclass
class ErrorInfo:
    category: str
    message: str
    original_type: str
    transient: bool = False
    details: dict[str, Any] | None = None


def redact(text: str) -> str:
    if not text:
        return text
    redacted = text
    for pat in _SENSITIVE_PATTERNS:
        if pat.groups:
            redacted = pat.sub(lambda m: m.group(1) + _REDACTION_PLACEHOLDER, redacted)
        else:
            redacted = pat.sub(_REDACTION_PLACEHOLDER, redacted)
    return redacted


def _classify_status(status: int, low: str) -> tuple[str, bool] | None:
    if status == HTTP_TOO_MANY_REQUESTS or (status == HTTP_FORBIDDEN and "rate limit" in low):
        return "github.rate_limit", True
    if status in (HTTP_UNAUTHORIZED, HTTP_FORBIDDEN):
        return "github.auth", False
    if status == HTTP_NOT_FOUND:
        return "github.not_found", False
    if status >= 500:
        return "network", True
    return None


def classify_error(exc: BaseException) -> ErrorInfo:
    """Best-effort classification of an exception.

    HTTP status (when the exception carries one) wins over message
    keywords; connection level ``requests`` failures are always network
    errors and transient.
    """
    msg = str(exc) if exc else ""
    response_text = getattr(exc, "response_text", None) or ""
    name = exc.__class__.__name__
    low = f"{name} {msg} {response_text}".lower()

    status = getattr(exc, "status", None)
    if isinstance(status, int):
        classified = _classify_status(status, low)
        if classified is not None:
            category, transient = classified
            return ErrorInfo(category, redact(msg), name, transient=transient, details={"status": status})
    if isinstance(exc, (requests.ConnectionError, requests.Timeout)):
        return ErrorInfo("network", redact(msg), name, transient=True)
    if "rate limit" in low or "secondary rate" in low:
        return ErrorInfo("github.rate_limit", redact(msg), name, transient=True)
    if any(k in low for k in ("timeout", "timed out", "connection reset", "temporarily unavailable")):
        return ErrorInfo("network", redact(msg), name, transient=True)
    if any(k in low for k in ("jsondecodeerror", "expecting value", "yaml", "scannererror", "parsererror")):
        return ErrorInfo("parse", redact(msg), name)
    return ErrorInfo("generic", redact(msg), name)


__all__ = ["ErrorInfo", "classify_error", "redact"]
