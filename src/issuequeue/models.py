"""Record shape for cached issues and pull requests.

Records are the raw JSON objects returned by the GitHub search API. Only a
handful of fields are read by issuequeue; everything else is opaque payload
that must survive a cache round trip untouched, so records stay plain dicts
instead of being parsed into a dataclass.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, TypedDict
from urllib.parse import urlparse


class _UserDict(TypedDict, total=False):
    login: str
    type: str


class IssueRecord(TypedDict, total=False):
    id: int
    number: int
    title: str
    state: str
    updated_at: str | None
    html_url: str
    repository_url: str
    user: _UserDict | None
    author_association: str
    pull_request: dict[str, Any]


def record_id(record: IssueRecord | dict[str, Any]) -> int:
    # KeyError on a missing id is intentional; callers validate at the boundary
    return record["id"]


def updated_at_epoch(record: IssueRecord | dict[str, Any]) -> float:
    """Return ``updated_at`` as epoch seconds, ``0.0`` when absent or invalid."""
    raw = record.get("updated_at")
    if not isinstance(raw, str) or not raw:
        return 0.0
    try:
        # fromisoformat only understands a trailing Z from 3.11 onwards
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return 0.0
    try:
        return parsed.timestamp()
    except (OverflowError, OSError):  # pragma: no cover - out of range dates
        return 0.0


def _repository_parts(record: IssueRecord | dict[str, Any]) -> list[str]:
    url = record.get("repository_url")
    if not isinstance(url, str):
        return []
    return [part for part in urlparse(url).path.split("/") if part]


def repository_name(record: IssueRecord | dict[str, Any]) -> str:
    parts = _repository_parts(record)
    return parts[-1] if parts else ""


def repository_owner(record: IssueRecord | dict[str, Any]) -> str | None:
    parts = _repository_parts(record)
    return parts[-2] if len(parts) >= 2 else None


def is_pull_request(record: IssueRecord | dict[str, Any]) -> bool:
    return isinstance(record.get("pull_request"), dict)


__all__ = [
    "IssueRecord",
    "record_id",
    "updated_at_epoch",
    "repository_name",
    "repository_owner",
    "is_pull_request",
]
