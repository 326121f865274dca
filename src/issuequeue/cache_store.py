from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from .models import IssueRecord

logger = logging.getLogger(__name__)

CACHE_FILE_TEMPLATE = "{org}-issues-prs.json"


def cache_path(org: str, directory: str | Path = ".", template: str = CACHE_FILE_TEMPLATE) -> Path:
    return Path(directory) / template.format(org=org)


def persist_cache(path: Path, records: Sequence[IssueRecord]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(list(records), indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    tmp.replace(path)


def _coerce_records(raw: list[Any], path: Path) -> list[IssueRecord]:
    records: list[IssueRecord] = []
    for position, entry in enumerate(raw):
        if not isinstance(entry, dict) or not isinstance(entry.get("id"), int):
            logger.debug("skipping malformed cache entry %d in %s", position, path)
            continue
        records.append(entry)  # type: ignore[arg-type]
    return records


def load_cache(path: Path) -> list[IssueRecord]:
    """Read the cached queue; any unreadable cache counts as empty."""
    if not path.exists():
        return []
    try:
        raw: Any = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.warning("Failed to read cache %s (%s); starting from an empty queue", path, exc)
        return []
    if not isinstance(raw, list):
        logger.warning("Cache %s is not a JSON array; starting from an empty queue", path)
        return []
    return _coerce_records(raw, path)


__all__ = ["CACHE_FILE_TEMPLATE", "cache_path", "persist_cache", "load_cache"]
