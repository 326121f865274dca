"""High-level queue orchestration.

``IssueQueue`` ties the collaborators together: it loads the cached queue,
fetches the fresh snapshot, reconciles the two and persists the result.
It owns the in-memory queue for one org and serializes every operation
that replaces it, so at most one reconciliation runs per instance.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from .cache_store import load_cache, persist_cache
from .config import QueueConfig
from .errors import ErrorInfo, classify_error
from .fetcher import fetch_open_items
from .github_rest import GitHubRestClient
from .logging import get_logger
from .models import IssueRecord, record_id, repository_name, repository_owner
from .reconcile import (
    BOOTSTRAP_POLICIES,
    ReconcileSummary,
    apply_refresh,
    reconcile,
    summarize,
)

Fetcher = Callable[[GitHubRestClient, QueueConfig], list[IssueRecord]]


@dataclass
class SyncResult:
    records: list[IssueRecord]
    summary: ReconcileSummary | None = None
    error: ErrorInfo | None = None
    cache_file: Path | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class RefreshResult:
    action: str  # updated | removed | failed
    record: IssueRecord
    error: ErrorInfo | None = None
    records: list[IssueRecord] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None


def _parse_key(key: int | str) -> tuple[str | None, int]:
    """``"123"`` or ``123`` -> (None, 123); ``"repo#123"`` -> ("repo", 123)."""
    if isinstance(key, int):
        return None, key
    text = key.strip().lstrip("#")
    repo: str | None = None
    if "#" in text:
        repo, _, text = text.rpartition("#")
        repo = repo.strip() or None
    try:
        return repo, int(text)
    except ValueError as exc:
        raise LookupError(f"Not a record id or number: {key!r}") from exc


class IssueQueue:
    def __init__(
        self,
        cfg: QueueConfig,
        client: GitHubRestClient | None = None,
        *,
        cache_file: Path | None = None,
        fetcher: Fetcher = fetch_open_items,
    ) -> None:
        self.cfg = cfg
        self.client = client or GitHubRestClient(base_url=cfg.api_url, per_page=cfg.per_page)
        self.cache_file = cache_file or cfg.cache_file_path()
        self._fetcher = fetcher
        self._lock = threading.Lock()
        self._records: list[IssueRecord] = []
        self.logger = get_logger()

    @property
    def records(self) -> list[IssueRecord]:
        return list(self._records)

    def load(self) -> list[IssueRecord]:
        with self._lock:
            self._records = load_cache(self.cache_file)
            self.logger.debug(f"Loaded {len(self._records)} cached records from {self.cache_file}")
            return list(self._records)

    def sync(self) -> SyncResult:
        """Fetch, reconcile against the cache and persist.

        A failed fetch keeps the cached queue (in memory and on disk) and
        reports the classified error instead of raising.
        """
        with self._lock:
            cached = load_cache(self.cache_file)
            self._records = cached
            try:
                with self.logger.timed_operation("fetch", org=self.cfg.org):
                    fresh = self._fetcher(self.client, self.cfg)
            except Exception as exc:
                info = classify_error(exc)
                self.logger.log_error(
                    "Failed to fetch fresh data; keeping cached queue",
                    error=info.message,
                    category=info.category,
                )
                return SyncResult(records=list(cached), error=info, cache_file=self.cache_file)

            merged = reconcile(cached, fresh, bootstrap=BOOTSTRAP_POLICIES[self.cfg.bootstrap])
            summary = summarize(cached, merged)
            persist_cache(self.cache_file, merged)
            self._records = merged
            self.logger.log_operation("reconcile", **summary.as_dict())
            return SyncResult(records=list(merged), summary=summary, cache_file=self.cache_file)

    def find(self, key: int | str) -> IssueRecord | None:
        """Locate a record by id, then by number (optionally ``repo#number``)."""
        repo, value = _parse_key(key)
        if repo is None:
            for item in self._records:
                if record_id(item) == value:
                    return item
        for item in self._records:
            if item.get("number") == value and (repo is None or repository_name(item) == repo):
                return item
        return None

    def refresh(self, key: int | str) -> RefreshResult:
        """Re-fetch one record and replace (open) or remove (closed) it in place."""
        with self._lock:
            target = self.find(key)
            if target is None:
                raise LookupError(f"No cached record matches {key!r}")
            owner = repository_owner(target) or self.cfg.org
            repo = repository_name(target)
            try:
                number = int(target["number"])
                updated: IssueRecord = self.client.get_issue(owner, repo, number)  # type: ignore[assignment]
            except Exception as exc:
                info = classify_error(exc)
                self.logger.log_error(
                    f"Failed to refresh {repo}#{target.get('number')}",
                    error=info.message,
                    category=info.category,
                )
                return RefreshResult("failed", target, error=info, records=list(self._records))

            self._records = apply_refresh(self._records, updated)
            persist_cache(self.cache_file, self._records)
            action = "removed" if updated.get("state") == "closed" else "updated"
            self.logger.log_record_action(action, record_id(target), target.get("number"))
            return RefreshResult(action, updated, records=list(self._records))

    def search(self, text: str) -> list[IssueRecord]:
        if not text:
            return list(self._records)
        query = text.lower()
        return [
            item
            for item in self._records
            if query in str(item.get("title") or "").lower()
            or query in repository_name(item).lower()
            or query in str(item.get("number", ""))
        ]


__all__ = ["IssueQueue", "SyncResult", "RefreshResult"]
