"""Reconcile a cached issue queue against a freshly fetched snapshot.

The cached sequence is the ordering baseline a user has already seen; the
fresh sequence is the authoritative current state of GitHub. Reconciling
them produces the next cache:

* records present in both keep their cached position but take the fresh
  value (full replacement, never a field merge)
* records only in the cache are dropped (closed, or no longer matching)
* records only in the fresh snapshot are appended in fresh order

When the cache is empty there is no baseline to preserve, so a bootstrap
ordering policy decides the initial order. The default interleaves the
oldest and newest records (``alternate_by_age``) so a first run surfaces
both long-stale and recently active items at the top.

Neither input is mutated; every function here returns a new list.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from .models import IssueRecord, record_id, updated_at_epoch

BootstrapPolicy = Callable[[Sequence[IssueRecord]], list[IssueRecord]]


def alternate_by_age(fresh: Sequence[IssueRecord]) -> list[IssueRecord]:
    """Order oldest, newest, second oldest, second newest, ...

    ``sorted`` is stable, so records sharing an ``updated_at`` keep their
    relative order from ``fresh``.
    """
    ordered = sorted(fresh, key=updated_at_epoch)
    out: list[IssueRecord] = []
    start = 0
    end = len(ordered) - 1
    while start <= end:
        if start == end:
            out.append(ordered[start])
            break
        out.append(ordered[start])
        out.append(ordered[end])
        start += 1
        end -= 1
    return out


def recency_order(fresh: Sequence[IssueRecord]) -> list[IssueRecord]:
    """Newest first; ties keep fresh order."""
    return sorted(fresh, key=updated_at_epoch, reverse=True)


BOOTSTRAP_POLICIES: dict[str, BootstrapPolicy] = {
    "alternate": alternate_by_age,
    "recency": recency_order,
}


def reconcile(
    cached: Sequence[IssueRecord],
    fresh: Sequence[IssueRecord],
    *,
    bootstrap: BootstrapPolicy = alternate_by_age,
) -> list[IssueRecord]:
    if not cached:
        return bootstrap(fresh)

    # later duplicates overwrite earlier ones
    fresh_by_id = {record_id(item): item for item in fresh}
    processed: set[int] = set()

    merged: list[IssueRecord] = []
    for item in cached:
        key = record_id(item)
        replacement = fresh_by_id.get(key)
        if replacement is None:
            continue
        processed.add(key)
        merged.append(replacement)

    merged.extend(item for item in fresh if record_id(item) not in processed)
    return merged


def apply_refresh(records: Sequence[IssueRecord], updated: IssueRecord) -> list[IssueRecord]:
    """Replace or drop a single record in place, leaving every other position alone.

    A closed ``updated`` removes the record; an unknown id returns an
    unchanged copy.
    """
    out = list(records)
    key = record_id(updated)
    index = next((i for i, item in enumerate(out) if record_id(item) == key), None)
    if index is None:
        return out
    if updated.get("state") == "closed":
        del out[index]
    else:
        out[index] = updated
    return out


@dataclass
class ReconcileSummary:
    kept: int
    added: int
    pruned: int
    total: int
    bootstrap: bool

    def as_dict(self) -> dict[str, Any]:
        return {
            "kept": self.kept,
            "added": self.added,
            "pruned": self.pruned,
            "total": self.total,
            "bootstrap": self.bootstrap,
        }


def summarize(cached: Sequence[IssueRecord], merged: Sequence[IssueRecord]) -> ReconcileSummary:
    cached_ids = {record_id(item) for item in cached}
    merged_ids = {record_id(item) for item in merged}
    return ReconcileSummary(
        kept=len(cached_ids & merged_ids),
        added=len(merged_ids - cached_ids),
        pruned=len(cached_ids - merged_ids),
        total=len(merged),
        bootstrap=not cached,
    )


def format_summary(summary: ReconcileSummary) -> list[str]:
    if summary.bootstrap:
        return [f"[sync] Initial load: {summary.total} open issues/PRs"]
    lines = [f"[sync] {summary.total} open issues/PRs (kept={summary.kept}, added={summary.added}, pruned={summary.pruned})"]
    if not summary.added and not summary.pruned:
        lines.append("  no new or closed items since last sync")
    return lines


__all__ = [
    "BootstrapPolicy",
    "BOOTSTRAP_POLICIES",
    "alternate_by_age",
    "recency_order",
    "reconcile",
    "apply_refresh",
    "ReconcileSummary",
    "summarize",
    "format_summary",
]
