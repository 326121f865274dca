"""Fetch the fresh snapshot of open issues and pull requests for an org.

Issues and pull requests are searched separately (the search API needs a
``type:`` qualifier to page them reliably) and the two queries run on a
small thread pool. Results drop bot accounts and authors with an elevated
association to the org, leaving the community contributions a maintainer
wants to triage.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from .config import QueueConfig
from .github_rest import GitHubRestClient
from .logging import get_logger
from .models import IssueRecord, updated_at_epoch


def build_search_queries(org: str, *, include_archived: bool = False) -> list[str]:
    queries = [f"org:{org} type:issue state:open", f"org:{org} type:pr state:open"]
    if not include_archived:
        queries = [f"{q} archived:false" for q in queries]
    return queries


def is_bot(record: IssueRecord | dict[str, Any]) -> bool:
    user = record.get("user")
    if not isinstance(user, dict):
        return False
    login = str(user.get("login") or "").lower()
    return user.get("type") == "Bot" or login.endswith("[bot]")


def is_maintainer(record: IssueRecord | dict[str, Any], associations: Iterable[str]) -> bool:
    association = str(record.get("author_association") or "").upper()
    return association in {a.upper() for a in associations}


def should_keep(record: IssueRecord | dict[str, Any], cfg: QueueConfig) -> bool:
    if not isinstance(record.get("user"), dict):
        return True
    if cfg.exclude_bots and is_bot(record):
        return False
    return not is_maintainer(record, cfg.excluded_associations)


def filter_records(records: Sequence[IssueRecord], cfg: QueueConfig) -> list[IssueRecord]:
    return [r for r in records if should_keep(r, cfg)]


def fetch_open_items(client: GitHubRestClient, cfg: QueueConfig) -> list[IssueRecord]:
    """Return the org's open issues then PRs, filtered, newest first.

    Any fetch error propagates; the caller decides whether to fall back to
    the cached queue.
    """
    logger = get_logger()
    queries = build_search_queries(cfg.org, include_archived=cfg.include_archived)
    with ThreadPoolExecutor(max_workers=len(queries)) as pool:
        futures = [pool.submit(client.search_issues, q, max_items=cfg.max_items) for q in queries]
        batches = [f.result() for f in futures]

    combined: list[IssueRecord] = [item for batch in batches for item in batch]  # type: ignore[misc]
    kept = filter_records(combined, cfg)
    logger.log_operation(
        "fetch_complete",
        org=cfg.org,
        fetched=len(combined),
        kept=len(kept),
        filtered=len(combined) - len(kept),
    )
    return sorted(kept, key=updated_at_epoch, reverse=True)


__all__ = [
    "build_search_queries",
    "is_bot",
    "is_maintainer",
    "should_keep",
    "filter_records",
    "fetch_open_items",
]
