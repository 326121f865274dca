"""issuequeue - a stable triage queue of open GitHub issues and pull requests.

High-level public API:

from issuequeue import IssueQueue, load_config

queue = IssueQueue(load_config())
result = queue.sync()          # fetch, reconcile with the cache, persist
for record in result.records:
    print(record['title'])

The ordering guarantee lives in :func:`issuequeue.reconcile.reconcile`:
records already in the cache keep their position across refreshes, new
records are appended, and records that disappeared are pruned.
"""

from __future__ import annotations

# Defined before the submodule imports; github_rest reads it for the User-Agent
__version__ = "0.1.0"

from .config import QueueConfig, load_config  # noqa: E402
from .reconcile import alternate_by_age, apply_refresh, reconcile  # noqa: E402
from .tracker import IssueQueue, RefreshResult, SyncResult  # noqa: E402

__all__ = [
    "IssueQueue",
    "QueueConfig",
    "RefreshResult",
    "SyncResult",
    "alternate_by_age",
    "apply_refresh",
    "load_config",
    "reconcile",
    "__version__",
]
