"""issuequeue CLI.

Subcommands:
  sync     -> fetch open issues/PRs, reconcile with the cache, persist
  list     -> print the cached queue (optionally filtered with --search)
  refresh  -> re-fetch a single record; closed records drop out of the queue
  open     -> open a record in the web browser
  doctor   -> show configuration, cache and authentication status
"""

from __future__ import annotations

import argparse
import json
import sys
import webbrowser
from collections.abc import Callable, Sequence
from typing import Any

from issuequeue.config import ConfigError, QueueConfig, load_config
from issuequeue.env_auth import EnvAuthConfig, EnvironmentAuthManager, create_env_auth_manager
from issuequeue.errors import redact
from issuequeue.fetcher import fetch_open_items
from issuequeue.github_rest import GitHubRestClient
from issuequeue.logging import configure_logging
from issuequeue.models import IssueRecord, is_pull_request, repository_name
from issuequeue.reconcile import format_summary
from issuequeue.retry import RetryConfig
from issuequeue.tracker import IssueQueue
from issuequeue.ux import (
    print_error,
    print_header,
    print_record,
    print_success,
    print_summary_box,
    print_warning,
)

ORG_HELP = "Override the GitHub organization to track"

_MAX_HELP_WIDTH = 100


class _HelpFormatter(argparse.HelpFormatter):
    def __init__(self, prog: str) -> None:
        super().__init__(prog, max_help_position=30, width=_MAX_HELP_WIDTH)


class _FormatterArgumentParser(argparse.ArgumentParser):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("formatter_class", _HelpFormatter)
        super().__init__(*args, **kwargs)


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", help="YAML config file (default: issuequeue.config.yaml if present)")
    parser.add_argument("--org", help=ORG_HELP)


def _build_parser() -> argparse.ArgumentParser:
    p = _FormatterArgumentParser(
        prog="issuequeue", description="Stable triage queue of open community issues and PRs"
    )
    p.add_argument("--quiet", action="store_true", help="Only log warnings and errors")
    sub = p.add_subparsers(
        dest="cmd",
        required=True,
        parser_class=_FormatterArgumentParser,
        metavar="<command>",
    )

    ps = sub.add_parser("sync", help="Fetch from GitHub and reconcile with the cached queue")
    _add_common(ps)
    ps.add_argument("--list", action="store_true", help="Print the queue after syncing")

    pl = sub.add_parser("list", help="Print the cached queue")
    _add_common(pl)
    pl.add_argument("--search", default="", help="Filter by title, repository or number")
    pl.add_argument("--limit", type=int, default=0, help="Show at most N records (0 = all)")
    pl.add_argument("--json", action="store_true", help="Emit the records as JSON")

    pr = sub.add_parser("refresh", help="Re-fetch one record (id, number or repo#number)")
    _add_common(pr)
    pr.add_argument("key")

    po = sub.add_parser("open", help="Open a record in the web browser")
    _add_common(po)
    po.add_argument("key")

    doc = sub.add_parser("doctor", help="Show configuration, cache and auth status")
    _add_common(doc)
    return p


def _describe(record: IssueRecord) -> str:
    kind = " (PR)" if is_pull_request(record) else ""
    return f"#{record.get('number')} - {repository_name(record)}{kind}"


def _print_records(cfg: QueueConfig, records: Sequence[IssueRecord], search: str = "") -> None:
    print_header(f"{cfg.org} organization - open issues & PRs ({len(records)})")
    if not records:
        if search:
            print(f'No results matching "{search}"')
        else:
            print("No open issues or PRs found.")
        return
    for record in records:
        print_record(str(record.get("title") or ""), _describe(record))


def _auth_manager(cfg: QueueConfig) -> EnvironmentAuthManager:
    return create_env_auth_manager(
        EnvAuthConfig(load_dotenv=cfg.env_auth_load_dotenv, dotenv_path=cfg.env_auth_dotenv_path)
    )


def _build_queue(cfg: QueueConfig, auth: EnvironmentAuthManager | None = None) -> IssueQueue:
    auth = auth or _auth_manager(cfg)
    client = GitHubRestClient(
        token=auth.get_github_token(),
        base_url=cfg.api_url,
        per_page=cfg.per_page,
        retry=RetryConfig(attempts=cfg.retry_attempts, base_sleep=cfg.retry_base_sleep),
    )
    return IssueQueue(cfg, client, fetcher=fetch_open_items)


def _cmd_sync(cfg: QueueConfig, args: argparse.Namespace) -> int:
    queue = _build_queue(cfg)
    result = queue.sync()
    if result.error is not None:
        print_error(f"[sync] fetch failed ({result.error.category}): {result.error.message}")
        if result.records:
            print_warning(f"[sync] showing {len(result.records)} cached records")
        if args.list:
            _print_records(cfg, result.records)
        return 1
    if result.summary is not None:
        for line in format_summary(result.summary):
            print(line)
    if args.list:
        _print_records(cfg, result.records)
    return 0


def _cmd_list(cfg: QueueConfig, args: argparse.Namespace) -> int:
    queue = _build_queue(cfg)
    queue.load()
    records = queue.search(args.search)
    if args.limit and args.limit > 0:
        records = records[: args.limit]
    if args.json:
        print(json.dumps(records, indent=2, ensure_ascii=False))
        return 0
    _print_records(cfg, records, args.search)
    return 0


def _cmd_refresh(cfg: QueueConfig, args: argparse.Namespace) -> int:
    queue = _build_queue(cfg)
    queue.load()
    try:
        result = queue.refresh(args.key)
    except LookupError as exc:
        print_error(f"[refresh] {exc}")
        return 2
    if result.error is not None:
        print_error(f"[refresh] failed ({result.error.category}): {result.error.message}")
        return 1
    if result.action == "removed":
        print_success(f"[refresh] {_describe(result.record)} is closed; removed from queue")
    else:
        print_success(f"[refresh] {_describe(result.record)} updated: {result.record.get('title')}")
    return 0


def _cmd_open(cfg: QueueConfig, args: argparse.Namespace) -> int:
    queue = _build_queue(cfg)
    queue.load()
    try:
        record = queue.find(args.key)
    except LookupError as exc:
        print_error(f"[open] {exc}")
        return 2
    if record is None:
        print_error(f"[open] No cached record matches {args.key!r}")
        return 2
    url = record.get("html_url")
    if not url:
        print_error(f"[open] {_describe(record)} has no html_url")
        return 1
    webbrowser.open(url)
    print(url)
    return 0


def _cmd_doctor(cfg: QueueConfig, args: argparse.Namespace) -> int:
    auth = _auth_manager(cfg)
    queue = _build_queue(cfg, auth)
    records = queue.load()
    token = auth.get_github_token()
    cache_file = queue.cache_file
    print_summary_box(
        "issuequeue doctor",
        [
            ("org", cfg.org),
            ("api", cfg.api_url),
            ("config", str(cfg.source_file) if cfg.source_file else "defaults"),
            ("cache file", str(cache_file)),
            ("cache present", "yes" if cache_file.exists() else "missing"),
            ("cached records", len(records)),
            ("bootstrap order", cfg.bootstrap),
            ("dotenv loaded", "yes" if auth.dotenv_loaded else "no"),
            ("github token", "yes" if token else "no"),
        ],
    )
    recommendations = auth.get_authentication_recommendations()
    if recommendations:
        print_warning("No GitHub token found")
        for tip in recommendations:
            print(f"  - {tip}")
    return 0


def _build_handlers(args: argparse.Namespace, cfg: QueueConfig) -> dict[str, Callable[[], int]]:
    return {
        "sync": lambda: _cmd_sync(cfg, args),
        "list": lambda: _cmd_list(cfg, args),
        "refresh": lambda: _cmd_refresh(cfg, args),
        "open": lambda: _cmd_open(cfg, args),
        "doctor": lambda: _cmd_doctor(cfg, args),
    }


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    try:
        cfg = load_config(args.config)
    except ConfigError as exc:
        print_error(f"[config] {exc}")
        return 2
    if args.org:
        cfg.org = args.org
    configure_logging(
        json_logging=cfg.logging_json_enabled,
        level="WARNING" if args.quiet else cfg.logging_level,
    )
    handler = _build_handlers(args, cfg).get(args.cmd)
    if handler is None:  # pragma: no cover - argparse enforces valid choices
        parser.print_help()
        return 1
    try:
        return handler()
    except KeyboardInterrupt:  # pragma: no cover - interactive abort
        return 130
    except OSError as exc:
        print_error(f"[{args.cmd}] {redact(str(exc))}")
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
