from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, cast

import yaml

from .cache_store import CACHE_FILE_TEMPLATE, cache_path
from .github_rest import DEFAULT_API_URL, MAX_PER_PAGE
from .reconcile import BOOTSTRAP_POLICIES

CONFIG_DEFAULT = "issuequeue.config.yaml"

DEFAULT_EXCLUDED_ASSOCIATIONS = ["OWNER", "MEMBER", "COLLABORATOR", "MANNEQUIN"]


class ConfigError(RuntimeError):
    pass


@dataclass
class QueueConfig:
    org: str = "resend"
    api_url: str = DEFAULT_API_URL
    per_page: int = MAX_PER_PAGE
    max_items: int | None = None
    # Filtering
    exclude_bots: bool = True
    excluded_associations: list[str] = field(
        default_factory=lambda: list(DEFAULT_EXCLUDED_ASSOCIATIONS)
    )
    include_archived: bool = False
    # Cache location
    cache_directory: str = "."
    cache_file: str = CACHE_FILE_TEMPLATE
    # First-run ordering policy name (see reconcile.BOOTSTRAP_POLICIES)
    bootstrap: str = "alternate"
    # Logging configuration
    logging_json_enabled: bool = False
    logging_level: str = "INFO"
    # Retry configuration
    retry_attempts: int = 3
    retry_base_sleep: float = 0.5
    # Environment authentication configuration
    env_auth_load_dotenv: bool = True
    env_auth_dotenv_path: str | None = None
    source_file: Path | None = None

    def cache_file_path(self) -> Path:
        base = Path(self.cache_directory).expanduser()
        if not base.is_absolute() and self.source_file is not None:
            base = self.source_file.parent / base
        return cache_path(self.org, base, self.cache_file)


def _resolve_env_var(value: Any) -> Any:
    """Resolve environment variable if value starts with $."""
    if isinstance(value, str) and value.startswith('$'):
        return os.getenv(value[1:], value)  # Fallback to original if not found
    return value


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    value = raw.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"Config section '{name}' must be a mapping")
    return cast(dict[str, Any], value)


def load_config(path: str | Path | None = None) -> QueueConfig:
    """Load configuration from YAML.

    A missing file is only an error when the caller named it explicitly;
    the default location silently falls back to built-in defaults.
    """
    explicit = path is not None
    p = Path(path) if path is not None else Path(CONFIG_DEFAULT)
    if not p.exists():
        if explicit:
            raise ConfigError(f'Configuration file not found: {p}')
        return QueueConfig()
    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f'Invalid YAML in {p}: {exc}') from exc
    if not isinstance(raw, dict):
        raise ConfigError(f'Configuration root must be a mapping: {p}')

    gh = _section(raw, 'github')
    filters = _section(raw, 'filters')
    cache = _section(raw, 'cache')
    ordering = _section(raw, 'ordering')
    logging_config = _section(raw, 'logging')
    retry_config = _section(raw, 'retry')
    env_auth = _section(raw, 'environment')

    bootstrap = str(ordering.get('bootstrap', 'alternate'))
    if bootstrap not in BOOTSTRAP_POLICIES:
        raise ConfigError(
            f"Unknown ordering.bootstrap '{bootstrap}' (expected one of {sorted(BOOTSTRAP_POLICIES)})"
        )
    per_page = int(gh.get('per_page', MAX_PER_PAGE))
    if not 1 <= per_page <= MAX_PER_PAGE:
        raise ConfigError(f"github.per_page must be between 1 and {MAX_PER_PAGE}, got {per_page}")
    max_items = gh.get('max_items')

    return QueueConfig(
        org=str(_resolve_env_var(gh.get('org', 'resend'))),
        api_url=str(_resolve_env_var(gh.get('api_url', DEFAULT_API_URL))),
        per_page=per_page,
        max_items=int(max_items) if max_items is not None else None,
        exclude_bots=bool(filters.get('exclude_bots', True)),
        excluded_associations=[
            str(a).upper()
            for a in (filters.get('excluded_associations', DEFAULT_EXCLUDED_ASSOCIATIONS) or [])
        ],
        include_archived=bool(filters.get('include_archived', False)),
        cache_directory=str(_resolve_env_var(cache.get('directory', '.'))),
        cache_file=str(cache.get('file', CACHE_FILE_TEMPLATE)),
        bootstrap=bootstrap,
        logging_json_enabled=bool(logging_config.get('json_enabled', False)),
        logging_level=str(logging_config.get('level', 'INFO')),
        retry_attempts=int(retry_config.get('attempts', 3)),
        retry_base_sleep=float(retry_config.get('base_sleep', 0.5)),
        env_auth_load_dotenv=bool(env_auth.get('load_dotenv', True)),
        env_auth_dotenv_path=env_auth.get('dotenv_path'),
        source_file=p,
    )


__all__ = ["CONFIG_DEFAULT", "ConfigError", "QueueConfig", "load_config"]
