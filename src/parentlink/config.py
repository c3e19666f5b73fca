from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, cast

import yaml

from .fields import DEFAULT_FIELD_PAGE_SIZE
from .github_graphql import DEFAULT_GRAPHQL_URL
from .scanner import DEFAULT_ITEM_PAGE_SIZE

CONFIG_DEFAULT = 'parentlink.config.yaml'
MAX_PAGE_SIZE = 100  # GitHub connection limit


class ConfigError(RuntimeError):
    pass


@dataclass
class ParentLinkConfig:
    source_file: Path | None
    org: str | None
    project_number: int | None
    field_name: str | None
    field_page_size: int
    item_page_size: int
    graphql_url: str
    token: str | None
    dry_run_default: bool
    summary_json: str | None
    max_workers: int
    retry_attempts: int
    retry_base_sleep: float
    # Logging configuration
    logging_json_enabled: bool
    logging_level: str
    # Environment authentication configuration
    env_auth_load_dotenv: bool
    env_auth_dotenv_path: str | None

    def require_target(self) -> tuple[str, int, str]:
        """Return (org, project_number, field_name) or raise ConfigError."""
        missing = [
            name
            for name, value in (
                ('project.org', self.org),
                ('project.number', self.project_number),
                ('project.field', self.field_name),
            )
            if not value
        ]
        if missing:
            raise ConfigError(f"Missing required setting(s): {', '.join(missing)}")
        return cast(str, self.org), cast(int, self.project_number), cast(str, self.field_name)


def _resolve_env_var(value: Any) -> Any:
    """Resolve environment variable if value starts with $."""
    if isinstance(value, str) and value.startswith('$'):
        return os.getenv(value[1:]) or None
    return value


def _page_size(value: Any, default: int, key: str) -> int:
    try:
        size = int(value if value is not None else default)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f'{key} must be an integer') from exc
    if not 1 <= size <= MAX_PAGE_SIZE:
        raise ConfigError(f'{key} must be between 1 and {MAX_PAGE_SIZE}')
    return size


def _optional_int(value: Any, key: str) -> int | None:
    if value is None or value == '':
        return None
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f'{key} must be an integer') from exc
    if number <= 0:
        raise ConfigError(f'{key} must be positive')
    return number


def _at_least_one(value: Any, key: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f'{key} must be an integer') from exc
    if number < 1:
        raise ConfigError(f'{key} must be at least 1')
    return number


def _non_negative_float(value: Any, key: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f'{key} must be a number') from exc
    if number < 0:
        raise ConfigError(f'{key} must not be negative')
    return number


def build_config(raw: dict[str, Any], source_file: Path | None = None) -> ParentLinkConfig:
    project = cast(dict[str, Any], raw.get('project', {}) or {})
    gh = cast(dict[str, Any], raw.get('github', {}) or {})
    behavior = cast(dict[str, Any], raw.get('behavior', {}) or {})
    concurrency_config = cast(dict[str, Any], raw.get('concurrency', {}) or {})
    retry_config = cast(dict[str, Any], raw.get('retry', {}) or {})
    logging_config = cast(dict[str, Any], raw.get('logging', {}) or {})
    env_auth = cast(dict[str, Any], raw.get('environment', {}) or {})

    max_workers = _at_least_one(
        concurrency_config.get('max_workers', 8), 'concurrency.max_workers'
    )
    if 'attempts' in retry_config:
        retry_attempts = _at_least_one(retry_config['attempts'], 'retry.attempts')
    else:
        retry_attempts = _at_least_one(
            os.environ.get('PARENTLINK_RETRY_ATTEMPTS', 3), 'PARENTLINK_RETRY_ATTEMPTS'
        )
    if 'base_sleep' in retry_config:
        retry_base_sleep = _non_negative_float(retry_config['base_sleep'], 'retry.base_sleep')
    else:
        retry_base_sleep = _non_negative_float(
            os.environ.get('PARENTLINK_RETRY_BASE', 0.5), 'PARENTLINK_RETRY_BASE'
        )

    return ParentLinkConfig(
        source_file=source_file,
        org=project.get('org'),
        project_number=_optional_int(project.get('number'), 'project.number'),
        field_name=project.get('field'),
        field_page_size=_page_size(
            project.get('field_page_size'), DEFAULT_FIELD_PAGE_SIZE, 'project.field_page_size'
        ),
        item_page_size=_page_size(
            project.get('item_page_size'), DEFAULT_ITEM_PAGE_SIZE, 'project.item_page_size'
        ),
        graphql_url=gh.get('graphql_url')
        or os.environ.get('PARENTLINK_GITHUB_GRAPHQL', DEFAULT_GRAPHQL_URL),
        token=_resolve_env_var(gh.get('token')),
        dry_run_default=bool(behavior.get('dry_run_default', False)),
        summary_json=behavior.get('summary_json'),
        max_workers=max_workers,
        retry_attempts=retry_attempts,
        retry_base_sleep=retry_base_sleep,
        logging_json_enabled=bool(logging_config.get('json_enabled', False)),
        logging_level=str(logging_config.get('level', 'INFO')),
        env_auth_load_dotenv=bool(env_auth.get('load_dotenv', True)),
        env_auth_dotenv_path=env_auth.get('dotenv_path'),
    )


def default_config() -> ParentLinkConfig:
    return build_config({})


def load_config(path: str | Path) -> ParentLinkConfig:
    p = Path(path)
    if not p.exists():
        raise ConfigError(f'Configuration file not found: {p}')
    try:
        raw = yaml.safe_load(p.read_text()) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f'Invalid YAML in {p}: {exc}') from exc
    if not isinstance(raw, dict):
        raise ConfigError(f'Configuration root must be a mapping: {p}')
    return build_config(cast(dict[str, Any], raw), source_file=p)
