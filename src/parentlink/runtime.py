"""Runtime helpers for parentlink CLI orchestration."""

from __future__ import annotations

import os
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol

from .config import CONFIG_DEFAULT, ConfigError, ParentLinkConfig, default_config, load_config
from .logging import get_logger


class _HandlerCallable(Protocol):
    def __call__(self) -> Any: ...


def _load(args: Any, loader: Callable[[str], ParentLinkConfig]) -> ParentLinkConfig:
    path = getattr(args, "config", None)
    if path:
        return loader(path)
    # the default file is optional; flags alone are enough
    if Path(CONFIG_DEFAULT).exists():
        return loader(CONFIG_DEFAULT)
    return default_config()


def prepare_config(
    args: Any, *, loader: Callable[[str], ParentLinkConfig] = load_config
) -> ParentLinkConfig:
    """Load ParentLinkConfig and apply command-line overrides."""
    if not hasattr(args, "config"):
        raise AttributeError("Command namespace is missing 'config' attribute")
    cfg = _load(args, loader)
    org = getattr(args, "org", None)
    if org:
        cfg.org = org
    project_number = getattr(args, "project_number", None)
    if project_number is not None:
        if int(project_number) <= 0:
            raise ConfigError("--project-number must be positive")
        cfg.project_number = int(project_number)
    field_name = getattr(args, "field", None)
    if field_name:
        cfg.field_name = field_name
    token = getattr(args, "token", None)
    if token:
        cfg.token = token
    max_workers = getattr(args, "max_workers", None)
    if max_workers is not None:
        if int(max_workers) < 1:
            raise ConfigError("--max-workers must be at least 1")
        cfg.max_workers = int(max_workers)
    summary_json = getattr(args, "summary_json", None)
    if summary_json:
        cfg.summary_json = summary_json
    return cfg


def is_quiet(args: Any) -> bool:
    return bool(getattr(args, "quiet", False)) or os.environ.get("PARENTLINK_QUIET") == "1"


def execute_command(
    handler: _HandlerCallable, args: Any, cfg: ParentLinkConfig | None, command: str
) -> int:
    """Execute a command handler, logging its exit code and duration."""
    logger = get_logger()
    start = time.monotonic()
    try:
        result = handler()
        exit_code = int(result) if result is not None else 0
    except SystemExit as exc:  # pragma: no cover - allow propagation
        exit_code = int(exc.code or 0)
        _log_command(logger, command, exit_code, start, cfg)
        raise
    except Exception:
        exit_code = 1
        _log_command(logger, command, exit_code, start, cfg)
        raise
    _log_command(logger, command, exit_code, start, cfg)
    return exit_code


def _log_command(
    logger: Any, command: str, exit_code: int, start_time: float, cfg: ParentLinkConfig | None
) -> None:
    duration_ms = max(0.0, time.monotonic() - start_time) * 1000
    logger.log_performance(
        f"command_{command}",
        duration_ms,
        exit_code=exit_code,
        config_file=str(cfg.source_file) if cfg and cfg.source_file else None,
    )


__all__ = ["execute_command", "is_quiet", "prepare_config"]
