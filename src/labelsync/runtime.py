"""Runtime helpers for labelsync CLI orchestration."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any, Protocol

from labelsync.config import SyncConfig, discover_config, load_config
from labelsync.logging import StructuredLogger, configure_logging


class _HandlerCallable(Protocol):
    def __call__(self) -> Any: ...


def prepare_config(
    args: Any, *, loader: Callable[[str], SyncConfig] = load_config
) -> SyncConfig:
    """Load and post-process SyncConfig for the given argparse namespace."""
    path = getattr(args, "config", None)
    cfg = loader(path) if path else discover_config()
    repo_override = getattr(args, "repo", None)
    if repo_override:
        cfg.github_repo = repo_override
    bot_login = getattr(args, "bot_login", None)
    if bot_login:
        cfg.bot_login = bot_login
    return cfg


def prepare_logging(cfg: SyncConfig, *, quiet: bool = False) -> StructuredLogger:
    level = "WARNING" if quiet else cfg.logging_level
    return configure_logging(json_logging=cfg.logging_json_enabled, level=level)


def execute_command(
    handler: _HandlerCallable, logger: StructuredLogger, command: str
) -> int:
    """Execute a command handler, logging its exit code and duration."""
    start = time.monotonic()
    try:
        result = handler()
        exit_code = int(result) if result is not None else 0
    except Exception as exc:
        logger.log_error(f"command {command} failed", error=str(exc), command=command)
        raise
    duration_ms = max(0.0, time.monotonic() - start) * 1000
    logger.log_performance(f"command_{command}", duration_ms, exit_code=exit_code)
    return exit_code


__all__ = ["execute_command", "prepare_config", "prepare_logging"]
