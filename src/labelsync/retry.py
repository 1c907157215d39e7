"""Centralized retry / backoff helpers.

Provides a single small function ``run_with_retries`` that encapsulates
exponential backoff with jitter and simple classification of transient
GitHub API failure modes (rate limit / abuse / gateway errors / network).

Environment overrides:
  LABELSYNC_RETRY_ATTEMPTS (default 3)
  LABELSYNC_RETRY_BASE (seconds base, default 0.5)
  LABELSYNC_RETRY_MAX_SLEEP (optional cap in seconds)

The caller supplies a thunk returning the desired result or raising a
``TransportError``. Only transient failures trigger a retry; other failures
propagate immediately.
"""

from __future__ import annotations

import logging
import os
import random
import re
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeVar

from .errors import TransportError

T = TypeVar("T")

TRANSIENT_TOKENS = (
    "rate limit",
    "abuse detection",
    "secondary rate",
)
TRANSIENT_STATUSES = frozenset({429, 500, 502, 503, 504})

_RE_RETRY_AFTER = re.compile(r"retry[-\s]after:?\s*(\d+)", re.IGNORECASE)
_RE_SECONDS_HINT = re.compile(r"wait\s*(\d+)\s*seconds", re.IGNORECASE)
_JITTER = random.SystemRandom()

logger = logging.getLogger(__name__)


def _extract_explicit_backoff(text: str) -> float | None:
    """Extract an explicit backoff (seconds) from error output.

    Supports patterns like:
      Retry-After: 12
      retry after 12
      wait 30 seconds
    Returns None if no valid positive value found.
    """
    if not text:
        return None
    m = _RE_RETRY_AFTER.search(text) or _RE_SECONDS_HINT.search(text)
    if m:
        val = float(m.group(1))
        return val if val > 0 else None
    return None


@dataclass
class RetryConfig:
    attempts: int = field(
        default_factory=lambda: int(os.environ.get("LABELSYNC_RETRY_ATTEMPTS", "3"))
    )
    base_sleep: float = field(
        default_factory=lambda: float(os.environ.get("LABELSYNC_RETRY_BASE", "0.5"))
    )


def is_transient(output: str) -> bool:
    out_lower = output.lower()
    return any(tok in out_lower for tok in TRANSIENT_TOKENS)


def is_transient_error(exc: BaseException) -> bool:
    if not isinstance(exc, TransportError):
        return False
    status = getattr(exc, "status", None)
    if status is None:
        # no HTTP answer at all: connection / timeout failure
        return True
    if status in TRANSIENT_STATUSES:
        return True
    text = f"{exc} {getattr(exc, 'response_text', '') or ''}"
    return is_transient(text)


def _compute_sleep(attempt: int, cfg: RetryConfig, out: str) -> float:
    explicit = _extract_explicit_backoff(out)
    backoff = cfg.base_sleep * (2 ** (attempt - 1)) + _JITTER.uniform(0, 0.25)
    sleep_for: float = explicit if explicit is not None else backoff
    max_cap_env = os.environ.get("LABELSYNC_RETRY_MAX_SLEEP")
    if max_cap_env:
        try:
            cap = float(max_cap_env)
        except ValueError:
            return sleep_for
        if cap >= 0:
            sleep_for = min(sleep_for, cap)
    return sleep_for


def run_with_retries(fn: Callable[[], T], *, cfg: RetryConfig | None = None) -> T:
    cfg = cfg or RetryConfig()
    attempts = max(1, cfg.attempts)
    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except TransportError as exc:
            if attempt >= attempts or not is_transient_error(exc):
                raise
            out = getattr(exc, "response_text", None) or str(exc)
            sleep_for = _compute_sleep(attempt, cfg, out)
            logger.warning(
                "transient error, attempt %d/%d, sleeping %.2fs", attempt, attempts, sleep_for
            )
            time.sleep(sleep_for)
    raise RuntimeError("retry logic exited unexpectedly")  # pragma: no cover


__all__ = ["RetryConfig", "is_transient", "is_transient_error", "run_with_retries"]
