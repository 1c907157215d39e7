"""Error taxonomy & redaction helpers.

Central place for the exceptions raised by the reconciliation engine and for
preparing arbitrary failures for safe logging.

Public API:
- MalformedEnvelopeError: the engine-owned region of a body is unreadable
- TransportError: any remote call failed (see ``github_rest.GitHubAPIError``)
- ReconciliationError: one or more mutations of an ``edited`` pass failed
- classify_error(exc) -> ErrorInfo
- redact(text) -> str
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

_SENSITIVE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"ghp_[A-Za-z0-9]{20,40}"),  # GitHub classic tokens
    re.compile(r"ghs_[A-Za-z0-9]{20,40}"),  # GitHub App installation tokens
    re.compile(r"github_pat_\w{20,}"),  # GitHub fine-grained tokens
    re.compile(r"Bearer\s+[A-Za-z0-9_\-\.]{16,}"),
]

_REDACTION_PLACEHOLDER = "<redacted>"


class MalformedEnvelopeError(ValueError):
    """Raised when a body holds only one of the envelope markers (or they are misordered)."""


class TransportError(RuntimeError):
    """Base class for failures talking to the label / document storage platform."""


class ReconciliationError(RuntimeError):
    """Aggregated failure of an ``edited`` reconciliation pass.

    Every mutation of the pass is attempted before this is raised; ``failures``
    maps the step name (``add_labels``, ``remove_labels``, ``update_body``) to
    the exception it produced.
    """

    def __init__(self, failures: dict[str, BaseException]):
        steps = ", ".join(failures) or "none"
        super().__init__(f"Encountered issues after checklist edit (failed steps: {steps})")
        self.failures = dict(failures)

    @property
    def add_labels_error(self) -> BaseException | None:
        return self.failures.get("add_labels")

    @property
    def remove_labels_error(self) -> BaseException | None:
        return self.failures.get("remove_labels")

    @property
    def update_body_error(self) -> BaseException | None:
        return self.failures.get("update_body")


@dataclass
class ErrorInfo:
    category: str
    message: str
    original_type: str
    transient: bool = False
    details: dict[str, Any] | None = None


def redact(text: str) -> str:
    """Redact sensitive tokens in arbitrary text."""
    if not text:
        return text
    redacted = text
    for pat in _SENSITIVE_PATTERNS:
        redacted = pat.sub(_REDACTION_PLACEHOLDER, redacted)
    return redacted


def classify_error(exc: BaseException) -> ErrorInfo:
    """Best-effort classification of an exception.

    Strategy:
    - Malformed envelope -> 'envelope'
    - Rate limit / abuse wording -> 'github.rate_limit' / 'github.abuse', transient
    - Network-y keywords -> 'network', transient
    - Any other transport failure -> 'transport'
    - Fallback -> 'generic'
    """
    msg = str(exc) if exc else ""
    low = msg.lower()
    name = exc.__class__.__name__
    status = getattr(exc, "status", None)
    details = {"status": status} if status is not None else None

    if isinstance(exc, MalformedEnvelopeError):
        return ErrorInfo("envelope", redact(msg), name)
    if "rate limit" in low or "secondary rate" in low or status == 429:
        return ErrorInfo("github.rate_limit", redact(msg), name, transient=True, details=details)
    if "abuse" in low:
        return ErrorInfo("github.abuse", redact(msg), name, transient=True, details=details)
    if any(k in low for k in ("timeout", "timed out", "connection reset", "temporarily unavailable")):
        return ErrorInfo("network", redact(msg), name, transient=True, details=details)
    if isinstance(exc, TransportError):
        return ErrorInfo("transport", redact(msg), name, details=details)
    return ErrorInfo("generic", redact(msg), name)


__all__ = [
    "ErrorInfo",
    "MalformedEnvelopeError",
    "ReconciliationError",
    "TransportError",
    "classify_error",
    "redact",
]
