"""labelsync - keep a release-label checklist in pull request descriptions
in sync with the labels attached to the pull request.

High-level public API:

from labelsync import Onboarding, PullRequestEvent, load_config

cfg = load_config('.labelsync.yaml')
outcome = await Onboarding(cfg, client).handle(PullRequestEvent.from_payload(payload))

``client`` is any object with the async label/body methods of
``labelsync.concurrency.AsyncGitHubClient``. The CLI (``labelsync handle``)
wires everything together for CI usage.
"""

from __future__ import annotations

from .checklist import Checklist, ChecklistItem, label_fingerprint, parse_checklists, render_checklist
from .config import SyncConfig, load_config
from .errors import MalformedEnvelopeError, ReconciliationError, TransportError
from .events import AppIdentity, PullRequestEvent
from .labels import Label, LabelSpec
from .onboarding import Onboarding

__version__ = "0.3.0"

__all__ = [
    "AppIdentity",
    "Checklist",
    "ChecklistItem",
    "Label",
    "LabelSpec",
    "MalformedEnvelopeError",
    "Onboarding",
    "PullRequestEvent",
    "ReconciliationError",
    "SyncConfig",
    "TransportError",
    "__version__",
    "label_fingerprint",
    "load_config",
    "parse_checklists",
    "render_checklist",
]
