"""Namespaced markdown checklists with stable item identity.

Each rendered line carries its item id inside an HTML comment so that the
checked state can be recovered even after the visible text changes::

    - [x] <!-- release-labels:semver:3f1a9c0d2b4e --> **minor** Increment ...

Item ids come from :func:`label_fingerprint`, a hash of the canonical label
name. Reordering labels in configuration therefore never changes which box
maps to which label.
"""

from __future__ import annotations

import hashlib
import re
from collections.abc import Iterable
from dataclasses import dataclass, field

FINGERPRINT_LENGTH = 12

_TOKEN = r"[\w.-]+"
_TOKEN_RE = re.compile(rf"^{_TOKEN}$")

_LINE_RE = re.compile(
    r"^\s*[-*]\s+\[(?P<mark>[ xX])\]\s+"
    rf"<!--\s*(?P<namespace>{_TOKEN}):(?P<key>{_TOKEN}):(?P<id>[0-9a-f]+)\s*-->"
    r"[ \t]?(?P<body>.*?)\s*$"
)


def is_valid_token(value: str) -> bool:
    """True when ``value`` can be used as a checklist namespace or key.

    Only word characters, dots and dashes survive a render/parse round trip.
    """
    return bool(_TOKEN_RE.match(value))


def label_fingerprint(name: str) -> str:
    """Stable id for a label: hash of its stripped, case-folded name."""
    canonical = name.strip().casefold()
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:FINGERPRINT_LENGTH]


@dataclass(frozen=True)
class ChecklistItem:
    id: str
    checked: bool
    body: str = ""


@dataclass
class Checklist:
    namespace: str
    key: str
    items: list[ChecklistItem] = field(default_factory=list)

    def find(self, item_id: str) -> ChecklistItem | None:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def is_checked(self, item_id: str) -> bool:
        item = self.find(item_id)
        return bool(item and item.checked)


def _unique(items: Iterable[ChecklistItem]) -> list[ChecklistItem]:
    seen: set[str] = set()
    out: list[ChecklistItem] = []
    for item in items:
        if item.id in seen:
            continue
        seen.add(item.id)
        out.append(item)
    return out


def render_checklist(namespace: str, key: str, items: Iterable[ChecklistItem]) -> str:
    for value in (namespace, key):
        if not is_valid_token(value):
            raise ValueError(f"checklist namespace/key {value!r} cannot be parsed back")
    lines = []
    for item in _unique(items):
        mark = "x" if item.checked else " "
        body = f" {item.body}" if item.body else ""
        lines.append(f"- [{mark}] <!-- {namespace}:{key}:{item.id} -->{body}")
    return "\n".join(lines)


def parse_checklists(markdown: str | None, namespace: str) -> dict[str, Checklist]:
    """Collect every checklist of ``namespace`` found in ``markdown``.

    Lines that do not match the rendered format are skipped. Keys keep the
    order in which they were first seen; a repeated id within one key keeps
    its first occurrence.
    """
    checklists: dict[str, Checklist] = {}
    if not markdown:
        return checklists
    for line in markdown.splitlines():
        m = _LINE_RE.match(line)
        if not m or m.group("namespace") != namespace:
            continue
        key = m.group("key")
        checklist = checklists.setdefault(key, Checklist(namespace=namespace, key=key))
        item_id = m.group("id")
        if checklist.find(item_id) is not None:
            continue
        checklist.items.append(
            ChecklistItem(id=item_id, checked=m.group("mark") != " ", body=m.group("body"))
        )
    return checklists


def more_than_one_checked(items: Iterable[ChecklistItem]) -> bool:
    return sum(1 for item in items if item.checked) > 1


def checklist_state(checklists: dict[str, Checklist]) -> dict[str, list[tuple[str, bool]]]:
    """(id, checked) pairs per key, ignoring the rendered body text."""
    return {
        key: [(item.id, item.checked) for item in checklist.items]
        for key, checklist in checklists.items()
    }


__all__ = [
    "Checklist",
    "ChecklistItem",
    "FINGERPRINT_LENGTH",
    "checklist_state",
    "is_valid_token",
    "label_fingerprint",
    "more_than_one_checked",
    "parse_checklists",
    "render_checklist",
]
