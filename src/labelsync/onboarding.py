"""Pull request onboarding: keep the release-label checklist and labels in sync.

One call to :meth:`Onboarding.handle` is one reconciliation pass. The pass
reads everything it needs (configuration is given, the label catalog and the
attached labels are fetched) and keeps nothing once it returns.

Event flow:

* ``opened``   - no release label yet: append the checklist to the body.
* ``edited``   - the user ticked/unticked boxes: add/remove labels to match,
  then re-render the checklist.
* ``labeled`` / ``unlabeled`` - labels are the source of truth: re-render the
  checklist when it no longer matches.

Writes made by this engine produce ``edited`` events of their own. Those are
ignored when the sender is this automation or when the embedded message is
still byte-identical to what was last rendered.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Protocol

from . import envelope
from .checklist import (
    Checklist,
    ChecklistItem,
    checklist_state,
    label_fingerprint,
    more_than_one_checked,
    parse_checklists,
    render_checklist,
)
from .config import SyncConfig
from .errors import ReconciliationError, classify_error
from .events import AppIdentity, PullRequestEvent, sent_by_this_app
from .labels import (
    SEMVER_ROLES,
    SKIP_RELEASE_ROLE,
    Label,
    LabelSpec,
    find_label_from_fingerprint,
    populate_label,
    render_label,
    skip_release_labels_from_config,
)
from .logging import StructuredLogger, get_logger
from .markdown import bold, italics, sub
from .release import get_label_release, has_release_labels

SEMVER_KEY = "semver"
SKIP_RELEASE_KEY = "skip-release"

ONBOARDED = "onboarded"
SYNCED_FROM_CHECKLIST = "synced-from-checklist"
SYNCED_FROM_LABELS = "synced-from-labels"
SKIPPED = "skipped"

_INTRO = (
    "This repository uses release labels to decide how the next version is bumped. "
    "Every pull request needs one. Choose the label below that best describes your changes."
)


class LabelClient(Protocol):
    async def list_labels(self) -> list[Label]: ...

    async def list_issue_labels(self, number: int) -> list[Label]: ...

    async def create_label(self, label: Label) -> Label: ...

    async def add_labels(self, number: int, names: Iterable[str]) -> None: ...

    async def remove_labels(self, number: int, names: Iterable[str]) -> None: ...

    async def update_pull_body(self, number: int, body: str) -> None: ...


@dataclass
class ReconciliationDiff:
    to_add: list[str] = field(default_factory=list)
    to_remove: list[str] = field(default_factory=list)
    more_than_one_checked: bool = False

    def __bool__(self) -> bool:
        return bool(self.to_add or self.to_remove)


@dataclass
class RenderedChecklists:
    checklists: dict[str, Checklist]
    labels: list[Label]
    sections: list[str]


def section_header(text: str, secondary: str | None = None) -> str:
    return sub(bold(text) + (f" {italics(secondary)}" if secondary else ""))


def section(header: str, checklist: str, warning: str | None = None) -> str:
    text = f"##\n\n{header}\n\n{checklist}"
    if warning:
        text += "\n\n" + sub(":warning: " + italics(bold(warning)))
    return text


def onboarding_message(sections: Sequence[str], *, collapsed: bool = False) -> str:
    body = "\n\n".join(sections)
    if collapsed:
        return (
            "<details>\n<summary><b>Choose a release label</b></summary>\n\n"
            f"{_INTRO}\n\n{body}\n\n</details>"
        )
    return f"### Choose a release label\n\n{_INTRO}\n\n{body}"


# key, header, header hint, warning when more than one box is ticked
_GROUPS = (
    (
        SEMVER_KEY,
        "Semver Labels",
        "(choose one at most)",
        "At most one semver label should be selected",
    ),
    (
        SKIP_RELEASE_KEY,
        "Skip Release Labels",
        None,
        "At most one skip release label should be selected",
    ),
)


def compute_label_changes(
    previous: dict[str, Checklist],
    current: dict[str, Checklist],
    labels: Iterable[Label],
    *,
    logger: StructuredLogger | None = None,
) -> ReconciliationDiff:
    """Labels to add/remove so that ``previous`` becomes ``current``.

    Only items whose checked flag flipped produce a change; an item missing
    from ``previous`` counts as unchecked.
    """
    log = logger or get_logger()
    known = list(labels)
    diff = ReconciliationDiff()
    for key, checklist in current.items():
        if more_than_one_checked(checklist.items):
            diff.more_than_one_checked = True
        before = previous.get(key)
        for item in checklist.items:
            was_checked = before.is_checked(item.id) if before else False
            if item.checked == was_checked:
                continue
            name = find_label_from_fingerprint(item.id, known)
            if name is None:
                log.debug("Couldn't match label with checklist item", item_id=item.id, checklist=key)
                continue
            target = diff.to_add if item.checked else diff.to_remove
            if name not in target:
                target.append(name)
    return diff


class Onboarding:
    """The reconciliation engine for one repository configuration."""

    def __init__(
        self,
        config: SyncConfig,
        client: LabelClient,
        *,
        app: AppIdentity | None = None,
        logger: StructuredLogger | None = None,
    ):
        self.config = config
        self.client = client
        self.app = app or AppIdentity(config.bot_login)
        self.logger = logger or get_logger()

    # --- rendering --------------------------------------------------------
    def _group_specs(self) -> list[tuple[str, list[tuple[str, LabelSpec | None]]]]:
        semver = [(role, self.config.labels.get(role)) for role in SEMVER_ROLES]
        skip: list[tuple[str, LabelSpec | None]] = [
            (SKIP_RELEASE_ROLE, spec) for spec in skip_release_labels_from_config(self.config)
        ]
        return [(SEMVER_KEY, semver), (SKIP_RELEASE_KEY, skip)]

    async def build_checklists(
        self,
        prior: dict[str, Checklist] | None = None,
        attached: Iterable[str] | None = None,
    ) -> RenderedChecklists:
        """Render every checklist section from the current label catalog.

        Checked flags come from ``attached`` label names when given, otherwise
        from the matching items of ``prior``.
        """
        catalog = await self.client.list_labels()
        groups = self._group_specs()
        flat = [pair for _, pairs in groups for pair in pairs]
        resolved = await asyncio.gather(
            *(
                populate_label(role, spec, catalog, self.client, logger=self.logger)
                for role, spec in flat
            )
        )
        attached_names = (
            {name.strip().casefold() for name in attached} if attached is not None else None
        )
        checklists: dict[str, Checklist] = {}
        sections: list[str] = []
        offset = 0
        for (key, pairs), (_, title, hint, warning_text) in zip(groups, _GROUPS):
            group_labels = resolved[offset : offset + len(pairs)]
            offset += len(pairs)
            previous = (prior or {}).get(key)
            items: list[ChecklistItem] = []
            for label in group_labels:
                item_id = label_fingerprint(label.name)
                if attached_names is not None:
                    checked = label.name.strip().casefold() in attached_names
                else:
                    checked = previous.is_checked(item_id) if previous else False
                items.append(ChecklistItem(id=item_id, checked=checked, body=render_label(label)))
            checklist = Checklist(self.config.namespace, key, items)
            checklists[key] = checklist
            warning = warning_text if more_than_one_checked(items) else None
            if warning:
                self.logger.debug("More than one item checked", checklist=key)
            sections.append(
                section(
                    section_header(title, hint),
                    render_checklist(self.config.namespace, key, items),
                    warning,
                )
            )
        # parse again so items are the de-duplicated, as-rendered ones
        rendered = parse_checklists("\n".join(sections), self.config.namespace)
        return RenderedChecklists(
            checklists={key: rendered.get(key, checklists[key]) for key in checklists},
            labels=list(resolved),
            sections=sections,
        )

    def message(self, sections: Sequence[str]) -> str:
        return onboarding_message(sections, collapsed=self.config.collapsed)

    # --- event handling ---------------------------------------------------
    async def handle(self, event: PullRequestEvent) -> str:
        with self.logger.timed_operation(
            "reconcile", action=event.action, pull_number=event.number
        ):
            if event.action == "opened":
                return await self._on_opened(event)
            if event.action not in ("edited", "labeled", "unlabeled"):
                self.logger.debug(f"No change needed for action {event.action}")
                return SKIPPED
            if not envelope.has_envelope(event.body):
                self.logger.debug("Pull request is not onboarding", action=event.action)
                return SKIPPED
            if event.action == "edited":
                return await self._on_edited(event)
            return await self._on_labeled(event)

    async def _on_opened(self, event: PullRequestEvent) -> str:
        release = get_label_release(event.labels, self.config)
        if has_release_labels(release):
            self.logger.debug("Release label already present, skipping on-boarding")
            return SKIPPED
        if envelope.has_envelope(event.body):
            self.logger.debug("On-boarding message already present")
            return SKIPPED
        self.logger.debug("Starting on-boarding flow")
        rendered = await self.build_checklists()
        wrapped = envelope.wrap(self.message(rendered.sections))
        body = f"{event.body}\n\n{wrapped}" if event.body else wrapped
        await self.client.update_pull_body(event.number, body)
        return ONBOARDED

    def _message_changed(self, event: PullRequestEvent) -> bool:
        if not event.body_changed:
            self.logger.debug("No body changes")
            return False
        new_message = envelope.extract(event.body)
        old_message = (
            envelope.extract(event.previous_body)
            if envelope.has_envelope(event.previous_body)
            else ""
        )
        if new_message == old_message:
            self.logger.debug("Nothing changed in the message")
            return False
        self.logger.debug("message changed")
        return True

    async def _on_edited(self, event: PullRequestEvent) -> str:
        if not self._message_changed(event):
            return SKIPPED
        if sent_by_this_app(self.app, event):
            self.logger.debug("Skipping edited event because update was sent by current app")
            return SKIPPED
        if envelope.is_unmodified(event.body):
            self.logger.debug("Skipping edited event because the message is as last rendered")
            return SKIPPED
        self.logger.debug("starting edited flow")

        namespace = self.config.namespace
        current = parse_checklists(envelope.extract(event.body), namespace)
        previous_message = (
            envelope.extract(event.previous_body)
            if event.previous_body and envelope.has_envelope(event.previous_body)
            else ""
        )
        previous = parse_checklists(previous_message, namespace)
        rendered = await self.build_checklists(prior=current)
        body = envelope.splice(event.body, self.message(rendered.sections))

        failures: dict[str, BaseException] = {}
        if checklist_state(rendered.checklists) != checklist_state(previous):
            self.logger.debug("checklists changed")
            diff = compute_label_changes(
                previous, rendered.checklists, rendered.labels, logger=self.logger
            )
            if diff.more_than_one_checked:
                self.logger.debug("More than one checklist item checked in an exclusive group")
            if diff.to_add:
                try:
                    await self.client.add_labels(event.number, diff.to_add)
                except Exception as exc:
                    failures["add_labels"] = exc
            if diff.to_remove:
                try:
                    await self.client.remove_labels(event.number, diff.to_remove)
                except Exception as exc:
                    failures["remove_labels"] = exc
        else:
            self.logger.debug("checklists did not change")

        try:
            await self.client.update_pull_body(event.number, body)
        except Exception as exc:
            failures["update_body"] = exc

        if failures:
            for step, exc in failures.items():
                info = classify_error(exc)
                self.logger.log_error(
                    f"Error during {step.replace('_', ' ')}",
                    error=info.message,
                    category=info.category,
                    pull_number=event.number,
                )
            raise ReconciliationError(failures)
        return SYNCED_FROM_CHECKLIST

    async def _on_labeled(self, event: PullRequestEvent) -> str:
        if sent_by_this_app(self.app, event):
            self.logger.debug("Skipping labeled event because update was sent by current app")
            return SKIPPED
        self.logger.debug("starting labeled flow")
        attached = [label.name for label in await self.client.list_issue_labels(event.number)]
        rendered = await self.build_checklists(attached=attached)
        current = parse_checklists(envelope.extract(event.body), self.config.namespace)
        if checklist_state(current) == checklist_state(rendered.checklists):
            self.logger.debug("Checklist already matches labels")
            return SKIPPED
        self.logger.debug("Writing body from label updates")
        body = envelope.splice(event.body, self.message(rendered.sections))
        try:
            await self.client.update_pull_body(event.number, body)
        except Exception as exc:
            info = classify_error(exc)
            self.logger.log_error(
                "Failed to update body after label updates",
                error=info.message,
                category=info.category,
                pull_number=event.number,
            )
            raise
        return SYNCED_FROM_LABELS


__all__ = [
    "LabelClient",
    "ONBOARDED",
    "Onboarding",
    "ReconciliationDiff",
    "RenderedChecklists",
    "SKIPPED",
    "SYNCED_FROM_CHECKLIST",
    "SYNCED_FROM_LABELS",
    "compute_label_changes",
    "onboarding_message",
    "section",
    "section_header",
]
