"""Label catalog mapping.

Resolves the label specifications found in configuration against the
repository's label catalog, creating missing labels on the way.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from .checklist import label_fingerprint
from .github_rest import is_already_exists
from .logging import StructuredLogger, get_logger
from .markdown import bold

if TYPE_CHECKING:
    from .config import SyncConfig

SEMVER_ROLES = ("major", "minor", "patch")
SKIP_RELEASE_ROLE = "skip-release"


@dataclass(frozen=True)
class Label:
    name: str
    description: str | None = None
    color: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Label:
        return cls(
            name=str(data.get("name", "")),
            description=data.get("description") or None,
            color=data.get("color") or None,
        )


@dataclass(frozen=True)
class LabelSpec:
    """A label as written in configuration; every field is optional."""

    name: str | None = None
    description: str | None = None
    color: str | None = None


DEFAULT_LABELS: dict[str, Label] = {
    "major": Label("major", "Increment the major version when merged", "C5000B"),
    "minor": Label("minor", "Increment the minor version when merged", "F1A60E"),
    "patch": Label("patch", "Increment the patch version when merged", "870048"),
    SKIP_RELEASE_ROLE: Label(
        "skip-release", "Preserve the current version when merged", "BF5416"
    ),
}


class LabelCreator(Protocol):
    async def create_label(self, label: Label) -> Label: ...


def normalize_color(color: str | None) -> str | None:
    if not color:
        return None
    return color.strip().lstrip("#").upper() or None


def resolve_spec(role: str, spec: LabelSpec | None) -> Label:
    """Turn a configuration entry into a concrete label, filling role defaults."""
    default = DEFAULT_LABELS.get(role)
    spec = spec or LabelSpec()
    name = spec.name or (default.name if default else role)
    use_default = default is not None and name.casefold() == default.name.casefold()
    description = spec.description or (default.description if use_default else None)
    color = normalize_color(spec.color) or (default.color if use_default else None)
    return Label(name=name, description=description, color=color)


def find_in_catalog(name: str, catalog: Iterable[Label]) -> Label | None:
    wanted = name.strip().casefold()
    for label in catalog:
        if label.name.strip().casefold() == wanted:
            return label
    return None


async def populate_label(
    role: str,
    spec: LabelSpec | None,
    catalog: Sequence[Label],
    client: LabelCreator,
    *,
    logger: StructuredLogger | None = None,
) -> Label:
    """Return the catalog label for ``role``, creating it when absent.

    Creating a label that another pass created in the meantime is treated as
    success: the desired label is returned as configured.
    """
    log = logger or get_logger()
    desired = resolve_spec(role, spec)
    existing = find_in_catalog(desired.name, catalog)
    if existing is not None:
        return existing
    log.debug("Creating missing label", role=role, label=desired.name)
    try:
        return await client.create_label(desired)
    except Exception as exc:
        if is_already_exists(exc):
            log.debug("Label already exists", role=role, label=desired.name)
            return desired
        raise


def skip_release_labels_from_config(config: SyncConfig) -> list[LabelSpec]:
    """The role entry first, then each additional skip-release name once."""
    specs: list[LabelSpec] = [config.labels.get(SKIP_RELEASE_ROLE) or LabelSpec()]
    seen = {resolve_spec(SKIP_RELEASE_ROLE, specs[0]).name.casefold()}
    for spec in config.skip_release_labels:
        name = resolve_spec(SKIP_RELEASE_ROLE, spec).name
        if name.casefold() in seen:
            continue
        seen.add(name.casefold())
        specs.append(spec)
    return specs


def label_to_string(label: Label | dict[str, Any] | str) -> str:
    if isinstance(label, Label):
        return label.name
    if isinstance(label, dict):
        return str(label.get("name", ""))
    return str(label)


def render_label(label: Label) -> str:
    text = bold(label.name)
    if label.description:
        text += f" {label.description}"
    return text


def find_label_from_fingerprint(item_id: str, labels: Iterable[Label]) -> str | None:
    for label in labels:
        if label_fingerprint(label.name) == item_id:
            return label.name
    return None


__all__ = [
    "DEFAULT_LABELS",
    "Label",
    "LabelCreator",
    "LabelSpec",
    "SEMVER_ROLES",
    "SKIP_RELEASE_ROLE",
    "find_in_catalog",
    "find_label_from_fingerprint",
    "label_to_string",
    "normalize_color",
    "populate_label",
    "render_label",
    "resolve_spec",
    "skip_release_labels_from_config",
]
