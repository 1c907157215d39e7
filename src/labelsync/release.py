"""Which release labels a pull request currently carries."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from .config import SyncConfig
from .labels import (
    SEMVER_ROLES,
    SKIP_RELEASE_ROLE,
    Label,
    label_to_string,
    resolve_spec,
    skip_release_labels_from_config,
)


@dataclass
class ReleaseInfo:
    semver: list[str] = field(default_factory=list)  # roles, e.g. ["minor"]
    skip_release: list[str] = field(default_factory=list)  # attached label names


def get_label_release(
    labels: Iterable[Label | dict[str, Any] | str], config: SyncConfig
) -> ReleaseInfo:
    attached = {label_to_string(label).strip().casefold() for label in labels}
    info = ReleaseInfo()
    for role in SEMVER_ROLES:
        name = resolve_spec(role, config.labels.get(role)).name
        if name.casefold() in attached:
            info.semver.append(role)
    for spec in skip_release_labels_from_config(config):
        name = resolve_spec(SKIP_RELEASE_ROLE, spec).name
        if name.casefold() in attached:
            info.skip_release.append(name)
    return info


def has_release_labels(info: ReleaseInfo) -> bool:
    return bool(info.semver or info.skip_release)


__all__ = ["ReleaseInfo", "get_label_release", "has_release_labels"]
