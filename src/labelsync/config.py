from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, cast

import yaml

from .checklist import is_valid_token
from .labels import DEFAULT_LABELS, LabelSpec

DEFAULT_NAMESPACE = "release-labels"
DEFAULT_BOT_LOGIN = "github-actions[bot]"
CONFIG_CANDIDATES = (".labelsync.yaml", ".labelsync.yml", ".autorc")


class ConfigError(RuntimeError):
    pass


@dataclass
class SyncConfig:
    labels: dict[str, LabelSpec] = field(default_factory=dict)
    skip_release_labels: list[LabelSpec] = field(default_factory=list)
    namespace: str = DEFAULT_NAMESPACE
    github_repo: str | None = None
    # Self-authorship: login used by this automation when it edits a PR
    bot_login: str = DEFAULT_BOT_LOGIN
    collapsed: bool = False
    # Logging configuration
    logging_json_enabled: bool = False
    logging_level: str = "INFO"
    source_file: Path | None = None


def _label_spec(value: Any, where: str) -> LabelSpec:
    if value is None:
        return LabelSpec()
    if isinstance(value, str):
        return LabelSpec(name=value)
    if not isinstance(value, dict):
        raise ConfigError(f"{where} must be a label name or mapping, got {type(value).__name__}")
    entry = cast(dict[str, Any], value)
    color = entry.get("color")
    return LabelSpec(
        name=entry.get("name"),
        description=entry.get("description"),
        color=str(color) if color is not None else None,
    )


def _parse_labels(raw: Any) -> dict[str, LabelSpec]:
    labels: dict[str, LabelSpec] = {}
    if raw is None:
        return labels
    if isinstance(raw, dict):
        for role, value in cast(dict[str, Any], raw).items():
            labels[str(role)] = _label_spec(value, f"labels.{role}")
        return labels
    if isinstance(raw, list):
        # auto's list form: [{releaseType: minor, name: feature}, ...]; first entry per role wins
        for idx, entry in enumerate(raw):
            if not isinstance(entry, dict):
                raise ConfigError(f"labels[{idx}] must be a mapping")
            role = entry.get("releaseType") or entry.get("role")
            if not role:
                continue
            labels.setdefault(str(role), _label_spec(entry, f"labels[{idx}]"))
        return labels
    raise ConfigError("labels must be a mapping or a list")


def config_from_mapping(raw: dict[str, Any], *, source_file: Path | None = None) -> SyncConfig:
    if not isinstance(raw, dict):
        raise ConfigError("configuration root must be a mapping")
    labels = _parse_labels(raw.get("labels"))
    unknown = sorted(role for role in labels if role not in DEFAULT_LABELS)
    if unknown:
        raise ConfigError(f"unknown label roles: {', '.join(unknown)}")
    skip_any = raw.get("skipReleaseLabels", raw.get("skip_release_labels", [])) or []
    if not isinstance(skip_any, list):
        raise ConfigError("skipReleaseLabels must be a list")
    skip = [_label_spec(v, f"skipReleaseLabels[{i}]") for i, v in enumerate(skip_any)]
    app = cast(dict[str, Any], raw.get("app", {}) or {})
    onboarding = cast(dict[str, Any], raw.get("onboarding", {}) or {})
    github = cast(dict[str, Any], raw.get("github", {}) or {})
    logging_config = cast(dict[str, Any], raw.get("logging", {}) or {})
    namespace = str(raw.get("namespace", DEFAULT_NAMESPACE))
    if not is_valid_token(namespace):
        raise ConfigError(
            f"namespace {namespace!r} may only contain letters, digits, '_', '.' and '-'"
        )
    return SyncConfig(
        labels=labels,
        skip_release_labels=skip,
        namespace=namespace,
        github_repo=github.get("repo"),
        bot_login=str(app.get("bot_login", DEFAULT_BOT_LOGIN)),
        collapsed=bool(onboarding.get("collapsed", False)),
        logging_json_enabled=bool(logging_config.get("json_enabled", False)),
        logging_level=str(logging_config.get("level", "INFO")),
        source_file=source_file,
    )


def load_config(path: str | Path) -> SyncConfig:
    """Load YAML (or JSON, e.g. an ``.autorc``) configuration from ``path``."""
    p = Path(path)
    if not p.exists():
        raise ConfigError(f"Configuration file not found: {p}")
    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid configuration in {p}: {exc}") from exc
    return config_from_mapping(cast(dict[str, Any], raw), source_file=p)


def discover_config(directory: str | Path = ".") -> SyncConfig:
    """Load the first known configuration file in ``directory``, else defaults."""
    base = Path(directory)
    for name in CONFIG_CANDIDATES:
        candidate = base / name
        if candidate.exists():
            return load_config(candidate)
    return SyncConfig()


__all__ = [
    "CONFIG_CANDIDATES",
    "ConfigError",
    "SyncConfig",
    "config_from_mapping",
    "discover_config",
    "load_config",
]
