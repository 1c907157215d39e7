from __future__ import annotations

import json

import pytest

from labelsync.config import ConfigError, config_from_mapping, discover_config, load_config
from labelsync.labels import LabelSpec
from labelsync.release import get_label_release, has_release_labels

CONFIG_YAML = """
namespace: autobot
labels:
  major:
    name: breaking
    description: Breaking change
    color: "#C5000B"
  minor: feature
skipReleaseLabels:
  - docs
  - name: internal
app:
  bot_login: labelsync[bot]
onboarding:
  collapsed: true
logging:
  json_enabled: true
  level: DEBUG
"""


def test_load_yaml_config(tmp_path) -> None:
    path = tmp_path / ".labelsync.yaml"
    path.write_text(CONFIG_YAML)
    cfg = load_config(path)
    assert cfg.namespace == "autobot"
    assert cfg.labels["major"] == LabelSpec("breaking", "Breaking change", "#C5000B")
    assert cfg.labels["minor"] == LabelSpec(name="feature")
    assert [s.name for s in cfg.skip_release_labels] == ["docs", "internal"]
    assert cfg.bot_login == "labelsync[bot]"
    assert cfg.collapsed is True
    assert cfg.logging_json_enabled is True
    assert cfg.logging_level == "DEBUG"
    assert cfg.source_file == path


def test_load_autorc_json_list_form(tmp_path) -> None:
    path = tmp_path / ".autorc"
    path.write_text(
        json.dumps(
            {
                "labels": [
                    {"releaseType": "minor", "name": "enhancement"},
                    {"releaseType": "minor", "name": "feature"},
                    {"name": "no-role"},
                ],
                "skipReleaseLabels": ["documentation"],
            }
        )
    )
    cfg = discover_config(tmp_path)
    assert cfg.labels == {"minor": LabelSpec(name="enhancement")}
    assert cfg.skip_release_labels == [LabelSpec(name="documentation")]


def test_discover_defaults_when_absent(tmp_path) -> None:
    cfg = discover_config(tmp_path)
    assert cfg.labels == {}
    assert cfg.namespace == "release-labels"


def test_config_errors(tmp_path) -> None:
    with pytest.raises(ConfigError):
        load_config(tmp_path / "missing.yaml")
    with pytest.raises(ConfigError):
        config_from_mapping({"labels": {"huge": "x"}})
    with pytest.raises(ConfigError):
        config_from_mapping({"skipReleaseLabels": "docs"})
    bad = tmp_path / "bad.yaml"
    bad.write_text("labels: [unclosed")
    with pytest.raises(ConfigError):
        load_config(bad)


@pytest.mark.parametrize("namespace", ["release labels", "team/release", "a:b"])
def test_namespace_that_cannot_round_trip_is_rejected(namespace: str) -> None:
    with pytest.raises(ConfigError, match="namespace"):
        config_from_mapping({"namespace": namespace})


def test_namespace_with_dots_and_underscores_is_accepted() -> None:
    assert config_from_mapping({"namespace": "acme_team.release-labels"}).namespace == (
        "acme_team.release-labels"
    )


def test_release_inspector() -> None:
    cfg = config_from_mapping(
        {"labels": {"minor": "feature"}, "skipReleaseLabels": ["docs"]}
    )
    info = get_label_release([{"name": "Feature"}, "bug"], cfg)
    assert info.semver == ["minor"]
    assert has_release_labels(info)
    info = get_label_release(["docs"], cfg)
    assert info.skip_release == ["docs"] and has_release_labels(info)
    assert not has_release_labels(get_label_release(["bug", "minor"], cfg))
