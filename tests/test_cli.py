from __future__ import annotations

import json
from typing import Any

from labelsync import cli
from labelsync.envelope import MESSAGE_START
from labelsync.labels import Label

CONFIG = """
labels:
  minor:
    name: feature
skipReleaseLabels: [docs]
logging:
  level: WARNING
"""


def _write_event(tmp_path, action: str = "opened", body: str = "Body") -> str:
    payload: dict[str, Any] = {
        "action": action,
        "pull_request": {"number": 3, "body": body, "labels": []},
        "repository": {"full_name": "acme/widgets"},
        "sender": {"login": "octocat"},
    }
    path = tmp_path / "event.json"
    path.write_text(json.dumps(payload))
    return str(path)


def test_preview_prints_message(tmp_path, capsys):
    cfg = tmp_path / "cfg.yaml"
    cfg.write_text(CONFIG)
    assert cli.main(["preview", "--config", str(cfg)]) == 0
    out = capsys.readouterr().out
    assert "### Choose a release label" in out
    assert "**feature**" in out
    assert "**docs**" in out
    assert MESSAGE_START not in out


def test_preview_wrapped(tmp_path, capsys, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert cli.main(["preview", "--wrapped"]) == 0
    assert MESSAGE_START in capsys.readouterr().out


def test_bad_config_is_usage_error(tmp_path, capsys):
    cfg = tmp_path / "cfg.yaml"
    cfg.write_text("labels: {bogus: x}")
    assert cli.main(["preview", "--config", str(cfg)]) == cli.EXIT_USAGE
    assert "unknown label roles" in capsys.readouterr().err


def test_handle_requires_token(tmp_path, monkeypatch, capsys):
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.delenv("GH_TOKEN", raising=False)
    monkeypatch.chdir(tmp_path)
    code = cli.main(["handle", "--event-path", _write_event(tmp_path)])
    assert code == cli.EXIT_USAGE
    assert "GITHUB_TOKEN" in capsys.readouterr().err


def test_handle_rejects_missing_payload(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    code = cli.main(["handle", "--event-path", str(tmp_path / "missing.json")])
    assert code == cli.EXIT_USAGE
    assert "cannot read event payload" in capsys.readouterr().err


def test_handle_runs_onboarding(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("GITHUB_TOKEN", "tkn")
    written: list[tuple[int, str]] = []

    class _FakeAsyncClient:
        def __init__(self, rest: Any, config: Any = None, *, dry_run: bool = False):
            assert rest.repo == "acme/widgets"
            assert dry_run is True

        async def __aenter__(self) -> _FakeAsyncClient:
            return self

        async def __aexit__(self, *exc: Any) -> None:
            return None

        async def list_labels(self) -> list[Label]:
            return []

        async def create_label(self, label: Label) -> Label:
            return label

        async def update_pull_body(self, number: int, body: str) -> None:
            written.append((number, body))

    monkeypatch.setattr(cli, "create_async_github_client", _FakeAsyncClient)
    code = cli.main(["handle", "--event-path", _write_event(tmp_path), "--dry-run"])
    assert code == 0
    assert written and written[0][0] == 3
    assert written[0][1].startswith("Body\n\n" + MESSAGE_START)
    assert "opened #3: onboarded" in capsys.readouterr().out
