from __future__ import annotations

import pytest

from labelsync.checklist import (
    Checklist,
    ChecklistItem,
    checklist_state,
    is_valid_token,
    label_fingerprint,
    more_than_one_checked,
    parse_checklists,
    render_checklist,
)

NS = "release-labels"


def _items() -> list[ChecklistItem]:
    return [
        ChecklistItem(label_fingerprint("major"), False, "**major** Increment the major version"),
        ChecklistItem(label_fingerprint("minor"), True, "**minor** Increment the minor version"),
        ChecklistItem(label_fingerprint("patch"), False, "**patch**"),
    ]


def test_fingerprint_is_stable_and_canonical() -> None:
    assert label_fingerprint("Minor") == label_fingerprint(" minor ")
    assert label_fingerprint("minor") != label_fingerprint("major")
    assert len(label_fingerprint("minor")) == 12


def test_render_line_format() -> None:
    text = render_checklist(NS, "semver", _items())
    lines = text.splitlines()
    assert len(lines) == 3
    assert lines[1] == (
        f"- [x] <!-- {NS}:semver:{label_fingerprint('minor')} --> "
        "**minor** Increment the minor version"
    )
    assert lines[0].startswith("- [ ] ")


def test_parse_recovers_id_and_checked_state() -> None:
    items = _items()
    parsed = parse_checklists(render_checklist(NS, "semver", items), NS)
    assert list(parsed) == ["semver"]
    assert [(i.id, i.checked) for i in parsed["semver"].items] == [
        (i.id, i.checked) for i in items
    ]


def test_parse_ignores_body_text_changes() -> None:
    text = render_checklist(NS, "semver", _items()).replace("Increment", "Bump")
    parsed = parse_checklists(text, NS)
    assert parsed["semver"].is_checked(label_fingerprint("minor"))


def test_parse_multiple_checklists_and_foreign_namespaces() -> None:
    text = "\n".join(
        [
            "Some intro text",
            render_checklist(NS, "semver", _items()),
            "",
            render_checklist(NS, "skip-release", [ChecklistItem("abc123", True, "skip")]),
            render_checklist("other", "semver", [ChecklistItem("def456", True, "x")]),
        ]
    )
    parsed = parse_checklists(text, NS)
    assert list(parsed) == ["semver", "skip-release"]
    assert parsed["skip-release"].items == [ChecklistItem("abc123", True, "skip")]


def test_parse_skips_malformed_lines() -> None:
    text = "\n".join(
        [
            f"- [?] <!-- {NS}:semver:abc123 --> bad mark",
            f"- [x] <!-- {NS}:semver --> missing id",
            "- [x] plain task without id",
            f"* [X] <!-- {NS}:semver:abc123 --> upper case mark",
        ]
    )
    parsed = parse_checklists(text, NS)
    assert [(i.id, i.checked) for i in parsed["semver"].items] == [("abc123", True)]


def test_parse_empty_or_missing_document() -> None:
    assert parse_checklists("", NS) == {}
    assert parse_checklists(None, NS) == {}
    assert parse_checklists("just prose\n- [ ] a normal task", NS) == {}


def test_duplicate_ids_keep_first() -> None:
    items = [ChecklistItem("aaa111", True, "one"), ChecklistItem("aaa111", False, "two")]
    rendered = render_checklist(NS, "k", items)
    assert rendered.count("aaa111") == 1
    doubled = rendered + "\n" + f"- [ ] <!-- {NS}:k:aaa111 --> again"
    parsed = parse_checklists(doubled, NS)
    assert parsed["k"].items == [ChecklistItem("aaa111", True, "one")]


def test_more_than_one_checked() -> None:
    items = _items()
    assert not more_than_one_checked(items)
    items[0] = ChecklistItem(items[0].id, True, items[0].body)
    assert more_than_one_checked(items)
    assert not more_than_one_checked([])


def test_checklist_state_ignores_body() -> None:
    a = {"semver": Checklist(NS, "semver", [ChecklistItem("abc", True, "one")])}
    b = {"semver": Checklist(NS, "semver", [ChecklistItem("abc", True, "two")])}
    assert a != b
    assert checklist_state(a) == checklist_state(b)


@pytest.mark.parametrize("namespace", ["release-labels", "acme_team.release-labels", "Ünicode.v2"])
def test_render_then_parse_round_trips_for_accepted_namespaces(namespace: str) -> None:
    assert is_valid_token(namespace)
    rendered = render_checklist(namespace, "semver", _items())
    parsed = parse_checklists(rendered, namespace)
    assert list(parsed) == ["semver"]
    assert parsed["semver"].items == _items()


@pytest.mark.parametrize("namespace", ["release labels", "team/release", "a:b", "x>", ""])
def test_render_refuses_namespaces_that_cannot_be_parsed(namespace: str) -> None:
    assert not is_valid_token(namespace)
    with pytest.raises(ValueError):
        render_checklist(namespace, "semver", _items())
