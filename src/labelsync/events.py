"""Pull request webhook payloads and the self-authorship check."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, TypedDict, cast


class _UserDict(TypedDict, total=False):
    login: str


class _LabelDict(TypedDict, total=False):
    name: str


class _PullRequestDict(TypedDict, total=False):
    number: int
    body: str | None
    labels: list[_LabelDict]


class _RepositoryDict(TypedDict, total=False):
    full_name: str


class EventError(ValueError):
    pass


@dataclass
class PullRequestEvent:
    action: str
    repo: str  # owner/name
    number: int
    body: str
    previous_body: str | None = None  # changes.body.from on edited events
    labels: list[str] = field(default_factory=list)
    sender_login: str | None = None

    @property
    def body_changed(self) -> bool:
        return isinstance(self.previous_body, str) and bool(self.body)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> PullRequestEvent:
        pr_any = payload.get("pull_request")
        if not isinstance(pr_any, dict):
            raise EventError("payload has no pull_request object")
        pr = cast(_PullRequestDict, pr_any)
        number = pr.get("number", payload.get("number"))
        if not isinstance(number, int):
            raise EventError("payload has no pull request number")
        repo_any = payload.get("repository") or {}
        repo = cast(_RepositoryDict, repo_any).get("full_name") if isinstance(repo_any, dict) else None
        if not isinstance(repo, str) or "/" not in repo:
            raise EventError("payload has no repository.full_name")
        labels: list[str] = []
        for entry in pr.get("labels") or []:
            if isinstance(entry, dict) and isinstance(entry.get("name"), str):
                labels.append(entry["name"])
        changes = payload.get("changes") or {}
        previous_body = None
        if isinstance(changes, dict) and isinstance(changes.get("body"), dict):
            previous_body = changes["body"].get("from")
        sender = cast(_UserDict, payload.get("sender") or {})
        return cls(
            action=str(payload.get("action", "")),
            repo=repo,
            number=number,
            body=pr.get("body") or "",
            previous_body=previous_body if isinstance(previous_body, str) else None,
            labels=labels,
            sender_login=sender.get("login"),
        )


@dataclass(frozen=True)
class AppIdentity:
    bot_login: str

    def matches(self, login: str | None) -> bool:
        return bool(login) and str(login).casefold() == self.bot_login.casefold()


def sent_by_this_app(app: AppIdentity, event: PullRequestEvent) -> bool:
    """True when the actor behind ``event`` is this automation itself."""
    return app.matches(event.sender_login)


__all__ = ["AppIdentity", "EventError", "PullRequestEvent", "sent_by_this_app"]
