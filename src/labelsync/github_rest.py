from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

import requests

from .errors import TransportError
from .retry import run_with_retries

DEFAULT_API_URL = "https://api.github.com"
USER_AGENT = "labelsync-rest/0.3.0"
HTTP_ERROR_STATUS = 400
HTTP_NOT_FOUND = 404
HTTP_UNPROCESSABLE = 422
REQUEST_TIMEOUT = 30


class GitHubAPIError(TransportError):
    """Raised when the GitHub REST API returns an error or cannot be reached."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        response_text: str | None = None,
    ):
        super().__init__(message)
        self.status = status
        self.response_text = response_text


def is_already_exists(exc: BaseException) -> bool:
    """True for the 422 GitHub answers when creating a label that exists."""
    if not isinstance(exc, GitHubAPIError) or exc.status != HTTP_UNPROCESSABLE:
        return False
    return "already_exists" in (exc.response_text or "")


@dataclass
class GitHubRestClient:
    """Blocking REST client for the label and pull request endpoints."""

    token: str
    repo: str
    base_url: str = DEFAULT_API_URL
    session: requests.Session | None = None
    _session: requests.Session = field(init=False, repr=False)

    def __post_init__(self) -> None:  # pragma: no cover - simple wiring
        self._session = self.session or requests.Session()
        self._session.headers.setdefault("Authorization", f"Bearer {self.token}")
        self._session.headers.setdefault("Accept", "application/vnd.github+json")
        self._session.headers.setdefault("User-Agent", USER_AGENT)

    # ---- REST helpers -------------------------------------------------
    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any | None = None,
        allow_status: Iterable[int] = (),
    ) -> Any:
        url = (
            path
            if path.startswith("http")
            else f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"
        )
        allowed = set(allow_status)

        def _run() -> requests.Response:
            try:
                response = self._session.request(
                    method,
                    url,
                    params=params,
                    json=json_body,
                    headers=self._session.headers,
                    timeout=REQUEST_TIMEOUT,
                )
            except requests.RequestException as exc:
                raise GitHubAPIError(f"GitHub API {method} {url} failed: {exc}") from exc
            if response.status_code >= HTTP_ERROR_STATUS and response.status_code not in allowed:
                raise GitHubAPIError(
                    f"GitHub API {method} {url} failed with {response.status_code}",
                    status=response.status_code,
                    response_text=response.text,
                )
            return response

        response = run_with_retries(_run)
        if response.status_code in allowed:
            return None
        if response.text:
            try:
                return response.json()
            except ValueError:
                return response.text
        return None

    def _paginate(
        self, path: str, *, params: dict[str, Any] | None = None
    ) -> list[Any]:
        params = dict(params or {})
        per_page = params.setdefault("per_page", 100)
        params.setdefault("page", 1)
        results: list[Any] = []
        while True:
            data = self._request("GET", path, params=params)
            if not isinstance(data, list):
                break
            results.extend(data)
            if len(data) < per_page:
                break
            params["page"] = params.get("page", 1) + 1
        return results

    # ---- Label catalog ------------------------------------------------
    def list_labels(self) -> list[dict[str, Any]]:
        data = self._paginate(f"/repos/{self.repo}/labels")
        return [entry for entry in data if isinstance(entry, dict)]

    def create_label(
        self, *, name: str, color: str | None = None, description: str | None = None
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {"name": name}
        if color:
            payload["color"] = color.lstrip("#")
        if description:
            payload["description"] = description
        data = self._request("POST", f"/repos/{self.repo}/labels", json_body=payload)
        return data if isinstance(data, dict) else payload

    # ---- Labels on a pull request ------------------------------------
    def list_issue_labels(self, *, number: int) -> list[dict[str, Any]]:
        data = self._paginate(f"/repos/{self.repo}/issues/{number}/labels")
        return [entry for entry in data if isinstance(entry, dict)]

    def add_labels(self, *, number: int, names: Iterable[str]) -> None:
        label_list = list(names)
        if not label_list:
            return
        self._request(
            "POST",
            f"/repos/{self.repo}/issues/{number}/labels",
            json_body={"labels": label_list},
        )

    def remove_label(self, *, number: int, name: str) -> None:
        # 404: label was not attached, nothing to remove
        self._request(
            "DELETE",
            f"/repos/{self.repo}/issues/{number}/labels/{quote(name, safe='')}",
            allow_status=(HTTP_NOT_FOUND,),
        )

    # ---- Pull request body -------------------------------------------
    def update_pull_body(self, *, number: int, body: str) -> None:
        self._request(
            "PATCH", f"/repos/{self.repo}/pulls/{number}", json_body={"body": body}
        )


__all__ = [
    "DEFAULT_API_URL",
    "GitHubAPIError",
    "GitHubRestClient",
    "is_already_exists",
]
