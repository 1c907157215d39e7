"""Async access to the GitHub REST client.

The reconciliation engine is written with ``asyncio`` so that independent
calls (one label lookup per configured role) can be issued together. The
REST client itself is blocking, so every call is pushed to a thread pool.
"""

from __future__ import annotations

import asyncio
import functools
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from types import TracebackType
from typing import Any, TypeVar

from .github_rest import GitHubRestClient
from .labels import Label
from .logging import StructuredLogger, get_logger

T = TypeVar("T")


class ConcurrencyConfig:
    """Configuration for concurrency settings."""

    def __init__(self, enabled: bool = True, max_workers: int = 4):
        self.enabled = enabled
        self.max_workers = max_workers


class AsyncGitHubClient:
    """Async wrapper around :class:`GitHubRestClient`.

    With ``dry_run`` set, mutations are logged and skipped while reads still
    reach the API.
    """

    def __init__(
        self,
        rest: GitHubRestClient,
        concurrency_config: ConcurrencyConfig | None = None,
        *,
        dry_run: bool = False,
        logger: StructuredLogger | None = None,
    ):
        self.rest = rest
        self.config = concurrency_config or ConcurrencyConfig()
        self.dry_run = dry_run
        self.logger = logger or get_logger()
        self._executor: ThreadPoolExecutor | None = None

    def __enter__(self) -> AsyncGitHubClient:
        if self.config.enabled:
            self._executor = ThreadPoolExecutor(max_workers=self.config.max_workers)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._executor:
            self._executor.shutdown(wait=True)
            self._executor = None

    async def __aenter__(self) -> AsyncGitHubClient:
        return self.__enter__()

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.__exit__(exc_type, exc_val, exc_tb)

    async def _call(self, fn: Callable[..., T], **kwargs: Any) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, functools.partial(fn, **kwargs))

    # ---- reads ---------------------------------------------------------
    async def list_labels(self) -> list[Label]:
        data = await self._call(self.rest.list_labels)
        return [Label.from_api(entry) for entry in data]

    async def list_issue_labels(self, number: int) -> list[Label]:
        data = await self._call(self.rest.list_issue_labels, number=number)
        return [Label.from_api(entry) for entry in data]

    # ---- mutations -----------------------------------------------------
    async def create_label(self, label: Label) -> Label:
        if self.dry_run:
            self.logger.log_label_action("create", [label.name], dry_run=True)
            return label
        data = await self._call(
            self.rest.create_label,
            name=label.name,
            color=label.color,
            description=label.description,
        )
        created = Label.from_api(data)
        return created if created.name else label

    async def add_labels(self, number: int, names: Iterable[str]) -> None:
        label_list = list(names)
        self.logger.log_label_action("add", label_list, pull_number=number, dry_run=self.dry_run)
        if self.dry_run or not label_list:
            return
        await self._call(self.rest.add_labels, number=number, names=label_list)

    async def remove_labels(self, number: int, names: Iterable[str]) -> None:
        label_list = list(names)
        self.logger.log_label_action(
            "remove", label_list, pull_number=number, dry_run=self.dry_run
        )
        if self.dry_run:
            return
        first_error: Exception | None = None
        for name in label_list:
            try:
                await self._call(self.rest.remove_label, number=number, name=name)
            except Exception as exc:
                self.logger.log_error("Failed to remove label", error=str(exc), label=name)
                first_error = first_error or exc
        if first_error is not None:
            raise first_error

    async def update_pull_body(self, number: int, body: str) -> None:
        self.logger.log_operation("update_body", pull_number=number, dry_run=self.dry_run)
        if self.dry_run:
            return
        await self._call(self.rest.update_pull_body, number=number, body=body)


def create_async_github_client(
    rest: GitHubRestClient,
    config: ConcurrencyConfig | None = None,
    *,
    dry_run: bool = False,
) -> AsyncGitHubClient:
    """Factory function to create async GitHub client."""
    return AsyncGitHubClient(rest, config, dry_run=dry_run)


__all__ = ["AsyncGitHubClient", "ConcurrencyConfig", "create_async_github_client"]
