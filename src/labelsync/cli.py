"""labelsync CLI.

Subcommands:
  handle   -> run one reconciliation pass for a pull_request webhook payload
  preview  -> print the on-boarding message rendered from configuration only

Intended for CI: ``labelsync handle --event-path "$GITHUB_EVENT_PATH"`` with
``GITHUB_TOKEN`` (or ``GH_TOKEN``) in the environment.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path
from typing import Any

from labelsync.concurrency import create_async_github_client
from labelsync.config import ConfigError, SyncConfig
from labelsync.envelope import wrap
from labelsync.errors import MalformedEnvelopeError, ReconciliationError, TransportError, redact
from labelsync.events import EventError, PullRequestEvent
from labelsync.github_rest import GitHubRestClient
from labelsync.labels import Label, resolve_spec
from labelsync.logging import StructuredLogger
from labelsync.onboarding import Onboarding
from labelsync.runtime import execute_command, prepare_config, prepare_logging

REPO_HELP = "Override target repository (owner/repo)"
EXIT_FAILURE = 1
EXIT_USAGE = 2


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="labelsync", description="Keep release-label checklists and labels in sync"
    )
    p.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress informational logging (env: LABELSYNC_QUIET=1)",
    )
    sub = p.add_subparsers(dest="cmd", required=True, metavar="<command>")

    ph = sub.add_parser("handle", help="Reconcile one pull_request event payload")
    ph.add_argument("--config", help="Configuration file (default: discover in cwd)")
    ph.add_argument(
        "--event-path",
        default=os.environ.get("GITHUB_EVENT_PATH"),
        help="Webhook payload JSON (env: GITHUB_EVENT_PATH)",
    )
    ph.add_argument("--repo", help=REPO_HELP)
    ph.add_argument("--bot-login", help="Login this automation edits pull requests as")
    ph.add_argument("--dry-run", action="store_true", help="Log mutations without applying them")

    pp = sub.add_parser("preview", help="Print the on-boarding message for the configuration")
    pp.add_argument("--config", help="Configuration file (default: discover in cwd)")
    pp.add_argument("--wrapped", action="store_true", help="Include the envelope markers")
    return p


class _OfflineCatalog:
    """Label source for ``preview``: configuration only, never the network."""

    async def list_labels(self) -> list[Label]:
        return []

    async def create_label(self, label: Label) -> Label:
        return label


def _load_event(path: str | None) -> PullRequestEvent:
    if not path:
        raise EventError("no event payload given (use --event-path or GITHUB_EVENT_PATH)")
    try:
        payload: Any = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise EventError(f"cannot read event payload {path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise EventError("event payload must be a JSON object")
    return PullRequestEvent.from_payload(payload)


def _cmd_handle(cfg: SyncConfig, args: argparse.Namespace, logger: StructuredLogger) -> int:
    try:
        event = _load_event(args.event_path)
    except EventError as exc:
        print(f"[handle] {exc}", file=sys.stderr)
        return EXIT_USAGE
    repo = cfg.github_repo or event.repo
    token = os.environ.get("GITHUB_TOKEN") or os.environ.get("GH_TOKEN")
    if not token:
        print("[handle] GITHUB_TOKEN or GH_TOKEN is required", file=sys.stderr)
        return EXIT_USAGE
    rest = GitHubRestClient(token=token, repo=repo)

    async def _run() -> str:
        async with create_async_github_client(rest, dry_run=args.dry_run) as client:
            return await Onboarding(cfg, client, logger=logger).handle(event)

    try:
        outcome = asyncio.run(_run())
    except ReconciliationError as exc:
        for step, failure in exc.failures.items():
            print(f"[handle] {step} failed: {redact(str(failure))}", file=sys.stderr)
        return EXIT_FAILURE
    except (MalformedEnvelopeError, TransportError) as exc:
        print(f"[handle] {redact(str(exc))}", file=sys.stderr)
        return EXIT_FAILURE
    print(f"[handle] {event.action} #{event.number}: {outcome}")
    return 0


def _cmd_preview(cfg: SyncConfig, args: argparse.Namespace, logger: StructuredLogger) -> int:
    engine = Onboarding(cfg, _OfflineCatalog(), logger=logger)  # type: ignore[arg-type]
    rendered = asyncio.run(engine.build_checklists())
    message = engine.message(rendered.sections)
    print(wrap(message) if args.wrapped else message)
    return 0


def _describe_labels(cfg: SyncConfig) -> list[str]:
    return [resolve_spec(role, spec).name for role, spec in sorted(cfg.labels.items())]


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if not args.quiet and os.environ.get("LABELSYNC_QUIET") == "1":
        args.quiet = True
    try:
        cfg = prepare_config(args)
    except ConfigError as exc:
        print(f"[config] {exc}", file=sys.stderr)
        return EXIT_USAGE
    logger = prepare_logging(cfg, quiet=args.quiet)
    logger.debug("configuration loaded", namespace=cfg.namespace, labels=_describe_labels(cfg))
    handlers = {
        "handle": lambda: _cmd_handle(cfg, args, logger),
        "preview": lambda: _cmd_preview(cfg, args, logger),
    }
    handler = handlers.get(args.cmd)
    if handler is None:  # pragma: no cover - argparse enforces valid choices
        parser.print_help()
        return EXIT_USAGE
    return execute_command(handler, logger, args.cmd)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
