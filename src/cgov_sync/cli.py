from __future__ import annotations

import json
from argparse import ArgumentParser, Namespace
from collections.abc import Callable, Sequence

from cgov_sync.commands import (
    run_epoch,
    run_incremental_sync,
    run_sync,
    run_sync_from_slot,
)
from cgov_sync.config import AppSettings, get_settings
from cgov_sync.observability.logging import configure_logging
from cgov_sync.types import CommandResult, CommandStatus

CommandHandler = Callable[[Namespace, AppSettings], CommandResult]

COMMAND_HANDLERS: dict[str, CommandHandler] = {
    "sync-from-slot": run_sync_from_slot,
    "incremental-sync": run_incremental_sync,
    "run-sync": run_sync,
    "epoch": run_epoch,
}


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(prog="cgov-sync", description="Cardano governance sync CLI")
    parser.add_argument("--json", action="store_true", help="emit machine-readable JSON output")

    subparsers = parser.add_subparsers(dest="command", required=True)

    slot = subparsers.add_parser("sync-from-slot")
    slot.add_argument("--from-slot", required=True, type=int)
    slot.add_argument("--to-slot", type=int, default=None)
    slot.add_argument("--max-blocks", type=int, default=None)
    slot.add_argument(
        "--include-artifacts",
        action="store_true",
        help="include blocks, certificates, votes and proposals in the output",
    )

    incremental = subparsers.add_parser("incremental-sync")
    incremental.add_argument("--start-slot", type=int, default=None)
    incremental.add_argument("--batch-size", type=int, default=100)
    incremental.add_argument("--max-blocks", type=int, default=None)

    sync = subparsers.add_parser("run-sync")
    sync.add_argument("--force", action="store_true")
    sync.add_argument("--cooldown-ms", type=int, default=None)
    sync.add_argument("--max-new-proposals", type=int, default=None)
    sync.add_argument("--max-actions", type=int, default=None)
    sync.add_argument("--max-votes-per-action", type=int, default=None)
    sync.add_argument("--max-vp-lookups", type=int, default=None)

    epoch = subparsers.add_parser("epoch")
    epoch.add_argument("--unix-time", type=int, default=None)

    return parser


def _emit_result(result: CommandResult, *, as_json: bool) -> None:
    if as_json:
        print(result.to_json())
        return

    print(f"{result.command}: {result.status.value}")
    if result.details:
        print(json.dumps(result.details, indent=2, sort_keys=True, default=str))


def entrypoint(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    settings = get_settings()
    configure_logging(settings.log_level, settings.service_name)

    handler = COMMAND_HANDLERS[str(args.command)]
    result = handler(args, settings)
    _emit_result(result, as_json=bool(args.json))
    return 1 if result.status == CommandStatus.FAILED else 0


if __name__ == "__main__":
    raise SystemExit(entrypoint())
