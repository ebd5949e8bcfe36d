from __future__ import annotations

from argparse import Namespace
from datetime import UTC, datetime

from cgov_sync.commands._runtime import failed
from cgov_sync.config import AppSettings
from cgov_sync.domain.epochs import EpochClock
from cgov_sync.types import CommandResult, CommandStatus

COMMAND = "epoch"


def run_epoch(args: Namespace, settings: AppSettings) -> CommandResult:
    clock = EpochClock(settings.genesis_unix, settings.epoch_length_seconds)

    unix_time = getattr(args, "unix_time", None)
    if unix_time is None:
        unix_time = int(datetime.now(UTC).timestamp())
    if unix_time < settings.genesis_unix:
        return failed(COMMAND, "unix_time must not precede genesis")

    epoch_no = clock.epoch_of(unix_time)
    return CommandResult(
        command=COMMAND,
        status=CommandStatus.EXECUTED,
        details={
            "unix_time": unix_time,
            "epoch_no": epoch_no,
            "epoch_start": clock.epoch_start(epoch_no),
            "next_epoch_start": clock.epoch_start(epoch_no + 1),
        },
    )
