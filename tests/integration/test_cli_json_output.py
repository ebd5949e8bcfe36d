from __future__ import annotations

import json

import pytest

from cgov_sync.cli import entrypoint
from cgov_sync.domain.epochs import EpochClock


def test_cli_epoch_json_output(capsys: pytest.CaptureFixture[str]) -> None:
    start = EpochClock().epoch_start(540)

    exit_code = entrypoint(["--json", "epoch", "--unix-time", str(start)])

    assert exit_code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["command"] == "epoch"
    assert payload["status"] == "executed"
    assert payload["details"]["epoch_no"] == 540


def test_cli_validation_failure_exits_nonzero(capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = entrypoint(["--json", "sync-from-slot", "--from-slot", "20", "--to-slot", "10"])

    assert exit_code == 1
    payload = json.loads(capsys.readouterr().out)
    assert payload["status"] == "failed"
    assert payload["details"]["error"] == "invalid_parameters"


def test_cli_run_sync_against_fake_upstream(
    capsys: pytest.CaptureFixture[str],
    monkeypatch: pytest.MonkeyPatch,
    make_context,
    fake_koios,
    proposal_row,
) -> None:
    fake_koios.on("GET", "/proposal_list", [proposal_row("p1")])
    fake_koios.on("GET", "/proposal_votes", [])
    monkeypatch.setattr(
        "cgov_sync.commands._runtime.build_context", lambda settings: make_context()
    )

    exit_code = entrypoint(["--json", "run-sync", "--force"])

    assert exit_code == 0
    captured = capsys.readouterr()
    payload = json.loads(captured.out)
    assert payload["command"] == "run-sync"
    assert payload["status"] == "executed"
    assert payload["details"]["created_proposals"] == 1
    assert payload["details"]["updated_active_actions"] == 1
    assert "sync_completed" in captured.err


def test_cli_sync_from_slot_hides_artifacts_by_default(
    capsys: pytest.CaptureFixture[str],
    monkeypatch: pytest.MonkeyPatch,
    make_context,
    fake_koios,
) -> None:
    fake_koios.on("GET", "/blocks", [])
    monkeypatch.setattr(
        "cgov_sync.commands._runtime.build_context", lambda settings: make_context()
    )

    exit_code = entrypoint(["--json", "sync-from-slot", "--from-slot", "100"])

    assert exit_code == 0
    details = json.loads(capsys.readouterr().out)["details"]
    assert details["next_from_slot"] == 100
    assert "blocks" not in details
    assert details["summary"]["blocks_scanned"] == 0
