"""Tests for console and JSON reporters."""

from __future__ import annotations

import io
import json
from datetime import datetime

from rich.console import Console

from bitlocker_remediation.models import (
    KeyProtectorType,
    RunMode,
    RunResult,
    StatusTier,
    VolumeOutcome,
)
from bitlocker_remediation.reporters import console_reporter, json_reporter


def _result() -> RunResult:
    result = RunResult(
        mode=RunMode.REMEDIATE,
        hostname="TEST-LAPTOP",
        started_at=datetime(2026, 3, 1, 9, 0, 0),
        finished_at=datetime(2026, 3, 1, 9, 0, 4),
    )
    result.add("updated C: from TpmPin to Tpm")
    result.add("error turning encryption on for C:", StatusTier.WARNING)
    result.volumes.append(VolumeOutcome(
        mount_point="C:",
        protectors_before=[KeyProtectorType.TPM_PIN],
        protectors_after=[KeyProtectorType.TPM],
        action="updated",
        detail="Resume-BitLocker failed",
    ))
    return result


class TestConsoleReporter:
    def test_print_summary(self):
        buf = io.StringIO()
        line = console_reporter.print_summary(_result(), Console(file=buf, width=40))
        assert line == (
            "WARNING 2026-03-01 09:00:04 = "
            "updated C: from TpmPin to Tpm; error turning encryption on for C:"
        )
        # soft_wrap keeps the line intact on narrow consoles
        assert line in buf.getvalue()

    def test_generate_returns_empty_path(self):
        assert console_reporter.generate(_result(), "./reports") == ""

    def test_generate_without_volumes(self):
        result = RunResult(mode=RunMode.DETECT, hostname="TEST-LAPTOP")
        assert console_reporter.generate(result, "./reports") == ""


class TestJsonReporter:
    def test_writes_report(self, tmp_path):
        path = json_reporter.generate(_result(), str(tmp_path / "out"))
        assert path.endswith("TEST-LAPTOP_remediate_20260301_090000.json")
        data = json.loads(open(path, encoding="utf-8").read())
        assert data["status_code"] == -1
        assert data["summary"][0] == "updated C: from TpmPin to Tpm"
        assert data["volumes"][0]["protectors_after"] == ["Tpm"]
