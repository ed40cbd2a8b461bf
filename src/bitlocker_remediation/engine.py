"""Run coordination: volume scan, per-volume policy, and result assembly."""

from __future__ import annotations

from datetime import datetime

from rich.console import Console

from bitlocker_remediation.collectors.bitlocker import (
    BitLockerError,
    BitLockerSurface,
    PowerShellBitLocker,
)
from bitlocker_remediation.config import Config
from bitlocker_remediation.models import (
    DriveType,
    InspectionState,
    ProtectionStatus,
    RunMode,
    RunResult,
    StatusTier,
    Volume,
    VolumeOutcome,
)
from bitlocker_remediation.platform import get_hostname
from bitlocker_remediation.remediation.base import require_elevation
from bitlocker_remediation.remediation.inspector import ProtectorInspector
from bitlocker_remediation.remediation.reconciler import ProtectorReconciler
from bitlocker_remediation.remediation.resumer import EncryptionResumer

console = Console()


class Engine:
    """Scans local fixed volumes and detects or remediates non-compliant protectors.

    Only volumes with a drive letter, drive type Fixed and protection On
    are inspected. Hard failures (no elevation, enumeration failure,
    failed protector update) set FAIL and end the run; soft anomalies
    set WARNING and the scan goes on.
    """

    def __init__(self, config: Config, surface: BitLockerSurface | None = None):
        self.config = config
        self.surface = surface or PowerShellBitLocker(timeout=config.timeout)
        self.inspector = ProtectorInspector(self.surface)
        self.reconciler = ProtectorReconciler(
            self.surface, safety_protector=config.safety_protector,
        )
        self.resumer = EncryptionResumer(self.surface)

    def _log(self, message: str) -> None:
        if self.config.verbose:
            console.print(message, style="dim", markup=False, highlight=False)

    def run(self, mode: RunMode | None = None) -> RunResult:
        """Execute one detect or remediate pass and return its result."""
        mode = mode or self.config.mode
        result = RunResult(mode=mode, hostname=get_hostname())
        self._scan(mode, result)
        result.finished_at = datetime.now()
        return result

    def _scan(self, mode: RunMode, result: RunResult) -> None:
        if mode == RunMode.REMEDIATE and self.config.target == self.config.noncompliant_type:
            # Swapping a protector for itself would rerun on every pass.
            result.add(
                f"invalid argument: target {self.config.target.value} is the non-compliant type",
                StatusTier.FAIL,
            )
            return

        try:
            require_elevation(self.surface)
        except BitLockerError as exc:
            self._log(str(exc))
            result.add("no admin rights", StatusTier.FAIL)
            return

        try:
            volumes = self.surface.list_volumes()
        except BitLockerError as exc:
            self._log(str(exc))
            result.add("error enumerating volumes", StatusTier.FAIL)
            return

        eligible = 0
        for volume in volumes:
            if not volume.drive_letter or volume.drive_type != DriveType.FIXED:
                continue
            try:
                status = self.surface.get_protection_status(volume.mount_point)
            except BitLockerError as exc:
                self._log(str(exc))
                result.add(f"error inspecting {volume.mount_point}", StatusTier.WARNING)
                result.volumes.append(VolumeOutcome(
                    mount_point=volume.mount_point, action="error", detail=str(exc),
                ))
                continue
            if status != ProtectionStatus.ON:
                label = status.value if status else "absent"
                self._log(f"{volume.mount_point}: protection {label}, not inspected")
                continue

            eligible += 1
            if not self._process(volume, mode, result):
                return

        if eligible == 0:
            result.add("no eligible volumes")

    def _process(self, volume: Volume, mode: RunMode, result: RunResult) -> bool:
        """Apply the policy to one volume. Returns False to stop the scan."""
        mp = volume.mount_point
        tag = self.config.noncompliant_type
        inspection = self.inspector.inspect(mp)
        before = sorted(inspection.types, key=lambda t: t.value)

        if inspection.state == InspectionState.ERROR:
            self._log(f"{mp}: {inspection.error}")
            result.add(f"error inspecting {mp}", StatusTier.WARNING)
            result.volumes.append(VolumeOutcome(
                mount_point=mp, action="error", detail=inspection.error,
            ))
            return True

        if inspection.state == InspectionState.EMPTY:
            result.add(f"{mp} skipped: not encrypted", StatusTier.WARNING)
            result.volumes.append(VolumeOutcome(mount_point=mp, action="unencrypted"))
            return True

        if tag not in inspection.types:
            result.add(f"{mp} skipped: no {tag.value}")
            result.volumes.append(VolumeOutcome(
                mount_point=mp, protectors_before=before, protectors_after=before,
                action="compliant",
            ))
            return True

        if mode == RunMode.DETECT:
            result.add(f"{tag.value} found on {mp}", StatusTier.FAIL)
            result.volumes.append(VolumeOutcome(
                mount_point=mp, protectors_before=before, protectors_after=before,
                action="found",
            ))
            return False

        target = self.config.target
        self._log(f"{mp}: replacing {', '.join(t.value for t in before)} with {target.value}")
        update = self.reconciler.reconcile(mp, target, self.config.get_secret())
        if not update.success:
            self._log(f"{mp}: {update.error}")
            result.add(f"error updating {mp}", StatusTier.FAIL)
            result.volumes.append(VolumeOutcome(
                mount_point=mp, protectors_before=before, action="error",
                detail=update.error,
            ))
            return self.config.continue_on_failure

        result.add(f"updated {mp} from {tag.value} to {target.value}")
        outcome = VolumeOutcome(
            mount_point=mp, protectors_before=before,
            protectors_after=update.protectors, action="updated",
        )
        result.volumes.append(outcome)

        resume = self.resumer.ensure_resumed(mp)
        if not resume.success:
            self._log(f"{mp}: {resume.error}")
            result.add(f"error turning encryption on for {mp}", StatusTier.WARNING)
            outcome.detail = resume.error
        else:
            result.add(f"encryption on for {mp}")
        return True
