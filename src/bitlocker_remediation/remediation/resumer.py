"""Turn protection back on after a protector change suspended it."""

from __future__ import annotations

from bitlocker_remediation.collectors.bitlocker import BitLockerError
from bitlocker_remediation.models import ProtectionStatus, StepResult
from bitlocker_remediation.remediation.base import BaseStep


class EncryptionResumer(BaseStep):

    NAME = "Encryption Resumer"

    def ensure_resumed(self, mount_point: str) -> StepResult:
        """Resume protection if it is Off or Suspended; no-op when On."""
        try:
            self.check_preconditions()
            status = self.surface.get_protection_status(mount_point)
            if status == ProtectionStatus.ON:
                return StepResult.ok()
            if status in (ProtectionStatus.OFF, ProtectionStatus.SUSPENDED):
                self.surface.resume_or_enable(mount_point)
                return StepResult.ok()
        except BitLockerError as exc:
            return StepResult.fail(str(exc))

        label = status.value if status is not None else "absent"
        return StepResult.fail(f"Protection status {label} for {mount_point}")
