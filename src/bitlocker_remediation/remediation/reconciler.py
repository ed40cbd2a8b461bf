"""Replace a volume's key protector set with a single protector of a target type.

Replacement is remove-then-add and is not atomic. If removing protector k
fails, protectors 1..k-1 are already gone; if installing the target fails,
the volume may be left with no protector at all, and protection is
suspended until one is added. No rollback is attempted. With
safety_protector enabled, a platform-generated recovery password is added
first and removed only after the target is installed, so the volume is
never without a protector during the swap.
"""

from __future__ import annotations

from bitlocker_remediation.collectors.bitlocker import BitLockerError, BitLockerSurface
from bitlocker_remediation.models import (
    SECRET_TYPES,
    TARGET_TYPES,
    KeyProtector,
    KeyProtectorType,
    StepResult,
)
from bitlocker_remediation.remediation.base import BaseStep


class ProtectorReconciler(BaseStep):

    NAME = "Protector Reconciler"

    def __init__(self, surface: BitLockerSurface, safety_protector: bool = False) -> None:
        super().__init__(surface)
        self.safety_protector = safety_protector

    def reconcile(
        self,
        mount_point: str,
        target_type: KeyProtectorType,
        secret: str | None = None,
    ) -> StepResult:
        """Leave exactly one protector of target_type on the volume.

        Args:
            mount_point: Volume mount point, e.g. "C:".
            target_type: Tpm, TpmPin or RecoveryPassword.
            secret: PIN or recovery password; required for TpmPin and
                    RecoveryPassword, ignored for Tpm.

        Returns:
            StepResult; on success protectors holds the final set.
        """
        if target_type not in TARGET_TYPES:
            return StepResult.fail(
                f"Invalid argument: {target_type.value} is not a supported target"
            )
        if target_type in SECRET_TYPES and not secret:
            return StepResult.fail(
                f"Invalid argument: {target_type.value} requires a PIN or password"
            )
        if target_type not in SECRET_TYPES:
            secret = None

        try:
            self.check_preconditions()
            existing = self.surface.list_key_protectors(mount_point)
        except BitLockerError as exc:
            return StepResult.fail(str(exc))

        if not existing:
            return StepResult.fail(f"{mount_point} has no encryption record")

        try:
            safety = self._add_safety(mount_point)
            for protector in existing:
                self.surface.remove_key_protector(mount_point, protector.protector_id)
            self.surface.add_key_protector(mount_point, target_type, secret)
            if safety is not None:
                self.surface.remove_key_protector(mount_point, safety.protector_id)
            final = self.surface.list_key_protectors(mount_point)
        except BitLockerError as exc:
            return StepResult.fail(str(exc))

        final_types = [p.protector_type for p in final]
        if final_types != [target_type]:
            return StepResult.fail(
                f"{mount_point} ended with protectors "
                f"{', '.join(t.value for t in final_types) or 'none'}, "
                f"expected {target_type.value}"
            )
        return StepResult.ok(final_types)

    def _add_safety(self, mount_point: str) -> KeyProtector | None:
        if not self.safety_protector:
            return None
        return self.surface.add_key_protector(mount_point, KeyProtectorType.RECOVERY_PASSWORD)
