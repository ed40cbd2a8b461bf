"""Read the key protector types attached to a volume."""

from __future__ import annotations

from bitlocker_remediation.collectors.bitlocker import BitLockerError
from bitlocker_remediation.models import InspectionResult
from bitlocker_remediation.remediation.base import BaseStep


class ProtectorInspector(BaseStep):
    """Read-only view of a volume's key protectors."""

    NAME = "Protector Inspector"

    def inspect(self, mount_point: str) -> InspectionResult:
        """Return FOUND with the protector types, EMPTY, or ERROR.

        A volume without an encryption record is EMPTY, not an error.
        Platform failures, including a missing elevation, come back as
        ERROR and are never raised.
        """
        try:
            self.check_preconditions()
            protectors = self.surface.list_key_protectors(mount_point)
        except BitLockerError as exc:
            return InspectionResult.failed(str(exc))

        if not protectors:
            return InspectionResult.empty()
        return InspectionResult.found({p.protector_type for p in protectors})
