"""Elevation guard and base class shared by the remediation steps."""

from __future__ import annotations

from bitlocker_remediation.collectors.bitlocker import BitLockerSurface, ElevationRequiredError


def require_elevation(surface: BitLockerSurface, step: str = "") -> None:
    """Raise ElevationRequiredError unless the process is elevated.

    Called at the top of every public step operation; steps may be used
    on their own, so no caller-side check is assumed.
    """
    if not surface.is_elevated():
        subject = step or "This operation"
        raise ElevationRequiredError(f"{subject} requires administrator privileges")


class BaseStep:
    """Base class for a step that talks to the BitLocker surface.

    Every step runs elevated; NAME labels the step in its errors.
    """

    NAME: str = ""

    def __init__(self, surface: BitLockerSurface) -> None:
        self.surface = surface

    def check_preconditions(self) -> None:
        require_elevation(self.surface, self.NAME)
