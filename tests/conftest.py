"""Shared test fixtures and an in-memory BitLocker surface."""

from __future__ import annotations

import pytest

from bitlocker_remediation.collectors.bitlocker import BitLockerError
from bitlocker_remediation.config import Config
from bitlocker_remediation.models import (
    DriveType,
    KeyProtector,
    KeyProtectorType,
    ProtectionStatus,
    Volume,
)

MUTATIONS = {"remove_key_protector", "add_key_protector", "resume_or_enable"}


class FakeBitLocker:
    """BitLockerSurface that keeps volumes in memory and records every call.

    Operation names listed in fail_on raise BitLockerError. Removing the
    last protector suspends protection, as the real platform does.
    """

    def __init__(self, elevated: bool = True) -> None:
        self.elevated = elevated
        self.volumes: list[Volume] = []
        self.status: dict[str, ProtectionStatus | None] = {}
        self.protectors: dict[str, list[KeyProtector]] = {}
        self.fail_on: set[str] = set()
        self.calls: list[tuple] = []
        self._next_id = 0

    def add_volume(
        self,
        mount_point: str,
        protectors: tuple[KeyProtectorType, ...] = (),
        status: ProtectionStatus | None = ProtectionStatus.ON,
        drive_type: DriveType = DriveType.FIXED,
        has_letter: bool = True,
    ) -> None:
        self.volumes.append(Volume(
            mount_point=mount_point if has_letter else "",
            drive_letter=mount_point[0] if has_letter else None,
            drive_type=drive_type,
        ))
        self.status[mount_point] = status
        self.protectors[mount_point] = [self._new(t) for t in protectors]

    def types(self, mount_point: str) -> list[KeyProtectorType]:
        return [p.protector_type for p in self.protectors.get(mount_point, [])]

    @property
    def mutations(self) -> list[tuple]:
        return [c for c in self.calls if c[0] in MUTATIONS]

    def touched(self, mount_point: str) -> bool:
        return any(len(c) > 1 and c[1] == mount_point for c in self.calls)

    def _new(self, protector_type: KeyProtectorType) -> KeyProtector:
        self._next_id += 1
        return KeyProtector(
            protector_id=f"{{{self._next_id:08d}}}", protector_type=protector_type,
        )

    def _record(self, name: str, *args) -> None:
        self.calls.append((name, *args))
        if name in self.fail_on:
            raise BitLockerError(f"{name} failed")

    def list_volumes(self) -> list[Volume]:
        self._record("list_volumes")
        return list(self.volumes)

    def get_protection_status(self, mount_point: str) -> ProtectionStatus | None:
        self._record("get_protection_status", mount_point)
        return self.status.get(mount_point)

    def list_key_protectors(self, mount_point: str) -> list[KeyProtector]:
        self._record("list_key_protectors", mount_point)
        return list(self.protectors.get(mount_point, []))

    def remove_key_protector(self, mount_point: str, protector_id: str) -> None:
        self._record("remove_key_protector", mount_point, protector_id)
        remaining = [p for p in self.protectors[mount_point] if p.protector_id != protector_id]
        if len(remaining) == len(self.protectors[mount_point]):
            raise BitLockerError(f"No protector {protector_id} on {mount_point}")
        self.protectors[mount_point] = remaining
        if not remaining and self.status.get(mount_point) == ProtectionStatus.ON:
            self.status[mount_point] = ProtectionStatus.SUSPENDED

    def add_key_protector(
        self,
        mount_point: str,
        protector_type: KeyProtectorType,
        secret: str | None = None,
    ) -> KeyProtector:
        self._record("add_key_protector", mount_point, protector_type, secret)
        protector = self._new(protector_type)
        self.protectors[mount_point].append(protector)
        return protector

    def resume_or_enable(self, mount_point: str) -> None:
        self._record("resume_or_enable", mount_point)
        self.status[mount_point] = ProtectionStatus.ON

    def is_elevated(self) -> bool:
        return self.elevated


@pytest.fixture
def default_config() -> Config:
    """Return a default Config instance."""
    return Config()


@pytest.fixture
def fake() -> FakeBitLocker:
    """Return an elevated fake surface with no volumes."""
    return FakeBitLocker()
