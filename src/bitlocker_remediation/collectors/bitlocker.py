"""BitLocker management surface over the PowerShell BitLocker and Storage modules.

Every operation either returns parsed data or raises BitLockerError.
Callers in the remediation package turn those errors into result values.
"""

from __future__ import annotations

from typing import Any, Protocol

from bitlocker_remediation.collectors.powershell import PowerShellResult, quote, run_ps
from bitlocker_remediation.models import (
    DriveType,
    KeyProtector,
    KeyProtectorType,
    ProtectionStatus,
    Volume,
)
from bitlocker_remediation.platform import is_admin

# Environment variable carrying PIN or recovery password into the child process
SECRET_ENV_VAR = "BLR_PROTECTOR_SECRET"

# VolumeStatus values meaning data is encrypted on disk
_ENCRYPTED_STATES = {"FullyEncrypted", "EncryptionInProgress", "EncryptionPaused"}

_PROTECTION_STATUS_CODES = {
    "0": ProtectionStatus.OFF,
    "1": ProtectionStatus.ON,
    "2": ProtectionStatus.UNKNOWN,
}


class BitLockerError(Exception):
    """A platform call failed or returned something unusable."""


class ElevationRequiredError(BitLockerError):
    """The current process is not running with administrative rights."""


class BitLockerSurface(Protocol):
    """Capabilities the remediation core needs from the platform."""

    def list_volumes(self) -> list[Volume]: ...

    def get_protection_status(self, mount_point: str) -> ProtectionStatus | None: ...

    def list_key_protectors(self, mount_point: str) -> list[KeyProtector]: ...

    def remove_key_protector(self, mount_point: str, protector_id: str) -> None: ...

    def add_key_protector(
        self,
        mount_point: str,
        protector_type: KeyProtectorType,
        secret: str | None = None,
    ) -> KeyProtector: ...

    def resume_or_enable(self, mount_point: str) -> None: ...

    def is_elevated(self) -> bool: ...


def _as_list(value: Any) -> list[dict]:
    """Normalize ConvertTo-Json output (None, object, or array) to a list."""
    if value is None:
        return []
    if isinstance(value, dict):
        return [value]
    return [v for v in value if isinstance(v, dict)]


def _check(result: PowerShellResult, action: str) -> PowerShellResult:
    if not result.success:
        raise BitLockerError(f"{action} failed: {result.error or 'no output'}")
    return result


def parse_drive_type(raw: Any) -> DriveType:
    text = str(raw or "").strip()
    for member in DriveType:
        if member.value.lower() == text.lower():
            return member
    return DriveType.UNKNOWN


def parse_protection_status(raw_status: Any, volume_status: Any = None) -> ProtectionStatus:
    """Map ProtectionStatus/VolumeStatus to a ProtectionStatus.

    The platform reports a suspended volume as protection Off while the
    data stays encrypted, so Off on an encrypted volume means Suspended.
    """
    text = str(raw_status if raw_status is not None else "").strip()
    status = _PROTECTION_STATUS_CODES.get(text)
    if status is None:
        status = {
            "on": ProtectionStatus.ON,
            "off": ProtectionStatus.OFF,
        }.get(text.lower(), ProtectionStatus.UNKNOWN)
    if status == ProtectionStatus.OFF and str(volume_status or "") in _ENCRYPTED_STATES:
        return ProtectionStatus.SUSPENDED
    return status


def _protector_from_row(row: dict) -> KeyProtector:
    return KeyProtector(
        protector_id=str(row.get("KeyProtectorId") or ""),
        protector_type=KeyProtectorType.parse(row.get("KeyProtectorType", "Unknown")),
    )


_PROTECTOR_PROJECTION = (
    "ForEach-Object { [pscustomobject]@{ "
    "KeyProtectorId = [string]$_.KeyProtectorId; "
    "KeyProtectorType = [string]$_.KeyProtectorType } }"
)


class PowerShellBitLocker:
    """BitLockerSurface backed by Get-Volume and the BitLocker cmdlets."""

    def __init__(self, timeout: int = 60):
        self.timeout = timeout

    def list_volumes(self) -> list[Volume]:
        result = _check(run_ps(
            "Get-Volume | ForEach-Object { [pscustomobject]@{ "
            "DriveLetter = $(if ($_.DriveLetter) { [string]$_.DriveLetter } else { $null }); "
            "DriveType = [string]$_.DriveType } }",
            timeout=self.timeout,
        ), "Volume enumeration")

        volumes: list[Volume] = []
        for row in _as_list(result.json_output):
            letter = row.get("DriveLetter") or None
            if letter:
                letter = str(letter).strip().upper()[:1]
            volumes.append(Volume(
                mount_point=f"{letter}:" if letter else "",
                drive_letter=letter,
                drive_type=parse_drive_type(row.get("DriveType")),
            ))
        return volumes

    def get_protection_status(self, mount_point: str) -> ProtectionStatus | None:
        result = _check(run_ps(
            f"Get-BitLockerVolume -MountPoint {quote(mount_point)} "
            "-ErrorAction SilentlyContinue "
            "| ForEach-Object { [pscustomobject]@{ "
            "ProtectionStatus = [string]$_.ProtectionStatus; "
            "VolumeStatus = [string]$_.VolumeStatus } }",
            timeout=self.timeout,
        ), f"Protection status query for {mount_point}")

        rows = _as_list(result.json_output)
        if not rows:
            return None
        return parse_protection_status(
            rows[0].get("ProtectionStatus"), rows[0].get("VolumeStatus"),
        )

    def list_key_protectors(self, mount_point: str) -> list[KeyProtector]:
        result = _check(run_ps(
            f"Get-BitLockerVolume -MountPoint {quote(mount_point)} "
            "-ErrorAction SilentlyContinue "
            f"| ForEach-Object {{ $_.KeyProtector }} | {_PROTECTOR_PROJECTION}",
            timeout=self.timeout,
        ), f"Key protector query for {mount_point}")
        return [_protector_from_row(row) for row in _as_list(result.json_output)]

    def remove_key_protector(self, mount_point: str, protector_id: str) -> None:
        _check(run_ps(
            f"Remove-BitLockerKeyProtector -MountPoint {quote(mount_point)} "
            f"-KeyProtectorId {quote(protector_id)} | Out-Null",
            timeout=self.timeout,
            as_json=False,
        ), f"Removing key protector {protector_id} from {mount_point}")

    def add_key_protector(
        self,
        mount_point: str,
        protector_type: KeyProtectorType,
        secret: str | None = None,
    ) -> KeyProtector:
        """Install one protector and return it as reported afterwards.

        A RecoveryPassword without a secret gets a platform-generated
        password.
        """
        mp = quote(mount_point)
        env: dict[str, str] | None = None
        if protector_type == KeyProtectorType.TPM:
            add = f"Add-BitLockerKeyProtector -MountPoint {mp} -TpmProtector"
        elif protector_type == KeyProtectorType.TPM_PIN:
            if not secret:
                raise BitLockerError("TpmPin protector requires a PIN")
            env = {SECRET_ENV_VAR: secret}
            add = (
                f"$pin = ConvertTo-SecureString $env:{SECRET_ENV_VAR} -AsPlainText -Force; "
                f"Add-BitLockerKeyProtector -MountPoint {mp} -TpmAndPinProtector -Pin $pin"
            )
        elif protector_type == KeyProtectorType.RECOVERY_PASSWORD:
            add = f"Add-BitLockerKeyProtector -MountPoint {mp} -RecoveryPasswordProtector"
            if secret:
                env = {SECRET_ENV_VAR: secret}
                add += f" -RecoveryPassword $env:{SECRET_ENV_VAR}"
        else:
            raise BitLockerError(f"Unsupported protector type: {protector_type.value}")

        result = _check(run_ps(
            f"$before = @((Get-BitLockerVolume -MountPoint {mp}).KeyProtector "
            "| ForEach-Object { [string]$_.KeyProtectorId }); "
            f"{add} | Out-Null; "
            f"(Get-BitLockerVolume -MountPoint {mp}).KeyProtector "
            "| Where-Object { $before -notcontains [string]$_.KeyProtectorId } "
            f"| Select-Object -First 1 | {_PROTECTOR_PROJECTION}",
            timeout=self.timeout,
            env=env,
        ), f"Adding {protector_type.value} protector to {mount_point}")

        rows = _as_list(result.json_output)
        if not rows:
            raise BitLockerError(
                f"Adding {protector_type.value} protector to {mount_point} "
                "reported success but no new protector is present"
            )
        return _protector_from_row(rows[0])

    def resume_or_enable(self, mount_point: str) -> None:
        # Resume only re-enables the existing protectors; no hardware test
        # and no re-encryption pass.
        _check(run_ps(
            f"Resume-BitLocker -MountPoint {quote(mount_point)} | Out-Null",
            timeout=self.timeout,
            as_json=False,
        ), f"Resuming protection on {mount_point}")

    def is_elevated(self) -> bool:
        return is_admin()
