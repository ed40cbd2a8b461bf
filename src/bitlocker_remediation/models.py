"""Core Pydantic models for BitLocker remediation."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class RunMode(str, Enum):
    DETECT = "detect"
    REMEDIATE = "remediate"


class DriveType(str, Enum):
    FIXED = "Fixed"
    REMOVABLE = "Removable"
    NETWORK = "Network"
    CDROM = "CD-ROM"
    RAM = "RAM"
    UNKNOWN = "Unknown"


class ProtectionStatus(str, Enum):
    ON = "On"
    OFF = "Off"
    SUSPENDED = "Suspended"
    UNKNOWN = "Unknown"


class KeyProtectorType(str, Enum):
    """Key protector tags as reported by Get-BitLockerVolume."""
    UNKNOWN = "Unknown"
    TPM = "Tpm"
    EXTERNAL_KEY = "ExternalKey"
    RECOVERY_PASSWORD = "RecoveryPassword"
    TPM_PIN = "TpmPin"
    TPM_STARTUP_KEY = "TpmStartupKey"
    TPM_PIN_STARTUP_KEY = "TpmPinStartupKey"
    PUBLIC_KEY = "PublicKey"
    PASSWORD = "Password"
    TPM_NETWORK_KEY = "TpmNetworkKey"
    AD_ACCOUNT_OR_GROUP = "AdAccountOrGroup"

    @classmethod
    def parse(cls, raw: object) -> KeyProtectorType:
        """Map a platform value (name or numeric enum) to a member."""
        if isinstance(raw, int) or (isinstance(raw, str) and raw.isdigit()):
            return _PROTECTOR_TYPE_CODES.get(int(raw), cls.UNKNOWN)
        text = str(raw).strip()
        if text == "NumericalPassword":
            return cls.RECOVERY_PASSWORD
        for member in cls:
            if member.value.lower() == text.lower():
                return member
        return cls.UNKNOWN


# BitLockerVolumeKeyProtectorType numeric values
_PROTECTOR_TYPE_CODES = {
    0: KeyProtectorType.UNKNOWN,
    1: KeyProtectorType.TPM,
    2: KeyProtectorType.EXTERNAL_KEY,
    3: KeyProtectorType.RECOVERY_PASSWORD,
    4: KeyProtectorType.TPM_PIN,
    5: KeyProtectorType.TPM_STARTUP_KEY,
    6: KeyProtectorType.TPM_PIN_STARTUP_KEY,
    7: KeyProtectorType.PUBLIC_KEY,
    8: KeyProtectorType.PASSWORD,
    9: KeyProtectorType.TPM_NETWORK_KEY,
    10: KeyProtectorType.AD_ACCOUNT_OR_GROUP,
}

# Types a reconciliation may install
TARGET_TYPES = frozenset({
    KeyProtectorType.TPM,
    KeyProtectorType.TPM_PIN,
    KeyProtectorType.RECOVERY_PASSWORD,
})

# Target types that need a PIN or password
SECRET_TYPES = frozenset({
    KeyProtectorType.TPM_PIN,
    KeyProtectorType.RECOVERY_PASSWORD,
})

# CLI and config spellings of the target types
TARGET_NAMES = {
    "TPM": KeyProtectorType.TPM,
    "TPMAndPIN": KeyProtectorType.TPM_PIN,
    "RecoveryPassword": KeyProtectorType.RECOVERY_PASSWORD,
}


class StatusTier(str, Enum):
    OK = "OK"
    WARNING = "WARNING"
    FAIL = "FAIL"


STATUS_CODES = {
    StatusTier.OK: 0,
    StatusTier.FAIL: 1,
    StatusTier.WARNING: -1,
}

TIER_ORDER = {
    StatusTier.OK: 0,
    StatusTier.WARNING: 1,
    StatusTier.FAIL: 2,
}


def tier_for_code(code: int) -> StatusTier:
    """Classify a raw status code: 0 is OK, 1 is FAIL, anything else WARNING."""
    if code == 0:
        return StatusTier.OK
    if code == 1:
        return StatusTier.FAIL
    return StatusTier.WARNING


def worst_of(a: StatusTier, b: StatusTier) -> StatusTier:
    """Return the more severe of two tiers (FAIL > WARNING > OK)."""
    return a if TIER_ORDER[a] >= TIER_ORDER[b] else b


class Volume(BaseModel):
    mount_point: str
    drive_letter: str | None = None
    drive_type: DriveType = DriveType.UNKNOWN
    protection_status: ProtectionStatus | None = None


class KeyProtector(BaseModel):
    protector_id: str
    protector_type: KeyProtectorType


class InspectionState(str, Enum):
    FOUND = "found"
    EMPTY = "empty"
    ERROR = "error"


class InspectionResult(BaseModel):
    """Outcome of reading a volume's key protectors.

    EMPTY means the volume has no encryption record or no protectors;
    ERROR means the query itself failed. The two are never conflated.
    """
    state: InspectionState
    types: set[KeyProtectorType] = Field(default_factory=set)
    error: str | None = None

    @classmethod
    def found(cls, types: set[KeyProtectorType]) -> InspectionResult:
        return cls(state=InspectionState.FOUND, types=set(types))

    @classmethod
    def empty(cls) -> InspectionResult:
        return cls(state=InspectionState.EMPTY)

    @classmethod
    def failed(cls, error: str) -> InspectionResult:
        return cls(state=InspectionState.ERROR, error=error)


class StepResult(BaseModel):
    """Outcome of a mutating step (reconcile or resume)."""
    success: bool
    error: str | None = None
    protectors: list[KeyProtectorType] = Field(default_factory=list)

    @classmethod
    def ok(cls, protectors: list[KeyProtectorType] | None = None) -> StepResult:
        return cls(success=True, protectors=protectors or [])

    @classmethod
    def fail(cls, error: str) -> StepResult:
        return cls(success=False, error=error)


class VolumeOutcome(BaseModel):
    mount_point: str
    protectors_before: list[KeyProtectorType] = Field(default_factory=list)
    protectors_after: list[KeyProtectorType] = Field(default_factory=list)
    action: str  # "compliant", "unencrypted", "found", "updated", "error", ...
    detail: str | None = None


class RunResult(BaseModel):
    """Aggregate outcome of one detect or remediate run.

    status_code only ever moves toward the worst tier observed; a FAIL
    can not be undone by later volumes.
    """
    mode: RunMode
    hostname: str = ""
    status_code: int = 0
    summary: list[str] = Field(default_factory=list)
    volumes: list[VolumeOutcome] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=datetime.now)
    finished_at: datetime | None = None

    @property
    def tier(self) -> StatusTier:
        return tier_for_code(self.status_code)

    def add(self, clause: str, tier: StatusTier = StatusTier.OK) -> None:
        """Append a summary clause and merge its tier into the status."""
        self.summary.append(clause)
        self.merge(tier)

    def merge(self, tier: StatusTier) -> None:
        worst = worst_of(self.tier, tier)
        if worst != self.tier:
            self.status_code = STATUS_CODES[worst]

    def exit_code(self) -> int:
        """Process exit code; negative warning codes normalize to 0."""
        return max(self.status_code, 0)

    def summary_text(self) -> str:
        return "; ".join(self.summary)

    def summary_line(self, timestamp: datetime | None = None) -> str:
        """Format '<PREFIX> <timestamp> = <clauses>' for the console."""
        when = timestamp or self.finished_at or datetime.now()
        return f"{self.tier.value} {when.strftime('%Y-%m-%d %H:%M:%S')} = {self.summary_text()}"
