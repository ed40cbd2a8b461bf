"""YAML configuration loader with defaults."""

from __future__ import annotations

import os
from importlib import resources
from pathlib import Path

import yaml

from bitlocker_remediation.models import TARGET_NAMES, KeyProtectorType, RunMode

_DEFAULT_CONFIG_RESOURCE = "bitlocker_remediation.data"
_DEFAULT_CONFIG_FILE = "default_config.yaml"


def parse_target(name: str | None) -> KeyProtectorType | None:
    """Resolve a target name (TPM, TPMAndPIN, RecoveryPassword) case-insensitively."""
    if not name:
        return None
    for key, value in TARGET_NAMES.items():
        if key.lower() == str(name).strip().lower():
            return value
    return None


class Config:
    """Application configuration loaded from YAML with CLI overrides."""

    def __init__(
        self,
        mode: RunMode = RunMode.DETECT,
        target: KeyProtectorType = KeyProtectorType.TPM,
        noncompliant_type: KeyProtectorType = KeyProtectorType.TPM_PIN,
        secret_env: str | None = None,
        safety_protector: bool = False,
        continue_on_failure: bool = False,
        timeout: int = 60,
        output_formats: list[str] | None = None,
        output_directory: str = "./reports",
        verbose: bool = False,
    ):
        self.mode = mode
        self.target = target
        self.noncompliant_type = noncompliant_type
        self.secret_env = secret_env
        self.safety_protector = safety_protector
        self.continue_on_failure = continue_on_failure
        self.timeout = timeout
        self.output_formats = output_formats or ["console"]
        self.output_directory = output_directory
        self.verbose = verbose

    def get_secret(self) -> str | None:
        """Return the PIN / recovery password from the configured env var."""
        if not self.secret_env:
            return None
        return os.environ.get(self.secret_env) or None

    @classmethod
    def from_yaml(cls, path: str | Path) -> Config:
        """Load configuration from a YAML file."""
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        return cls._from_dict(raw)

    @classmethod
    def from_defaults(cls) -> Config:
        """Load built-in default configuration."""
        try:
            ref = resources.files(_DEFAULT_CONFIG_RESOURCE).joinpath(_DEFAULT_CONFIG_FILE)
            raw = yaml.safe_load(ref.read_text(encoding="utf-8")) or {}
            return cls._from_dict(raw)
        except (FileNotFoundError, TypeError):
            return cls()

    @classmethod
    def _from_dict(cls, raw: dict) -> Config:
        """Parse a raw dict into Config. Unusable values fall back to defaults."""
        remediation = raw.get("remediation") or {}
        powershell = raw.get("powershell") or {}
        output_section = raw.get("output") or {}

        try:
            mode = RunMode(str(raw.get("mode", "detect")).lower())
        except ValueError:
            mode = RunMode.DETECT

        target = parse_target(remediation.get("target")) or KeyProtectorType.TPM

        noncompliant = KeyProtectorType.parse(remediation.get("noncompliant_type", "TpmPin"))
        if noncompliant == KeyProtectorType.UNKNOWN:
            noncompliant = KeyProtectorType.TPM_PIN

        try:
            timeout = int(powershell.get("timeout", 60))
        except (ValueError, TypeError):
            timeout = 60

        return cls(
            mode=mode,
            target=target,
            noncompliant_type=noncompliant,
            secret_env=remediation.get("secret_env") or None,
            safety_protector=bool(remediation.get("safety_protector", False)),
            continue_on_failure=bool(remediation.get("continue_on_failure", False)),
            timeout=timeout if timeout > 0 else 60,
            output_formats=output_section.get("formats", ["console"]),
            output_directory=output_section.get("directory", "./reports"),
        )

    def apply_overrides(
        self,
        mode: str | None = None,
        target: str | None = None,
        secret_env: str | None = None,
        output_dir: str | None = None,
        formats: str | None = None,
        safety_protector: bool = False,
        continue_on_failure: bool = False,
        verbose: bool = False,
    ) -> None:
        """Apply CLI flag overrides to this config."""
        if mode:
            try:
                self.mode = RunMode(mode.lower())
            except ValueError:
                pass  # keep existing
        if target:
            self.target = parse_target(target) or self.target
        if secret_env:
            self.secret_env = secret_env
        if output_dir:
            self.output_directory = output_dir
        if formats:
            self.output_formats = [f.strip() for f in formats.split(",")]
        if safety_protector:
            self.safety_protector = True
        if continue_on_failure:
            self.continue_on_failure = True
        if verbose:
            self.verbose = True
