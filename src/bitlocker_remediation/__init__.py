"""BitLocker key-protector detection and remediation."""

__version__ = "0.1.0"
