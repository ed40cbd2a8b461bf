"""Platform detection, elevation check, and PowerShell discovery."""

from __future__ import annotations

import shutil
import socket
import sys


def is_windows() -> bool:
    """Return True if running on Windows."""
    return sys.platform == "win32"


def is_admin() -> bool:
    """Return True if the current process is elevated.

    Returns False on non-Windows platforms, where the BitLocker cmdlets
    do not exist anyway.
    """
    if not is_windows():
        return False
    try:
        import ctypes
        return bool(ctypes.windll.shell32.IsUserAnAdmin())
    except (AttributeError, OSError):
        return False


def get_hostname() -> str:
    """Return the system hostname."""
    return socket.gethostname()


def get_powershell_path() -> str | None:
    """Return path to PowerShell executable, or None if not found.

    Prefers Windows PowerShell 5.1 because the BitLocker module ships
    with it; pwsh only loads BitLocker through the compatibility layer.
    """
    for name in ("powershell.exe", "powershell", "pwsh"):
        path = shutil.which(name)
        if path:
            return path
    return None
