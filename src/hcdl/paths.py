"""Platform directories and the current OS/architecture names.

Directory resolution follows the XDG base directory conventions on Unix-like
systems, and the native per-user locations on macOS and Windows.
"""

from __future__ import annotations

import os
import platform
import sys
from pathlib import Path

APP_NAME = "hcdl"

# OS names as used by the release service
VALID_OS = ("darwin", "freebsd", "linux", "openbsd", "solaris", "windows")

# Architecture names as used by the release service
VALID_ARCH = ("386", "amd64", "arm", "arm64")

_MACHINE_ARCH = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "i386": "386",
    "i686": "386",
    "x86": "386",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv6l": "arm",
    "armv7l": "arm",
    "arm": "arm",
}


def current_os() -> str:
    """Return the release-service name of the running operating system."""
    if sys.platform.startswith("linux"):
        return "linux"
    if sys.platform == "darwin":
        return "darwin"
    if sys.platform in ("win32", "cygwin"):
        return "windows"
    if sys.platform.startswith("freebsd"):
        return "freebsd"
    if sys.platform.startswith("openbsd"):
        return "openbsd"
    if sys.platform.startswith("sunos"):
        return "solaris"
    return sys.platform


def current_arch() -> str:
    """Return the release-service name of the running CPU architecture."""
    machine = platform.machine().lower()
    return _MACHINE_ARCH.get(machine, machine)


def _home() -> Path | None:
    try:
        return Path.home()
    except RuntimeError:
        return None


def _xdg_dir(env_var: str, default: tuple[str, ...]) -> Path | None:
    value = os.environ.get(env_var)
    if value and Path(value).is_absolute():
        return Path(value)
    home = _home()
    if home is None:
        return None
    return home.joinpath(*default)


def data_dir() -> Path | None:
    """Return the per-user shared data directory, or None if there is none."""
    os_name = current_os()
    if os_name == "windows":
        appdata = os.environ.get("APPDATA")
        return Path(appdata) if appdata else None
    if os_name == "darwin":
        home = _home()
        return home / "Library" / "Application Support" if home else None
    return _xdg_dir("XDG_DATA_HOME", (".local", "share"))


def supports_posix_permissions() -> bool:
    """Whether files on this platform carry Unix permission bits."""
    return os.name == "posix"


def executable_dir() -> Path | None:
    """Return the per-user executable directory, or None if there is none.

    Only Unix-like systems other than macOS have such a directory.
    """
    if current_os() in ("darwin", "windows"):
        return None
    return _xdg_dir("XDG_BIN_HOME", (".local", "bin"))


__all__ = [
    "APP_NAME",
    "VALID_ARCH",
    "VALID_OS",
    "current_arch",
    "current_os",
    "data_dir",
    "executable_dir",
    "supports_posix_permissions",
]
