"""Exception hierarchy for hcdl.

Each component raises its own family of errors.  Every error carries only the
data needed to render its message, so the CLI can turn any :class:`HcdlError`
into a one-line diagnostic.
"""

from __future__ import annotations

from pathlib import Path


class HcdlError(Exception):
    """Base class for every error raised by hcdl."""


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class ClientError(HcdlError):
    """Raised when a request to the release service fails."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"couldn't get url '{url}': {reason}")


# ---------------------------------------------------------------------------
# CRC32
# ---------------------------------------------------------------------------


class Crc32Error(HcdlError):
    """Base class for CRC32 check failures."""


class UnexpectedCrc32(Crc32Error):
    """The computed CRC32 does not match the expected value."""

    def __init__(self, got: int, expected: int) -> None:
        self.got = got
        self.expected = expected
        super().__init__(f"unexpected crc32: {got:#010x}, wanted: {expected:#010x}")


class Crc32ReadError(Crc32Error):
    """An I/O error occurred while reading data for the CRC32 check."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"error reading data for crc32 check: {reason}")


# ---------------------------------------------------------------------------
# Install
# ---------------------------------------------------------------------------


class InstallError(HcdlError):
    """Base class for installation failures."""


class NoExecutableDir(InstallError):
    def __init__(self) -> None:
        super().__init__(
            "no executable dir found for this platform, "
            "pass --install-dir to specify one"
        )


class NoInstallDir(InstallError):
    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"install: destination '{path}' is not a directory")


class ZipFileBasename(InstallError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"couldn't get zip file basename from '{name}'")


class ZipFormat(InstallError):
    """The archive, or one of its entries, could not be read as a zip."""

    def __init__(self, reason: str, entry: str | None = None) -> None:
        self.reason = reason
        self.entry = entry
        where = f" (entry '{entry}')" if entry else ""
        super().__init__(f"zip error{where}: {reason}")


class InstallCrc32Error(InstallError):
    """An extracted entry failed its CRC32 check; the cause holds the details."""

    def __init__(self, entry: str, cause: Crc32Error) -> None:
        self.entry = entry
        super().__init__(f"crc32 check failed for '{entry}': {cause}")


class PathPersist(InstallError):
    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"error persisting file to '{path}': {reason}")


class SetPermissions(InstallError):
    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"couldn't set permissions on '{path}': {reason}")


# ---------------------------------------------------------------------------
# Shasums
# ---------------------------------------------------------------------------


class ShasumsError(HcdlError):
    """Base class for checksum manifest failures."""


class MalformedManifest(ShasumsError):
    def __init__(self, line_number: int, line: str, reason: str) -> None:
        self.line_number = line_number
        self.line = line
        self.reason = reason
        super().__init__(f"malformed shasums manifest at line {line_number}: {reason}")


class NoShasumForFile(ShasumsError):
    def __init__(self, filename: str) -> None:
        self.filename = filename
        super().__init__(f"couldn't find shasum for {filename}")


# ---------------------------------------------------------------------------
# Signature
# ---------------------------------------------------------------------------


class SignatureError(HcdlError):
    """Base class for signature and trust-material failures."""


class GpgKeyNotFound(SignatureError):
    def __init__(self, path: Path | str) -> None:
        self.path = path
        super().__init__(f"gpg key file '{path}' does not exist or is not a file")


class NoSharedDataDir(SignatureError):
    def __init__(self) -> None:
        super().__init__("couldn't find shared data directory")


class NoSharedDataDirExists(SignatureError):
    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(
            f"data directory '{path}' does not exist or is not a directory"
        )


class KeyParseError(SignatureError):
    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"couldn't parse gpg public key: {reason}")


class SignatureParseError(SignatureError):
    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"couldn't parse signature: {reason}")


class VerificationFailed(SignatureError):
    """The signature did not validate against any trusted key.

    Deliberately carries no detail about which key was tried or why it failed.
    """

    def __init__(self) -> None:
        super().__init__("couldn't verify signature")


# ---------------------------------------------------------------------------
# TmpFile
# ---------------------------------------------------------------------------


class TmpFileError(HcdlError):
    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"temporary file error: {reason}")


__all__ = [
    "ClientError",
    "Crc32Error",
    "Crc32ReadError",
    "GpgKeyNotFound",
    "HcdlError",
    "InstallCrc32Error",
    "InstallError",
    "KeyParseError",
    "MalformedManifest",
    "NoExecutableDir",
    "NoInstallDir",
    "NoSharedDataDir",
    "NoSharedDataDirExists",
    "NoShasumForFile",
    "PathPersist",
    "SetPermissions",
    "ShasumsError",
    "SignatureError",
    "SignatureParseError",
    "TmpFileError",
    "UnexpectedCrc32",
    "VerificationFailed",
    "ZipFileBasename",
    "ZipFormat",
]
