"""Verify the detached signature of a shasums manifest.

Trust material comes from a :class:`KeyProvider`.  Missing or unreadable key
material is always an error; there is no path through this module that skips
verification.
"""

from __future__ import annotations

import logging
from importlib import resources
from pathlib import Path
from typing import Protocol

from hcdl import paths
from hcdl.errors import (
    GpgKeyNotFound,
    KeyParseError,
    NoSharedDataDir,
    NoSharedDataDirExists,
    VerificationFailed,
)
from hcdl.pgp import DetachedSignature, Keyring, PublicKey
from hcdl.shasums import Shasums

logger = logging.getLogger(__name__)

GPG_KEY_FILENAME = "hashicorp.asc"

# Directory of the bundled key inside the package
EMBEDDED_KEY_DIR = "gpg"


# ---------------------------------------------------------------------------
# Key providers
# ---------------------------------------------------------------------------


def _decode_key(data: bytes) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise KeyParseError(f"key is not valid UTF-8: {exc}") from exc


class KeyProvider(Protocol):
    """Supplies the armored public key that signatures are checked against."""

    def armored_key(self) -> str: ...


class EmbeddedKeyProvider:
    """Key material held as a constant."""

    def __init__(self, armored: str) -> None:
        self._armored = armored

    @classmethod
    def from_package(cls) -> EmbeddedKeyProvider:
        """Load the key bundled as ``hcdl/gpg/hashicorp.asc``.

        Raises:
            GpgKeyNotFound: if the package was built without the key.
        """
        resource = resources.files("hcdl") / EMBEDDED_KEY_DIR / GPG_KEY_FILENAME
        if not resource.is_file():
            raise GpgKeyNotFound(f"hcdl/{EMBEDDED_KEY_DIR}/{GPG_KEY_FILENAME}")
        return cls(_decode_key(resource.read_bytes()))

    def armored_key(self) -> str:
        return self._armored


class FileKeyProvider:
    """Key material read from an explicit file path."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    def armored_key(self) -> str:
        if not self._path.is_file():
            raise GpgKeyNotFound(self._path)
        logger.debug("Reading gpg key from %s", self._path)
        return _decode_key(self._path.read_bytes())


class DataDirKeyProvider:
    """Key material read from ``<data-dir>/hcdl/hashicorp.asc``.

    The shared data directory is resolved from the platform unless one is
    given explicitly.
    """

    def __init__(
        self,
        data_dir: Path | None = None,
        app_name: str = paths.APP_NAME,
    ) -> None:
        self._data_dir = data_dir
        self._app_name = app_name

    def key_path(self) -> Path:
        """Resolve the key file path, checking each step along the way.

        Raises:
            NoSharedDataDir: if the platform has no shared data directory.
            NoSharedDataDirExists: if it is missing or not a directory.
            GpgKeyNotFound: if the key file is missing or not a regular file.
        """
        data_dir = self._data_dir if self._data_dir is not None else paths.data_dir()
        if data_dir is None:
            raise NoSharedDataDir()
        if not data_dir.is_dir():
            raise NoSharedDataDirExists(data_dir)

        path = data_dir / self._app_name / GPG_KEY_FILENAME
        if not path.is_file():
            raise GpgKeyNotFound(path)
        return path

    def armored_key(self) -> str:
        path = self.key_path()
        logger.debug("Reading gpg key from %s", path)
        return _decode_key(path.read_bytes())


def key_provider_for(key_source: str, gpg_key: Path | None = None) -> KeyProvider:
    """Pick the key provider for the configured *key_source*.

    An explicit *gpg_key* path always wins over the configured source.
    """
    if gpg_key is not None:
        return FileKeyProvider(gpg_key)
    if key_source == "embedded":
        return EmbeddedKeyProvider.from_package()
    return DataDirKeyProvider()


# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------


def verify(signature: DetachedSignature, content: bytes, keyring: Keyring) -> PublicKey:
    """Check *signature* over *content* against the keys in *keyring*.

    Subkeys are tried in order before the primary key, and the first key that
    validates wins.

    Returns:
        The key that validated the signature.

    Raises:
        VerificationFailed: if no key validates any signature packet.
    """
    for packet in signature.packets:
        digest = packet.digest(content)
        if digest[:2] != packet.left16:
            logger.debug("Signature hash prefix does not match content")
            continue

        for key in keyring.keys():
            if key.verify(packet, digest):
                logger.debug("Signature verified with key %s", key.key_id)
                return key

    raise VerificationFailed()


class Signature:
    """A detached signature for a shasums manifest."""

    def __init__(self, data: bytes) -> None:
        self._signature = DetachedSignature.from_bytes(data)

    @property
    def detached(self) -> DetachedSignature:
        return self._signature

    def check(self, shasums: Shasums, key_provider: KeyProvider) -> PublicKey:
        """Verify *shasums* using the key supplied by *key_provider*.

        The key is parsed before any verification is attempted, so a
        malformed key fails with :class:`~hcdl.errors.KeyParseError`.
        """
        keyring = Keyring.from_armored(key_provider.armored_key())
        return verify(self._signature, shasums.content, keyring)


__all__ = [
    "DataDirKeyProvider",
    "EmbeddedKeyProvider",
    "FileKeyProvider",
    "GPG_KEY_FILENAME",
    "KeyProvider",
    "Signature",
    "key_provider_for",
    "verify",
]
