"""hcdl: Download, verify and install HashiCorp release archives."""

__version__ = "0.1.0"

from hcdl.client import Client, ClientConfig
from hcdl.config import Config, KeySource
from hcdl.errors import HcdlError
from hcdl.install import Installer, resolve_install_dir
from hcdl.models import (
    Build,
    Checksum,
    ManifestEntry,
    ProductVersion,
    VersionCheck,
)
from hcdl.pgp import DetachedSignature, Keyring, PublicKey
from hcdl.shasums import Shasums, parse_manifest
from hcdl.signature import (
    DataDirKeyProvider,
    EmbeddedKeyProvider,
    FileKeyProvider,
    KeyProvider,
    Signature,
    verify,
)
from hcdl.tmpfile import TmpFile

__all__ = [
    "Build",
    "Checksum",
    "Client",
    "ClientConfig",
    "Config",
    "DataDirKeyProvider",
    "DetachedSignature",
    "EmbeddedKeyProvider",
    "FileKeyProvider",
    "HcdlError",
    "Installer",
    "KeyProvider",
    "KeySource",
    "Keyring",
    "ManifestEntry",
    "ProductVersion",
    "PublicKey",
    "Shasums",
    "Signature",
    "TmpFile",
    "VersionCheck",
    "parse_manifest",
    "resolve_install_dir",
    "verify",
]
