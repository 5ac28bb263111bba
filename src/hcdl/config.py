"""Run configuration for a single hcdl invocation."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field

from hcdl import paths
from hcdl.client import ClientConfig
from hcdl.signature import KeyProvider, key_provider_for

LATEST = "latest"


class KeySource(str, Enum):
    """Where the trusted public key is loaded from."""

    embedded = "embedded"
    data_dir = "data-dir"


class Config(BaseModel):
    """Everything the pipeline needs, resolved before it starts."""

    product: str
    build_version: str = LATEST
    os: str = Field(default_factory=paths.current_os)
    arch: str = Field(default_factory=paths.current_arch)
    install: bool = False
    install_dir: Path | None = None
    keep: bool = False
    download_only: bool = False
    skip_verify: bool = False
    key_source: KeySource = KeySource.data_dir
    gpg_key: Path | None = None
    quiet: bool = False
    no_color: bool = False
    supports_posix_permissions: bool = Field(
        default_factory=paths.supports_posix_permissions
    )

    @property
    def wants_latest(self) -> bool:
        return self.build_version == LATEST

    def client_config(self) -> ClientConfig:
        return ClientConfig(quiet=self.quiet, no_color=self.no_color)

    def key_provider(self) -> KeyProvider:
        return key_provider_for(self.key_source.value, self.gpg_key)


__all__ = ["Config", "KeySource", "LATEST"]
