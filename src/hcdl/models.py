"""Pydantic models for hcdl."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from posixpath import basename
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field


class Checksum(str, Enum):
    """Outcome of comparing a file digest with its manifest entry."""

    OK = "ok"
    BAD = "bad"


class ManifestEntry(BaseModel):
    """One ``<digest> <filename>`` line of a SHA256SUMS manifest."""

    model_config = ConfigDict(frozen=True)

    digest: str = Field(min_length=1)
    filename: str = Field(min_length=1)


class Build(BaseModel):
    """A single downloadable build of a product version."""

    arch: str
    os: str
    url: str

    @property
    def filename(self) -> str:
        """The archive filename, taken from the last component of the URL."""
        return basename(urlparse(self.url).path)


class ProductVersion(BaseModel):
    """A single version of a product, as served by the releases API."""

    builds: list[Build] = Field(default_factory=list)
    name: str
    url_shasums: str
    url_shasums_signatures: list[str] = Field(default_factory=list)
    version: str
    timestamp_created: datetime
    timestamp_updated: datetime

    def build(self, arch: str, os: str) -> Build | None:
        """Return the first build matching *arch* and *os*, or None."""
        for candidate in self.builds:
            if candidate.arch == arch and candidate.os == os:
                return candidate
        return None

    def shasums_url(self) -> str:
        return self.url_shasums

    def shasums_signature_url(self) -> str | None:
        """Return the first signature URL, or None if none are published."""
        if not self.url_shasums_signatures:
            return None
        return self.url_shasums_signatures[0]

    def __str__(self) -> str:
        return f"{self.name} v{self.version} from {self.timestamp_updated}"


class VersionCheck(BaseModel):
    """Result of a checkpoint API version check."""

    alerts: list[str] = Field(default_factory=list)
    current_changelog_url: str
    current_download_url: str
    current_release: int
    current_version: str
    product: str
    project_website: str

    @property
    def released_at(self) -> datetime:
        return datetime.fromtimestamp(self.current_release, tz=UTC)

    def __str__(self) -> str:
        released = self.released_at.strftime("%a, %d %b %Y %H:%M:%S %z")
        return f"{self.product} v{self.current_version} from {released}"


__all__ = [
    "Build",
    "Checksum",
    "ManifestEntry",
    "ProductVersion",
    "VersionCheck",
]
