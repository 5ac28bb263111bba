"""HTTP client for the HashiCorp release and checkpoint services."""

from __future__ import annotations

import logging
from contextlib import nullcontext
from typing import TypeVar

import click
import requests
from pydantic import BaseModel, Field

from hcdl import __version__
from hcdl.errors import ClientError, TmpFileError
from hcdl.models import ProductVersion, VersionCheck
from hcdl.shasums import Shasums
from hcdl.signature import Signature
from hcdl.tmpfile import TmpFile

logger = logging.getLogger(__name__)

CHECKPOINT_URL = "https://checkpoint-api.hashicorp.com/v1/check"
RELEASES_URL = "https://api.releases.hashicorp.com/v1/releases"
USER_AGENT = f"hcdl/{__version__}"

# Download chunk size, 64KiB
CHUNK_SIZE = 65536

ModelT = TypeVar("ModelT", bound=BaseModel)


class ClientConfig(BaseModel):
    """Settings for :class:`Client`."""

    no_color: bool = False
    quiet: bool = False
    timeout: float = Field(default=30.0, gt=0)
    checkpoint_url: str = CHECKPOINT_URL
    releases_url: str = RELEASES_URL


class Client:
    """Fetches release metadata, manifests, signatures and archives.

    Every transport failure is raised as :class:`~hcdl.errors.ClientError`;
    nothing is retried.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.config = config or ClientConfig()
        self._session = session or requests.Session()
        self._session.headers["User-Agent"] = USER_AGENT

    # ------------------------------------------------------------------
    # Raw requests
    # ------------------------------------------------------------------

    def get(self, url: str, stream: bool = False) -> requests.Response:
        """Perform a GET on *url*, raising for HTTP error statuses."""
        logger.debug("GET %s", url)
        try:
            response = self._session.get(url, timeout=self.config.timeout, stream=stream)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise ClientError(url, str(exc)) from exc
        return response

    def get_bytes(self, url: str) -> bytes:
        return self.get(url).content

    def get_text(self, url: str) -> str:
        return self.get(url).text

    def _get_model(self, url: str, model: type[ModelT]) -> ModelT:
        response = self.get(url)
        try:
            return model.model_validate(response.json())
        except ValueError as exc:
            raise ClientError(url, f"unexpected response: {exc}") from exc

    # ------------------------------------------------------------------
    # Release service
    # ------------------------------------------------------------------

    def check_version(self, product: str) -> VersionCheck:
        """Ask the checkpoint API for the latest version of *product*."""
        url = f"{self.config.checkpoint_url}/{product}"
        return self._get_model(url, VersionCheck)

    def get_version(self, product: str, version: str) -> ProductVersion:
        """Fetch the release metadata of *product* at *version*."""
        url = f"{self.config.releases_url}/{product}/{version}"
        return self._get_model(url, ProductVersion)

    def get_shasums(self, version: ProductVersion) -> Shasums:
        """Download and parse the shasums manifest of *version*."""
        return Shasums(self.get_bytes(version.shasums_url()))

    def get_signature(self, version: ProductVersion) -> Signature:
        """Download and parse the manifest signature of *version*."""
        url = version.shasums_signature_url()
        if url is None:
            raise ClientError(version.shasums_url(), "no shasums signature published")
        return Signature(self.get_bytes(url))

    def download(self, url: str, tmpfile: TmpFile) -> int:
        """Stream *url* into *tmpfile* and return the number of bytes written."""
        response = self.get(url, stream=True)
        total = int(response.headers.get("Content-Length", 0)) or None
        handle = tmpfile.handle()
        written = 0

        bar = (
            nullcontext(None)
            if self.config.quiet or total is None
            else click.progressbar(
                length=total,
                label=tmpfile.filename,
                file=click.get_text_stream("stderr"),
                color=not self.config.no_color,
            )
        )

        with response, bar as progress:
            try:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if not chunk:
                        continue
                    handle.write(chunk)
                    written += len(chunk)
                    if progress is not None:
                        progress.update(len(chunk))
            except requests.RequestException as exc:
                raise ClientError(url, f"couldn't download chunk of content: {exc}") from exc
            except OSError as exc:
                raise TmpFileError(str(exc)) from exc

        handle.flush()
        logger.debug("Downloaded %d bytes from %s", written, url)
        return written


__all__ = [
    "CHECKPOINT_URL",
    "Client",
    "ClientConfig",
    "RELEASES_URL",
    "USER_AGENT",
]
