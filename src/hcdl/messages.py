"""Human-readable output for the hcdl command line."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

import click


class Messages:
    """Renders pipeline progress and results.

    Informational output goes to stdout and is suppressed when *quiet* is
    set; errors always go to stderr.
    """

    def __init__(self, quiet: bool = False, no_color: bool = False) -> None:
        self.quiet = quiet
        self.no_color = no_color

    def _style(self, msg: str, **styles: object) -> str:
        if self.no_color:
            return msg
        return click.style(msg, **styles)

    def _stdout(self, msg: str) -> None:
        if not self.quiet:
            click.echo(msg)

    def _stderr(self, msg: str) -> None:
        click.echo(msg, err=True)

    def checksum_bad(self, filename: str) -> None:
        self._stderr(self._style(f"SHA256 of {filename} did not match.", fg="red"))

    def checksum_ok(self, filename: str) -> None:
        self._stdout(f"SHA256 of {filename} {self._style('OK', fg='green')}.")

    def downloading(self, filename: str) -> None:
        self._stdout(f"Downloading {filename}...")

    def download_only(self, filename: str) -> None:
        self._stdout(f"Download only mode, keeping {filename}.")

    def error(self, error: Exception) -> None:
        self._stderr(self._style(f"Error: {error}", fg="red"))

    def extracting_file(self, filename: str, dest: Path) -> None:
        self._stdout(f"-> Extracting '{filename}' to '{dest}'...")

    def find_build_failed(self, os: str, arch: str) -> None:
        self._stderr(f"Could not find build for {os}-{arch}")

    def installation_failed(self, error: Exception) -> None:
        self._stderr(self._style(f"Installation failed with error: {error}", fg="red"))

    def installation_successful(self) -> None:
        self._stdout(self._style("Installation successful.", fg="green"))

    def keep_zipfile(self, filename: str) -> None:
        self._stdout(f"Keeping zipfile {filename} in current directory.")

    def latest_version(self, latest: str) -> None:
        self._stdout(f"Latest version: {latest}")

    def list_products(self, products: Iterable[str]) -> None:
        self._stdout(f"Products: {', '.join(products)}")

    def os_mismatch(self, os: str, requested: str) -> None:
        self._stdout(f"Product downloaded for different OS, {os} != {requested}")

    def signature_verification_failed(self, error: Exception) -> None:
        self._stderr(self._style(f"Verification failed, error: {error}", fg="red"))

    def signature_verification_success(self, key_id: str) -> None:
        self._stdout(f"Verified against {key_id}.")

    def skipped_install(self, filename: str) -> None:
        self._stdout(
            f"Skipping install and keeping zipfile '{filename}' in current directory."
        )

    def skipped_verification(self) -> None:
        self._stderr(
            self._style("Skipping signature verification of shasums file.", fg="yellow")
        )

    def unzipping(self, zipfile: str, dest: Path) -> None:
        self._stdout(f"Unzipping contents of '{zipfile}' to '{dest}'")

    def verifying_signature(self, shasums: str) -> None:
        self._stdout(f"Downloading and verifying signature of {shasums}...")


__all__ = ["Messages"]
