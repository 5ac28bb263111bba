"""CLI entry point for hcdl."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from posixpath import basename
from urllib.parse import urlparse

import click

from hcdl import paths
from hcdl.client import Client
from hcdl.config import LATEST, Config, KeySource
from hcdl.errors import HcdlError, InstallError, SignatureError
from hcdl.install import Installer, resolve_install_dir
from hcdl.messages import Messages
from hcdl.models import Checksum
from hcdl.products import PRODUCTS_LIST
from hcdl.tmpfile import TmpFile

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _url_filename(url: str) -> str:
    return basename(urlparse(url).path)


def run(config: Config, client: Client, messages: Messages, check: bool = False) -> int:
    """Run the download/verify/install pipeline and return an exit status.

    The order of the steps is fixed: the manifest signature is verified
    before the download's checksum is trusted, and the checksum is verified
    before anything is extracted.  Errors not handled here propagate as
    :class:`~hcdl.errors.HcdlError`.
    """
    version = config.build_version
    if config.wants_latest:
        latest = client.check_version(config.product)
        version = latest.current_version
        messages.latest_version(str(latest))
        if check:
            return 0

    release = client.get_version(config.product, version)
    build = release.build(config.arch, config.os)
    if build is None:
        messages.find_build_failed(config.os, config.arch)
        return 1

    install = config.install and not config.download_only
    if install and config.os != paths.current_os():
        messages.os_mismatch(config.os, paths.current_os())
        install = False

    # Resolve everything that can fail locally before downloading.
    install_dir: Path | None = None
    if install:
        install_dir = config.install_dir or resolve_install_dir()
    key_provider = None if config.skip_verify else config.key_provider()

    filename = build.filename
    with TmpFile(filename) as tmpfile:
        messages.downloading(filename)
        client.download(build.url, tmpfile)
        shasums = client.get_shasums(release)

        if key_provider is None:
            messages.skipped_verification()
        else:
            messages.verifying_signature(_url_filename(release.shasums_url()))
            signature = client.get_signature(release)
            try:
                key = signature.check(shasums, key_provider)
            except SignatureError as exc:
                messages.signature_verification_failed(exc)
                return 1
            messages.signature_verification_success(key.key_id)

        if shasums.check(filename, tmpfile.handle()) is Checksum.BAD:
            messages.checksum_bad(filename)
            return 1
        messages.checksum_ok(filename)

        if install_dir is None:
            tmpfile.persist()
            if config.download_only:
                messages.download_only(filename)
            else:
                messages.skipped_install(filename)
            return 0

        messages.unzipping(filename, install_dir)
        installer = Installer(config.supports_posix_permissions)
        try:
            installed = installer.install(tmpfile.handle(), install_dir)
        except InstallError as exc:
            messages.installation_failed(exc)
            return 1
        for name in installed:
            messages.extracting_file(name, install_dir)

        if config.keep:
            tmpfile.persist()
            messages.keep_zipfile(filename)

    messages.installation_successful()
    return 0


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option()
@click.argument(
    "product",
    required=False,
    envvar="HCDL_PRODUCT",
    type=click.Choice(PRODUCTS_LIST),
)
@click.option(
    "--build-version",
    "-b",
    envvar="HCDL_BUILD_VERSION",
    default=LATEST,
    show_default=True,
    help="Product version to download.",
)
@click.option(
    "--os",
    "-o",
    "os_name",
    envvar="HCDL_OS",
    default=paths.current_os,
    show_default="current OS",
    metavar="OS",
    help=f"Product OS family to download ({', '.join(paths.VALID_OS)}).",
)
@click.option(
    "--arch",
    "-a",
    envvar="HCDL_ARCH",
    default=paths.current_arch,
    show_default="current architecture",
    metavar="ARCH",
    help=f"Product architecture to download ({', '.join(paths.VALID_ARCH)}).",
)
@click.option(
    "--install",
    "-i",
    is_flag=True,
    envvar="HCDL_INSTALL",
    help="Unzip and install the downloaded product.",
)
@click.option(
    "--install-dir",
    "-D",
    envvar="HCDL_INSTALL_DIR",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    metavar="DIR",
    help="Directory to install into (default: the user executable directory).",
)
@click.option(
    "--keep",
    "-k",
    is_flag=True,
    envvar="HCDL_KEEP",
    help="Keep the downloaded zipfile after installing.",
)
@click.option(
    "--download-only",
    "-d",
    is_flag=True,
    envvar="HCDL_DOWNLOAD_ONLY",
    help="Only download and verify the product, don't install it.",
)
@click.option(
    "--check",
    "-c",
    is_flag=True,
    envvar="HCDL_CHECK",
    help="Only check for the latest version of the product.",
)
@click.option(
    "--list-products",
    "-l",
    is_flag=True,
    help="List the products that can be downloaded.",
)
@click.option(
    "--skip-verify",
    is_flag=True,
    envvar="HCDL_SKIP_VERIFY",
    help="Skip GPG signature verification of the shasums file.",
)
@click.option(
    "--gpg-key",
    envvar="HCDL_GPG_KEY",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    metavar="PATH",
    help="Armored public key to verify signatures with.",
)
@click.option(
    "--key-source",
    envvar="HCDL_KEY_SOURCE",
    type=click.Choice([source.value for source in KeySource]),
    default=KeySource.data_dir.value,
    show_default=True,
    help="Where to load the trusted public key from when --gpg-key is not given.",
)
@click.option("--quiet", "-q", is_flag=True, envvar="HCDL_QUIET", help="Silence output.")
@click.option(
    "--no-color", is_flag=True, envvar="HCDL_NO_COLOR", help="Disable colored output."
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def main(
    product: str | None,
    build_version: str,
    os_name: str,
    arch: str,
    install: bool,
    install_dir: Path | None,
    keep: bool,
    download_only: bool,
    check: bool,
    list_products: bool,
    skip_verify: bool,
    gpg_key: Path | None,
    key_source: str,
    quiet: bool,
    no_color: bool,
    verbose: bool,
) -> None:
    """Download, verify and install HashiCorp PRODUCT releases."""
    _configure_logging(verbose)
    messages = Messages(quiet=quiet, no_color=no_color)

    if list_products:
        messages.list_products(PRODUCTS_LIST)
        return

    if product is None:
        raise click.UsageError("Missing argument 'PRODUCT'.")

    config = Config(
        product=product,
        build_version=build_version,
        os=os_name,
        arch=arch,
        install=install,
        install_dir=install_dir,
        keep=keep,
        download_only=download_only,
        skip_verify=skip_verify,
        key_source=KeySource(key_source),
        gpg_key=gpg_key,
        quiet=quiet,
        no_color=no_color,
    )
    client = Client(config.client_config())

    try:
        status = run(config, client, messages, check=check)
    except HcdlError as exc:
        logger.debug("Pipeline failed", exc_info=True)
        messages.error(exc)
        sys.exit(1)

    sys.exit(status)


if __name__ == "__main__":
    main()
