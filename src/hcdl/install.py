"""Extract and install the files of a downloaded release archive.

Each archive entry is copied into a temporary file inside the destination
directory, checked against the CRC32 stored in the archive, and only then
renamed into place.  A failure stops the run; entries installed before the
failure are left where they are.
"""

from __future__ import annotations

import copy
import logging
import os
import shutil
import tempfile
import zipfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path, PurePosixPath
from typing import IO, BinaryIO

from hcdl import crc32, paths
from hcdl.errors import (
    Crc32Error,
    InstallCrc32Error,
    NoExecutableDir,
    NoInstallDir,
    PathPersist,
    SetPermissions,
    ZipFileBasename,
    ZipFormat,
)

logger = logging.getLogger(__name__)

# Archives created on Unix record the file mode in the high word of
# external_attr.
_CREATE_SYSTEM_UNIX = 3


def resolve_install_dir() -> Path:
    """Return the platform executable directory, creating it if missing.

    Raises:
        NoExecutableDir: if the platform has no such directory.
    """
    path = paths.executable_dir()
    if path is None:
        raise NoExecutableDir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def entry_basename(name: str) -> str:
    """Return the final component of an archive entry name.

    Raises:
        ZipFileBasename: if *name* has no usable final component.
    """
    base = PurePosixPath(name.replace("\\", "/")).name
    if base in ("", ".", ".."):
        raise ZipFileBasename(name)
    return base


def entry_mode(info: zipfile.ZipInfo) -> int | None:
    """Return the Unix permission bits recorded for *info*, if any."""
    if info.create_system != _CREATE_SYSTEM_UNIX:
        return None
    mode = (info.external_attr >> 16) & 0o7777
    return mode or None


def _without_crc(info: zipfile.ZipInfo) -> zipfile.ZipInfo:
    """Return a copy of *info* that zipfile will read without checking its CRC.

    zipfile only verifies entries whose ZipInfo carries a CRC attribute.  The
    staged copy is checked against ``info.CRC`` by :mod:`hcdl.crc32` instead,
    so a mismatch surfaces as :class:`~hcdl.errors.UnexpectedCrc32`.
    """
    unchecked = copy.copy(info)
    del unchecked.CRC
    return unchecked


@contextmanager
def _staged_file(directory: Path, name: str) -> Iterator[tuple[IO[bytes], Path]]:
    """Yield a temp file in *directory*; remove it unless it was renamed."""
    try:
        handle = tempfile.NamedTemporaryFile(
            dir=directory, prefix=f".{name}.", suffix=".tmp", delete=False
        )
    except OSError as exc:
        raise PathPersist(directory / name, str(exc)) from exc
    tmp_path = Path(handle.name)
    try:
        yield handle, tmp_path
    finally:
        handle.close()
        if tmp_path.exists():
            tmp_path.unlink()


class Installer:
    """Installs the contents of a zip archive into a directory.

    Args:
        supports_posix_permissions: Restore Unix permission bits recorded in
            the archive on each installed file.
    """

    def __init__(self, supports_posix_permissions: bool = os.name == "posix") -> None:
        self.supports_posix_permissions = supports_posix_permissions

    def install(self, archive: BinaryIO, dest: str | Path) -> list[str]:
        """Extract every entry of *archive* into *dest*.

        Args:
            archive: A seekable binary stream holding the zip data.
            dest: An existing directory.

        Returns:
            The basenames of the installed files, in archive order.

        Raises:
            NoInstallDir: if *dest* is not an existing directory.
            ZipFormat: if the archive or an entry cannot be read.
            InstallError: for any other per-entry failure.
        """
        dest = Path(dest)
        if not dest.is_dir():
            raise NoInstallDir(dest)

        try:
            zf = zipfile.ZipFile(archive)
        except (zipfile.BadZipFile, OSError) as exc:
            raise ZipFormat(str(exc)) from exc

        installed: list[str] = []
        with zf:
            for info in zf.infolist():
                installed.append(self._extract(zf, info, dest))
        return installed

    def _extract(self, zf: zipfile.ZipFile, info: zipfile.ZipInfo, dest: Path) -> str:
        name = entry_basename(info.filename)
        target = dest / name
        logger.debug("Extracting %s to %s", info.filename, target)

        with _staged_file(dest, name) as (handle, tmp_path):
            try:
                with zf.open(_without_crc(info)) as source:
                    shutil.copyfileobj(source, handle)
            except (
                zipfile.BadZipFile,
                OSError,
                EOFError,
                RuntimeError,
                NotImplementedError,
            ) as exc:
                raise ZipFormat(str(exc), entry=info.filename) from exc
            handle.close()

            try:
                crc32.check_path(tmp_path, info.CRC)
            except Crc32Error as exc:
                raise InstallCrc32Error(name, exc) from exc

            try:
                os.replace(tmp_path, target)
            except OSError as exc:
                raise PathPersist(target, str(exc)) from exc

        mode = entry_mode(info)
        if self.supports_posix_permissions and mode is not None:
            try:
                os.chmod(target, mode)
            except OSError as exc:
                raise SetPermissions(target, str(exc)) from exc

        return name


def install(
    archive: BinaryIO,
    dest: str | Path,
    supports_posix_permissions: bool = os.name == "posix",
) -> list[str]:
    """Convenience wrapper around :meth:`Installer.install`."""
    return Installer(supports_posix_permissions).install(archive, dest)


__all__ = [
    "Installer",
    "entry_basename",
    "entry_mode",
    "install",
    "resolve_install_dir",
]
