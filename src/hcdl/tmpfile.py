"""Temporary file that holds a download until it has been verified."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import BinaryIO

from hcdl.errors import TmpFileError

logger = logging.getLogger(__name__)

# -rw-r--r--
PERSIST_MODE = 0o644


class TmpFile:
    """An anonymous temporary file standing in for *filename*.

    The content is only reachable through :meth:`handle`, which always
    rewinds, so the download can be hashed and later re-read for install
    without being fetched again.  Nothing is written under *filename* until
    :meth:`persist` is called.
    """

    def __init__(self, filename: str) -> None:
        self.filename = filename
        try:
            self._tmpfile = tempfile.TemporaryFile(mode="w+b")
        except OSError as exc:
            raise TmpFileError(str(exc)) from exc

    def handle(self) -> BinaryIO:
        """Return the read/write handle, rewound to offset 0."""
        try:
            self._tmpfile.seek(0)
        except (OSError, ValueError) as exc:
            raise TmpFileError(str(exc)) from exc
        return self._tmpfile

    def persist(self, directory: str | Path | None = None) -> Path:
        """Copy the content to ``<directory>/<filename>`` with mode 0o644.

        *directory* defaults to the current working directory.
        """
        dest = Path(directory if directory is not None else Path.cwd()) / self.filename
        handle = self.handle()
        try:
            fd = os.open(dest, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, PERSIST_MODE)
            with os.fdopen(fd, "wb") as writer:
                shutil.copyfileobj(handle, writer)
            # An existing file keeps its old mode through os.open.
            os.chmod(dest, PERSIST_MODE)
        except OSError as exc:
            raise TmpFileError(f"couldn't persist to '{dest}': {exc}") from exc

        logger.debug("Persisted %s", dest)
        return dest

    def close(self) -> None:
        self._tmpfile.close()

    def __enter__(self) -> TmpFile:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = ["PERSIST_MODE", "TmpFile"]
