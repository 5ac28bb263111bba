"""Check the CRC32 of extracted data against the value stored in the archive."""

from __future__ import annotations

import zlib
from pathlib import Path
from typing import BinaryIO

from hcdl.errors import Crc32ReadError, UnexpectedCrc32

# Buffer size, 1MiB
BUFFER_SIZE = 1024 * 1024


def check(stream: BinaryIO, expected: int) -> None:
    """Read *stream* to the end and compare its CRC32 with *expected*.

    The stream is consumed from its current position; it does not need to be
    seekable.

    Raises:
        Crc32ReadError: if reading the stream fails.
        UnexpectedCrc32: if the computed value differs from *expected*.
    """
    crc = 0
    while True:
        try:
            chunk = stream.read(BUFFER_SIZE)
        except OSError as exc:
            raise Crc32ReadError(str(exc)) from exc
        if not chunk:
            break
        crc = zlib.crc32(chunk, crc)

    if crc != expected:
        raise UnexpectedCrc32(crc, expected)


def check_path(path: str | Path, expected: int) -> None:
    """Open *path* and run :func:`check` over its content."""
    try:
        fh = Path(path).open("rb")
    except OSError as exc:
        raise Crc32ReadError(str(exc)) from exc
    with fh:
        check(fh, expected)


__all__ = ["BUFFER_SIZE", "check", "check_path"]
