"""Parse SHA256SUMS manifests and check downloaded files against them."""

from __future__ import annotations

import hashlib
import logging
import re
from typing import BinaryIO

from hcdl.errors import MalformedManifest, NoShasumForFile
from hcdl.models import Checksum, ManifestEntry

logger = logging.getLogger(__name__)

# Read size used when hashing a stream, 64KiB
_CHUNK_SIZE = 65536

_DIGEST_RE = re.compile(r"[0-9a-f]{64}")


def sha256_stream(handle: BinaryIO) -> str:
    """Return the lower-case hex SHA-256 digest of everything left in *handle*."""
    hasher = hashlib.sha256()
    for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""):
        hasher.update(chunk)
    return hasher.hexdigest()


def parse_manifest(text: str) -> list[ManifestEntry]:
    """Parse manifest *text* into its ordered entries.

    Every non-empty line must consist of exactly two whitespace-separated
    tokens, a 64 character hex SHA-256 digest and the filename.  A filename listed twice with the
    same digest is collapsed into a single entry; listed twice with different
    digests it makes the whole manifest malformed.

    Raises:
        MalformedManifest: if any line breaks the rules above.
    """
    entries: list[ManifestEntry] = []
    seen: dict[str, str] = {}

    for line_number, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue

        columns = line.split()
        if len(columns) != 2:
            raise MalformedManifest(
                line_number, line, f"expected 2 columns, found {len(columns)}"
            )

        digest, filename = columns[0].lower(), columns[1]
        if not _DIGEST_RE.fullmatch(digest):
            raise MalformedManifest(
                line_number, line, f"invalid sha256 digest '{columns[0]}'"
            )

        previous = seen.get(filename)
        if previous is not None:
            if previous != digest:
                raise MalformedManifest(
                    line_number, line, f"conflicting digests for {filename}"
                )
            continue

        seen[filename] = digest
        entries.append(ManifestEntry(digest=digest, filename=filename))

    logger.debug("Parsed %d shasums entries", len(entries))
    return entries


class Shasums:
    """An immutable, parsed SHA256SUMS manifest.

    The raw bytes are retained because the detached signature covers exactly
    those bytes, not the parsed representation.
    """

    def __init__(self, content: bytes | str) -> None:
        if isinstance(content, str):
            content = content.encode("utf-8")
        self._content = content
        try:
            text = content.decode("utf-8")
        except UnicodeDecodeError as exc:
            line_number = content.count(b"\n", 0, exc.start) + 1
            line = content.split(b"\n")[line_number - 1].decode("utf-8", "replace")
            raise MalformedManifest(line_number, line, "not valid UTF-8") from exc
        self._entries = tuple(parse_manifest(text))
        self._digests = {entry.filename: entry.digest for entry in self._entries}

    @property
    def content(self) -> bytes:
        return self._content

    @property
    def entries(self) -> tuple[ManifestEntry, ...]:
        return self._entries

    def lookup(self, filename: str) -> str:
        """Return the digest recorded for *filename*.

        Raises:
            NoShasumForFile: if the manifest has no entry for *filename*.
        """
        try:
            return self._digests[filename]
        except KeyError:
            raise NoShasumForFile(filename) from None

    def check_digest(self, filename: str, actual: str) -> Checksum:
        """Compare *actual* with the recorded digest for *filename*."""
        expected = self.lookup(filename)
        if actual.lower() == expected:
            return Checksum.OK
        logger.debug("SHA256 mismatch for %s: %s != %s", filename, actual, expected)
        return Checksum.BAD

    def check(self, filename: str, handle: BinaryIO) -> Checksum:
        """Hash the whole of *handle* and compare it with *filename*'s entry.

        The lookup happens first, so a missing entry fails before any bytes
        are read.
        """
        self.lookup(filename)
        return self.check_digest(filename, sha256_stream(handle))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, filename: object) -> bool:
        return filename in self._digests


__all__ = ["Shasums", "parse_manifest", "sha256_stream"]
