"""Minimal OpenPGP (RFC 4880) support for checking detached signatures.

Only the parts needed to verify a vendor's detached signature are handled:
ASCII armor, packet framing, version 4 public keys and subkeys (RSA, ECDSA
and EdDSA) and version 4 signature packets.  Cryptographic verification is
delegated to :mod:`cryptography`.
"""

from __future__ import annotations

import base64
import hashlib
import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey
from cryptography.hazmat.primitives.asymmetric.utils import (
    Prehashed,
    encode_dss_signature,
)

from hcdl.errors import KeyParseError, SignatureParseError

SIGNATURE_TAG = 2
PUBLIC_KEY_TAG = 6
PUBLIC_SUBKEY_TAG = 14

_CRC24_INIT = 0xB704CE
_CRC24_POLY = 0x1864CFB

_ARMOR_BEGIN = re.compile(r"^-----BEGIN PGP (?P<label>[A-Z0-9 ,/]+)-----$")

ED25519_OID = bytes.fromhex("2b06010401da470f01")


class PgpFormatError(ValueError):
    """Raised internally for any malformed OpenPGP data."""


class PublicKeyAlgorithm(IntEnum):
    RSA = 1
    RSA_ENCRYPT_ONLY = 2
    RSA_SIGN_ONLY = 3
    ELGAMAL = 16
    DSA = 17
    ECDH = 18
    ECDSA = 19
    EDDSA = 22


class HashAlgorithm(IntEnum):
    SHA1 = 2
    SHA256 = 8
    SHA384 = 9
    SHA512 = 10
    SHA224 = 11


class SignatureType(IntEnum):
    BINARY = 0x00
    TEXT = 0x01


_HASHES: dict[int, type[hashes.HashAlgorithm]] = {
    HashAlgorithm.SHA1: hashes.SHA1,
    HashAlgorithm.SHA256: hashes.SHA256,
    HashAlgorithm.SHA384: hashes.SHA384,
    HashAlgorithm.SHA512: hashes.SHA512,
    HashAlgorithm.SHA224: hashes.SHA224,
}

_RSA_ALGORITHMS = frozenset(
    {PublicKeyAlgorithm.RSA, PublicKeyAlgorithm.RSA_SIGN_ONLY}
)

_CURVES: dict[bytes, type[ec.EllipticCurve]] = {
    bytes.fromhex("2a8648ce3d030107"): ec.SECP256R1,
    bytes.fromhex("2b81040022"): ec.SECP384R1,
    bytes.fromhex("2b81040023"): ec.SECP521R1,
}


# ---------------------------------------------------------------------------
# Armor
# ---------------------------------------------------------------------------


def crc24(data: bytes) -> int:
    """Return the OpenPGP CRC-24 of *data*."""
    crc = _CRC24_INIT
    for byte in data:
        crc ^= byte << 16
        for _ in range(8):
            crc <<= 1
            if crc & 0x1000000:
                crc ^= _CRC24_POLY
    return crc & 0xFFFFFF


def dearmor(text: str) -> bytes:
    """Decode the first ASCII-armored block in *text*.

    Armor headers (``Version: ...``, ``Comment: ...``) are skipped.  When the
    block carries a CRC-24 checksum line it must match the decoded data.
    """
    lines = [line.strip() for line in text.splitlines()]

    start = None
    label = ""
    for index, line in enumerate(lines):
        match = _ARMOR_BEGIN.match(line)
        if match:
            start = index
            label = match.group("label")
            break
    if start is None:
        raise PgpFormatError("no armor header line found")

    end_marker = f"-----END PGP {label}-----"
    try:
        end = lines.index(end_marker, start + 1)
    except ValueError:
        raise PgpFormatError(f"missing armor tail line for {label}") from None

    body = lines[start + 1 : end]
    position = 0
    while position < len(body) and body[position] and ":" in body[position]:
        position += 1

    payload = [line for line in body[position:] if line]
    checksum = None
    if payload and payload[-1].startswith("=") and len(payload[-1]) == 5:
        checksum = payload.pop()[1:]

    try:
        data = base64.b64decode("".join(payload), validate=True)
    except ValueError as exc:
        raise PgpFormatError(f"invalid armor data: {exc}") from exc

    if checksum is not None:
        try:
            expected = int.from_bytes(base64.b64decode(checksum, validate=True), "big")
        except ValueError as exc:
            raise PgpFormatError(f"invalid armor checksum: {exc}") from exc
        if crc24(data) != expected:
            raise PgpFormatError("armor checksum mismatch")

    return data


# ---------------------------------------------------------------------------
# Packets
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Packet:
    tag: int
    body: bytes


def _take(data: bytes, position: int, size: int) -> bytes:
    if size < 0 or position + size > len(data):
        raise PgpFormatError("truncated packet data")
    return data[position : position + size]


def _read_new_format_body(data: bytes, position: int) -> tuple[bytes, int]:
    chunks: list[bytes] = []
    while True:
        first = _take(data, position, 1)[0]
        position += 1
        if first < 192:
            length = first
        elif first < 224:
            second = _take(data, position, 1)[0]
            position += 1
            length = ((first - 192) << 8) + second + 192
        elif first == 255:
            length = int.from_bytes(_take(data, position, 4), "big")
            position += 4
        else:
            # Partial body length, more chunks follow.
            partial = 1 << (first & 0x1F)
            chunks.append(_take(data, position, partial))
            position += partial
            continue

        chunks.append(_take(data, position, length))
        return b"".join(chunks), position + length


def iter_packets(data: bytes) -> Iterator[Packet]:
    """Yield every packet in *data*, handling old and new format headers."""
    position = 0
    while position < len(data):
        header = data[position]
        position += 1
        if not header & 0x80:
            raise PgpFormatError(f"invalid packet header at offset {position - 1}")

        if header & 0x40:
            tag = header & 0x3F
            body, position = _read_new_format_body(data, position)
        else:
            tag = (header >> 2) & 0x0F
            length_type = header & 0x03
            if length_type == 3:
                length = len(data) - position
            else:
                size = (1, 2, 4)[length_type]
                length = int.from_bytes(_take(data, position, size), "big")
                position += size
            body = _take(data, position, length)
            position += length

        yield Packet(tag=tag, body=body)


class _Reader:
    """Sequential reader over a packet body."""

    def __init__(self, data: bytes) -> None:
        self._data = data
        self.position = 0

    def take(self, size: int) -> bytes:
        chunk = _take(self._data, self.position, size)
        self.position += size
        return chunk

    def byte(self) -> int:
        return self.take(1)[0]

    def uint(self, size: int) -> int:
        return int.from_bytes(self.take(size), "big")

    def mpi_bytes(self) -> bytes:
        bits = self.uint(2)
        return self.take((bits + 7) // 8)

    def mpi(self) -> int:
        return int.from_bytes(self.mpi_bytes(), "big")


def _iter_subpackets(area: bytes) -> Iterator[tuple[int, bytes]]:
    position = 0
    while position < len(area):
        first = area[position]
        if first < 192:
            length = first
            position += 1
        elif first < 255:
            second = _take(area, position + 1, 1)[0]
            length = ((first - 192) << 8) + second + 192
            position += 2
        else:
            length = int.from_bytes(_take(area, position + 1, 4), "big")
            position += 5
        if length == 0:
            raise PgpFormatError("empty signature subpacket")
        content = _take(area, position, length)
        position += length
        yield content[0] & 0x7F, content[1:]


# ---------------------------------------------------------------------------
# Signatures
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SignaturePacket:
    """A parsed version 4 signature packet."""

    sig_type: int
    algorithm: int
    hash_algorithm: int
    hashed_area: bytes
    left16: bytes
    values: tuple[int, ...]
    issuer: bytes | None = None
    created: int | None = None

    @classmethod
    def from_packet(cls, packet: Packet) -> SignaturePacket:
        reader = _Reader(packet.body)
        version = reader.byte()
        if version != 4:
            raise PgpFormatError(f"unsupported signature version {version}")

        sig_type = reader.byte()
        algorithm = reader.byte()
        hash_algorithm = reader.byte()
        if hash_algorithm not in _HASHES:
            raise PgpFormatError(f"unsupported hash algorithm {hash_algorithm}")

        hashed = reader.take(reader.uint(2))
        hashed_area = packet.body[: reader.position]
        unhashed = reader.take(reader.uint(2))
        left16 = reader.take(2)

        if algorithm in _RSA_ALGORITHMS:
            values: tuple[int, ...] = (reader.mpi(),)
        elif algorithm in (
            PublicKeyAlgorithm.DSA,
            PublicKeyAlgorithm.ECDSA,
            PublicKeyAlgorithm.EDDSA,
        ):
            values = (reader.mpi(), reader.mpi())
        else:
            raise PgpFormatError(f"unsupported signature algorithm {algorithm}")

        issuer = None
        created = None
        for kind, content in (*_iter_subpackets(hashed), *_iter_subpackets(unhashed)):
            if kind == 2 and len(content) == 4:
                created = int.from_bytes(content, "big")
            elif kind == 16 and len(content) == 8:
                issuer = content
            elif kind == 33 and len(content) > 8 and issuer is None:
                issuer = content[-8:]

        return cls(
            sig_type=sig_type,
            algorithm=algorithm,
            hash_algorithm=hash_algorithm,
            hashed_area=hashed_area,
            left16=left16,
            values=values,
            issuer=issuer,
            created=created,
        )

    @property
    def hash_function(self) -> hashes.HashAlgorithm:
        return _HASHES[self.hash_algorithm]()

    @property
    def issuer_key_id(self) -> str | None:
        return self.issuer.hex().upper() if self.issuer else None

    def digest(self, content: bytes) -> bytes:
        """Return the hash this signature was computed over for *content*."""
        if self.sig_type == SignatureType.TEXT:
            content = re.sub(rb"\r?\n", b"\r\n", content)
        hasher = hashes.Hash(self.hash_function)
        hasher.update(content)
        hasher.update(self.hashed_area)
        hasher.update(b"\x04\xff" + len(self.hashed_area).to_bytes(4, "big"))
        return hasher.finalize()


@dataclass(frozen=True)
class DetachedSignature:
    """One or more signature packets over a single document."""

    packets: tuple[SignaturePacket, ...]

    @classmethod
    def from_bytes(cls, data: bytes) -> DetachedSignature:
        """Parse binary (or ASCII-armored) detached signature data.

        Raises:
            SignatureParseError: if *data* does not hold at least one valid
                document signature.
        """
        try:
            if data.lstrip().startswith(b"-----BEGIN PGP"):
                data = dearmor(data.decode("ascii"))
            packets = tuple(
                SignaturePacket.from_packet(packet)
                for packet in iter_packets(data)
                if packet.tag == SIGNATURE_TAG
            )
        except ValueError as exc:
            raise SignatureParseError(str(exc)) from exc

        if not packets:
            raise SignatureParseError("no signature packets found")
        for packet in packets:
            if packet.sig_type not in (SignatureType.BINARY, SignatureType.TEXT):
                raise SignatureParseError(
                    f"signature type {packet.sig_type:#04x} is not a document signature"
                )
        return cls(packets=packets)


# ---------------------------------------------------------------------------
# Public keys
# ---------------------------------------------------------------------------


def _load_key_material(algorithm: int, reader: _Reader) -> Any:
    """Return a :mod:`cryptography` public key, or None if unsupported."""
    if algorithm in _RSA_ALGORITHMS or algorithm == PublicKeyAlgorithm.RSA_ENCRYPT_ONLY:
        n = reader.mpi()
        e = reader.mpi()
        try:
            return rsa.RSAPublicNumbers(e, n).public_key()
        except ValueError as exc:
            raise PgpFormatError(f"invalid RSA key: {exc}") from exc

    if algorithm == PublicKeyAlgorithm.ECDSA:
        oid = reader.take(reader.byte())
        point = reader.mpi_bytes()
        curve = _CURVES.get(oid)
        if curve is None:
            return None
        try:
            return ec.EllipticCurvePublicKey.from_encoded_point(curve(), point)
        except ValueError as exc:
            raise PgpFormatError(f"invalid ECDSA key: {exc}") from exc

    if algorithm == PublicKeyAlgorithm.EDDSA:
        oid = reader.take(reader.byte())
        point = reader.mpi_bytes()
        if oid != ED25519_OID:
            return None
        if len(point) != 33 or point[0] != 0x40:
            raise PgpFormatError("invalid EdDSA public key point")
        return Ed25519PublicKey.from_public_bytes(point[1:])

    return None


@dataclass(frozen=True)
class PublicKey:
    """A version 4 public key or subkey packet."""

    algorithm: int
    created: int
    fingerprint: bytes
    key: Any = field(repr=False, compare=False)
    is_subkey: bool = False

    @classmethod
    def from_packet(cls, packet: Packet) -> PublicKey:
        reader = _Reader(packet.body)
        version = reader.byte()
        if version != 4:
            raise PgpFormatError(f"unsupported key version {version}")
        created = reader.uint(4)
        algorithm = reader.byte()
        key = _load_key_material(algorithm, reader)

        body = packet.body
        fingerprint = hashlib.sha1(
            b"\x99" + len(body).to_bytes(2, "big") + body
        ).digest()

        return cls(
            algorithm=algorithm,
            created=created,
            fingerprint=fingerprint,
            key=key,
            is_subkey=packet.tag == PUBLIC_SUBKEY_TAG,
        )

    @property
    def key_id(self) -> str:
        return self.fingerprint[-8:].hex().upper()

    def _same_family(self, algorithm: int) -> bool:
        if algorithm in _RSA_ALGORITHMS:
            return self.algorithm in _RSA_ALGORITHMS
        return algorithm == self.algorithm

    def verify(self, signature: SignaturePacket, digest: bytes) -> bool:
        """Return True if *signature* over *digest* was made by this key."""
        if self.key is None or not self._same_family(signature.algorithm):
            return False

        try:
            if self.algorithm in _RSA_ALGORITHMS:
                size = (self.key.key_size + 7) // 8
                raw = signature.values[0].to_bytes(size, "big")
                self.key.verify(
                    raw, digest, padding.PKCS1v15(), Prehashed(signature.hash_function)
                )
            elif self.algorithm == PublicKeyAlgorithm.ECDSA:
                r, s = signature.values
                self.key.verify(
                    encode_dss_signature(r, s),
                    digest,
                    ec.ECDSA(Prehashed(signature.hash_function)),
                )
            elif self.algorithm == PublicKeyAlgorithm.EDDSA:
                r, s = signature.values
                self.key.verify(r.to_bytes(32, "big") + s.to_bytes(32, "big"), digest)
            else:
                return False
        except (InvalidSignature, OverflowError, ValueError):
            return False
        return True


@dataclass(frozen=True)
class Keyring:
    """A primary public key together with its subkeys."""

    primary: PublicKey
    subkeys: tuple[PublicKey, ...] = ()

    @classmethod
    def from_armored(cls, text: str) -> Keyring:
        """Parse an ASCII-armored public key block.

        Only the first certificate in the block is used.

        Raises:
            KeyParseError: if the block is malformed or has no primary key.
        """
        primary: PublicKey | None = None
        subkeys: list[PublicKey] = []

        try:
            for packet in iter_packets(dearmor(text)):
                if packet.tag == PUBLIC_KEY_TAG:
                    if primary is not None:
                        break
                    primary = PublicKey.from_packet(packet)
                elif packet.tag == PUBLIC_SUBKEY_TAG:
                    if primary is None:
                        raise PgpFormatError("subkey found before primary key")
                    subkeys.append(PublicKey.from_packet(packet))
        except ValueError as exc:
            raise KeyParseError(str(exc)) from exc

        if primary is None:
            raise KeyParseError("no public key packet found")
        return cls(primary=primary, subkeys=tuple(subkeys))

    def keys(self) -> tuple[PublicKey, ...]:
        """All keys in the order they are tried: subkeys first, then primary."""
        return (*self.subkeys, self.primary)


__all__ = [
    "DetachedSignature",
    "HashAlgorithm",
    "Keyring",
    "Packet",
    "PgpFormatError",
    "PublicKey",
    "PublicKeyAlgorithm",
    "SignaturePacket",
    "SignatureType",
    "crc24",
    "dearmor",
    "iter_packets",
]
