"""Shared test fixtures for hcdl."""

from __future__ import annotations

import base64
import hashlib
import io
import zipfile
from collections.abc import Callable, Sequence
from pathlib import Path

import pytest
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from hcdl.pgp import ED25519_OID, crc24

# ---------------------------------------------------------------------------
# OpenPGP builders
# ---------------------------------------------------------------------------

_SIGNING_HASHES = {8: hashes.SHA256, 10: hashes.SHA512}


def _mpi(value: int) -> bytes:
    size = (value.bit_length() + 7) // 8
    return value.bit_length().to_bytes(2, "big") + value.to_bytes(size, "big")


def _mpi_raw(raw: bytes) -> bytes:
    bits = (len(raw) - 1) * 8 + raw[0].bit_length()
    return bits.to_bytes(2, "big") + raw


def packet(tag: int, body: bytes) -> bytes:
    """Frame *body* as a new-format OpenPGP packet."""
    size = len(body)
    if size < 192:
        length = bytes([size])
    elif size < 8384:
        size -= 192
        length = bytes([(size >> 8) + 192, size & 0xFF])
    else:
        length = b"\xff" + size.to_bytes(4, "big")
    return bytes([0xC0 | tag]) + length + body


def old_packet(tag: int, body: bytes) -> bytes:
    """Frame *body* as an old-format packet with a two-octet length."""
    return bytes([0x80 | (tag << 2) | 1]) + len(body).to_bytes(2, "big") + body


def armor(data: bytes, label: str = "PUBLIC KEY BLOCK") -> str:
    encoded = base64.b64encode(data).decode("ascii")
    lines = [encoded[i : i + 64] for i in range(0, len(encoded), 64)]
    checksum = base64.b64encode(crc24(data).to_bytes(3, "big")).decode("ascii")
    return "\n".join(
        [
            f"-----BEGIN PGP {label}-----",
            "Comment: hcdl test key",
            "",
            *lines,
            f"={checksum}",
            f"-----END PGP {label}-----",
            "",
        ]
    )


class PgpSigner:
    """A private key that can emit OpenPGP public key and signature packets."""

    def __init__(
        self,
        private_key: rsa.RSAPrivateKey | Ed25519PrivateKey,
        created: int = 1_600_000_000,
    ) -> None:
        self.private_key = private_key
        self.created = created

    @property
    def algorithm(self) -> int:
        return 1 if isinstance(self.private_key, rsa.RSAPrivateKey) else 22

    def public_body(self) -> bytes:
        head = b"\x04" + self.created.to_bytes(4, "big") + bytes([self.algorithm])
        if isinstance(self.private_key, rsa.RSAPrivateKey):
            numbers = self.private_key.public_key().public_numbers()
            return head + _mpi(numbers.n) + _mpi(numbers.e)
        raw = self.private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
        return head + bytes([len(ED25519_OID)]) + ED25519_OID + _mpi_raw(b"\x40" + raw)

    @property
    def fingerprint(self) -> bytes:
        body = self.public_body()
        return hashlib.sha1(b"\x99" + len(body).to_bytes(2, "big") + body).digest()

    @property
    def key_id(self) -> str:
        return self.fingerprint[-8:].hex().upper()

    def sign(self, content: bytes, hash_algorithm: int = 8, sig_type: int = 0) -> bytes:
        """Return a detached signature packet over *content*."""
        hashed = bytes([5, 2]) + self.created.to_bytes(4, "big")
        header = (
            bytes([4, sig_type, self.algorithm, hash_algorithm])
            + len(hashed).to_bytes(2, "big")
            + hashed
        )
        if sig_type == 1:
            content = content.replace(b"\r\n", b"\n").replace(b"\n", b"\r\n")
        message = content + header + b"\x04\xff" + len(header).to_bytes(4, "big")
        hash_cls = _SIGNING_HASHES[hash_algorithm]
        hasher = hashes.Hash(hash_cls())
        hasher.update(message)
        digest = hasher.finalize()

        if isinstance(self.private_key, rsa.RSAPrivateKey):
            raw = self.private_key.sign(message, padding.PKCS1v15(), hash_cls())
            values = _mpi(int.from_bytes(raw, "big"))
        else:
            raw = self.private_key.sign(digest)
            values = _mpi(int.from_bytes(raw[:32], "big")) + _mpi(
                int.from_bytes(raw[32:], "big")
            )

        unhashed = bytes([9, 16]) + self.fingerprint[-8:]
        body = header + len(unhashed).to_bytes(2, "big") + unhashed + digest[:2] + values
        return packet(2, body)


def key_block(
    primary: PgpSigner,
    subkeys: Sequence[PgpSigner] = (),
    user_id: bytes = b"HashiCorp Test <test@example.com>",
) -> bytes:
    data = packet(6, primary.public_body()) + packet(13, user_id)
    for subkey in subkeys:
        data += packet(14, subkey.public_body())
    return data


# ---------------------------------------------------------------------------
# Key material fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def rsa_primary() -> PgpSigner:
    return PgpSigner(rsa.generate_private_key(public_exponent=65537, key_size=2048))


@pytest.fixture(scope="session")
def rsa_subkeys() -> list[PgpSigner]:
    """Three RSA signing subkeys, as used for rotating release keys."""
    return [
        PgpSigner(
            rsa.generate_private_key(public_exponent=65537, key_size=2048),
            created=1_600_000_000 + index,
        )
        for index in range(3)
    ]


@pytest.fixture(scope="session")
def ed25519_signer() -> PgpSigner:
    return PgpSigner(Ed25519PrivateKey.generate())


@pytest.fixture(scope="session")
def stranger() -> PgpSigner:
    """A key that is not part of any trusted keyring."""
    return PgpSigner(rsa.generate_private_key(public_exponent=65537, key_size=2048))


@pytest.fixture(scope="session")
def armored_key(rsa_primary: PgpSigner, rsa_subkeys: list[PgpSigner]) -> str:
    return armor(key_block(rsa_primary, rsa_subkeys))


@pytest.fixture(scope="session")
def build_armored_key() -> Callable[..., str]:
    def _build(primary: PgpSigner, subkeys: Sequence[PgpSigner] = ()) -> str:
        return armor(key_block(primary, subkeys))

    return _build


# ---------------------------------------------------------------------------
# Release fixtures
# ---------------------------------------------------------------------------


def make_zip(entries: dict[str, bytes], mode: int | None = 0o755) -> bytes:
    """Build an in-memory zip; *mode* is recorded as Unix permission bits."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name, data in entries.items():
            info = zipfile.ZipInfo(name, date_time=(2020, 5, 27, 16, 55, 34))
            info.compress_type = zipfile.ZIP_DEFLATED
            if mode is not None:
                info.create_system = 3
                info.external_attr = (0o100000 | mode) << 16
            else:
                info.create_system = 0
                info.external_attr = 0
            zf.writestr(info, data)
    return buffer.getvalue()


@pytest.fixture()
def release_zip() -> bytes:
    return make_zip({"terraform": b"#!/bin/sh\necho terraform\n"})


@pytest.fixture()
def zip_factory() -> Callable[..., bytes]:
    return make_zip


@pytest.fixture()
def release_shasums(release_zip: bytes) -> bytes:
    digest = hashlib.sha256(release_zip).hexdigest()
    other = hashlib.sha256(b"other").hexdigest()
    return (
        f"{other}  terraform_0.12.26_darwin_amd64.zip\n"
        f"{digest}  terraform_0.12.26_linux_amd64.zip\n"
    ).encode("ascii")


@pytest.fixture()
def gpg_key_file(tmp_path: Path, armored_key: str) -> Path:
    path = tmp_path / "hashicorp.asc"
    path.write_text(armored_key, encoding="utf-8")
    return path
