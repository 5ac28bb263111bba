"""Tests for hcdl.pgp armor, packet framing and key parsing."""

from __future__ import annotations

import base64
from collections.abc import Callable

import pytest
from conftest import PgpSigner, armor, key_block, old_packet, packet

from hcdl.errors import KeyParseError, SignatureParseError
from hcdl.pgp import (
    DetachedSignature,
    Keyring,
    PgpFormatError,
    PublicKeyAlgorithm,
    crc24,
    dearmor,
    iter_packets,
)

CONTENT = b"e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855  test.txt\n"


# ===========================================================================
# Armor
# ===========================================================================


class TestArmor:
    def test_crc24_of_empty_input_is_init_value(self) -> None:
        assert crc24(b"") == 0xB704CE

    def test_dearmor_round_trips_payload(self) -> None:
        data = bytes(range(200))
        assert dearmor(armor(data)) == data

    def test_dearmor_ignores_surrounding_text(self) -> None:
        data = b"payload"
        text = "garbage before\n" + armor(data) + "garbage after\n"
        assert dearmor(text) == data

    def test_dearmor_without_checksum_line(self) -> None:
        encoded = base64.b64encode(b"payload").decode("ascii")
        text = (
            "-----BEGIN PGP SIGNATURE-----\n\n"
            f"{encoded}\n"
            "-----END PGP SIGNATURE-----\n"
        )
        assert dearmor(text) == b"payload"

    def test_dearmor_rejects_bad_checksum(self) -> None:
        lines = armor(b"payload").splitlines()
        checksum_index = next(i for i, line in enumerate(lines) if line.startswith("="))
        lines[checksum_index] = "=AAAA"
        with pytest.raises(PgpFormatError, match="checksum mismatch"):
            dearmor("\n".join(lines))

    def test_dearmor_requires_header(self) -> None:
        with pytest.raises(PgpFormatError, match="no armor header"):
            dearmor("just some text")

    def test_dearmor_requires_matching_tail(self) -> None:
        text = armor(b"payload").replace("END PGP PUBLIC KEY BLOCK", "END PGP SIGNATURE")
        with pytest.raises(PgpFormatError, match="missing armor tail"):
            dearmor(text)


# ===========================================================================
# Packets
# ===========================================================================


class TestPackets:
    @pytest.mark.parametrize("size", [0, 10, 191, 192, 1000, 8383, 8384, 70000])
    def test_new_format_lengths(self, size: int) -> None:
        body = b"\x01" * size
        packets = list(iter_packets(packet(13, body)))
        assert len(packets) == 1
        assert packets[0].tag == 13
        assert packets[0].body == body

    def test_old_format_header(self) -> None:
        packets = list(iter_packets(old_packet(6, b"abc") + old_packet(13, b"uid")))
        assert [(p.tag, p.body) for p in packets] == [(6, b"abc"), (13, b"uid")]

    def test_partial_body_lengths(self) -> None:
        # 0xE1 announces a 2-byte partial chunk, followed by a final 3-byte chunk.
        data = bytes([0xC0 | 11, 0xE1]) + b"ab" + bytes([3]) + b"cde"
        (only,) = list(iter_packets(data))
        assert only.body == b"abcde"

    def test_invalid_header_bit(self) -> None:
        with pytest.raises(PgpFormatError, match="invalid packet header"):
            list(iter_packets(b"\x00\x01"))

    def test_truncated_body(self) -> None:
        with pytest.raises(PgpFormatError, match="truncated"):
            list(iter_packets(packet(13, b"hello")[:-2]))


# ===========================================================================
# Keyring
# ===========================================================================


class TestKeyring:
    def test_primary_and_subkeys_parsed(
        self, rsa_primary: PgpSigner, rsa_subkeys: list[PgpSigner], armored_key: str
    ) -> None:
        keyring = Keyring.from_armored(armored_key)
        assert keyring.primary.key_id == rsa_primary.key_id
        assert [k.key_id for k in keyring.subkeys] == [s.key_id for s in rsa_subkeys]
        assert keyring.primary.algorithm == PublicKeyAlgorithm.RSA
        assert not keyring.primary.is_subkey
        assert all(k.is_subkey for k in keyring.subkeys)

    def test_keys_order_is_subkeys_then_primary(self, armored_key: str) -> None:
        keyring = Keyring.from_armored(armored_key)
        assert keyring.keys() == (*keyring.subkeys, keyring.primary)

    def test_eddsa_key_parsed(
        self, ed25519_signer: PgpSigner, build_armored_key: Callable[..., str]
    ) -> None:
        keyring = Keyring.from_armored(build_armored_key(ed25519_signer))
        assert keyring.primary.algorithm == PublicKeyAlgorithm.EDDSA
        assert keyring.primary.key is not None
        assert keyring.primary.fingerprint == ed25519_signer.fingerprint

    def test_only_first_certificate_used(
        self, rsa_primary: PgpSigner, stranger: PgpSigner
    ) -> None:
        data = key_block(rsa_primary) + key_block(stranger)
        keyring = Keyring.from_armored(armor(data))
        assert keyring.primary.key_id == rsa_primary.key_id
        assert keyring.subkeys == ()

    def test_not_armored_raises(self) -> None:
        with pytest.raises(KeyParseError):
            Keyring.from_armored("not a key")

    def test_no_primary_raises(self) -> None:
        with pytest.raises(KeyParseError, match="no public key packet"):
            Keyring.from_armored(armor(packet(13, b"user id only")))

    def test_subkey_before_primary_raises(self, rsa_primary: PgpSigner) -> None:
        data = packet(14, rsa_primary.public_body())
        with pytest.raises(KeyParseError, match="before primary"):
            Keyring.from_armored(armor(data))

    def test_unsupported_key_version_raises(self) -> None:
        with pytest.raises(KeyParseError, match="unsupported key version"):
            Keyring.from_armored(armor(packet(6, b"\x03" + b"\x00" * 10)))


# ===========================================================================
# DetachedSignature
# ===========================================================================


class TestDetachedSignature:
    def test_binary_signature_parsed(self, rsa_subkeys: list[PgpSigner]) -> None:
        signer = rsa_subkeys[0]
        signature = DetachedSignature.from_bytes(signer.sign(CONTENT))
        (parsed,) = signature.packets
        assert parsed.issuer_key_id == signer.key_id
        assert parsed.created == signer.created
        assert parsed.algorithm == PublicKeyAlgorithm.RSA

    def test_armored_signature_parsed(self, ed25519_signer: PgpSigner) -> None:
        data = armor(ed25519_signer.sign(CONTENT), label="SIGNATURE").encode("ascii")
        signature = DetachedSignature.from_bytes(data)
        assert signature.packets[0].algorithm == PublicKeyAlgorithm.EDDSA

    def test_multiple_signature_packets(
        self, rsa_primary: PgpSigner, ed25519_signer: PgpSigner
    ) -> None:
        data = rsa_primary.sign(CONTENT) + ed25519_signer.sign(CONTENT)
        assert len(DetachedSignature.from_bytes(data).packets) == 2

    def test_digest_prefix_matches_left16(self, rsa_primary: PgpSigner) -> None:
        (parsed,) = DetachedSignature.from_bytes(rsa_primary.sign(CONTENT)).packets
        assert parsed.digest(CONTENT)[:2] == parsed.left16

    def test_garbage_raises(self) -> None:
        with pytest.raises(SignatureParseError):
            DetachedSignature.from_bytes(b"\x00garbage")

    def test_empty_raises(self) -> None:
        with pytest.raises(SignatureParseError, match="no signature packets"):
            DetachedSignature.from_bytes(b"")

    def test_non_signature_packets_only_raises(self) -> None:
        with pytest.raises(SignatureParseError, match="no signature packets"):
            DetachedSignature.from_bytes(packet(13, b"user"))

    def test_unsupported_hash_raises(self, ed25519_signer: PgpSigner) -> None:
        raw = bytearray(ed25519_signer.sign(CONTENT))
        # header byte, one length byte, then version/type/algorithm/hash
        raw[5] = 1
        with pytest.raises(SignatureParseError, match="unsupported hash"):
            DetachedSignature.from_bytes(bytes(raw))

    def test_key_certification_signature_rejected(
        self, ed25519_signer: PgpSigner
    ) -> None:
        raw = bytearray(ed25519_signer.sign(CONTENT))
        raw[3] = 0x13
        with pytest.raises(SignatureParseError, match="not a document signature"):
            DetachedSignature.from_bytes(bytes(raw))
