"""
Tests for RFC 8291 aes128gcm message encryption.

Covers:
  - encrypt → recipient decrypt round trip
  - body layout (salt, rs, idlen, keyid)
  - fresh salt + ephemeral key per call
  - key validation before any crypto work
  - interop with http_ece as an independent decryptor
"""
import os
import struct

import http_ece
import pytest

from app.domain.push_errors import PushCryptoError
from app.infrastructure.webpush.encryption import (
    HEADER_LENGTH,
    MAX_PLAINTEXT_LENGTH,
    RECORD_SIZE,
    TAG_LENGTH,
    decode_subscription_keys,
    decrypt,
    encrypt,
)
from app.utils.base64url import b64url_decode, b64url_encode

MESSAGE = '{"title":"Lab Ready","body":"CBC for bed 4","type":"lab_results"}'.encode()


class TestRoundTrip:
    def test_decrypt_recovers_payload(self, make_recipient):
        private_key, p256dh, auth = make_recipient()
        body = encrypt(MESSAGE, p256dh, auth)
        assert decrypt(body, private_key, b64url_decode(auth)) == MESSAGE

    def test_empty_payload(self, make_recipient):
        private_key, p256dh, auth = make_recipient()
        body = encrypt(b"", p256dh, auth)
        assert decrypt(body, private_key, b64url_decode(auth)) == b""

    def test_largest_single_record(self, make_recipient):
        private_key, p256dh, auth = make_recipient()
        plaintext = os.urandom(MAX_PLAINTEXT_LENGTH)
        body = encrypt(plaintext, p256dh, auth)
        assert decrypt(body, private_key, b64url_decode(auth)) == plaintext

    def test_wrong_auth_secret_fails(self, make_recipient):
        private_key, p256dh, auth = make_recipient()
        body = encrypt(MESSAGE, p256dh, auth)
        with pytest.raises(PushCryptoError):
            decrypt(body, private_key, os.urandom(16))

    def test_other_recipient_cannot_decrypt(self, make_recipient):
        _, p256dh, auth = make_recipient()
        other_key, _, _ = make_recipient()
        body = encrypt(MESSAGE, p256dh, auth)
        with pytest.raises(PushCryptoError):
            decrypt(body, other_key, b64url_decode(auth))

    def test_tampered_ciphertext_fails(self, make_recipient):
        private_key, p256dh, auth = make_recipient()
        body = bytearray(encrypt(MESSAGE, p256dh, auth))
        body[-1] ^= 0x01
        with pytest.raises(PushCryptoError):
            decrypt(bytes(body), private_key, b64url_decode(auth))


class TestLayout:
    def test_header_fields(self, make_recipient):
        _, p256dh, auth = make_recipient()
        body = encrypt(MESSAGE, p256dh, auth)

        record_size, id_length = struct.unpack("!IB", body[16:HEADER_LENGTH])
        keyid = body[HEADER_LENGTH:HEADER_LENGTH + id_length]

        assert record_size == RECORD_SIZE == 4096
        assert id_length == 65
        assert keyid[0] == 0x04
        # content + 1 delimiter octet + 16-byte tag
        assert len(body) == HEADER_LENGTH + 65 + len(MESSAGE) + 1 + TAG_LENGTH

    def test_fresh_salt_and_ephemeral_key_each_call(self, make_recipient):
        _, p256dh, auth = make_recipient()
        first = encrypt(MESSAGE, p256dh, auth)
        second = encrypt(MESSAGE, p256dh, auth)

        assert first[:16] != second[:16]
        assert first[HEADER_LENGTH:HEADER_LENGTH + 65] != second[HEADER_LENGTH:HEADER_LENGTH + 65]
        assert first[HEADER_LENGTH + 65:] != second[HEADER_LENGTH + 65:]


class TestKeyValidation:
    def test_valid_keys(self, make_recipient):
        _, p256dh, auth = make_recipient()
        public_key, auth_secret = decode_subscription_keys(p256dh, auth)
        assert len(auth_secret) == 16
        assert public_key.curve.name == "secp256r1"

    def test_short_p256dh(self, make_recipient):
        _, _, auth = make_recipient()
        with pytest.raises(PushCryptoError, match="65-byte"):
            encrypt(MESSAGE, b64url_encode(b"\x04" + b"\x01" * 31), auth)

    def test_compressed_point_rejected(self, make_recipient):
        _, _, auth = make_recipient()
        with pytest.raises(PushCryptoError):
            encrypt(MESSAGE, b64url_encode(b"\x02" + b"\x01" * 64), auth)

    def test_point_not_on_curve(self, make_recipient):
        _, _, auth = make_recipient()
        with pytest.raises(PushCryptoError):
            encrypt(MESSAGE, b64url_encode(b"\x04" + b"\x00" * 64), auth)

    def test_wrong_auth_length(self, make_recipient):
        _, p256dh, _ = make_recipient()
        with pytest.raises(PushCryptoError, match="16 bytes"):
            encrypt(MESSAGE, p256dh, b64url_encode(os.urandom(12)))

    def test_not_base64(self, make_recipient):
        _, p256dh, _ = make_recipient()
        with pytest.raises(PushCryptoError):
            encrypt(MESSAGE, p256dh, "not*base64")

    def test_oversized_payload(self, make_recipient):
        _, p256dh, auth = make_recipient()
        with pytest.raises(PushCryptoError, match="too large"):
            encrypt(b"x" * (MAX_PLAINTEXT_LENGTH + 1), p256dh, auth)


def test_http_ece_decrypts_our_body(make_recipient):
    """An independent aes128gcm implementation accepts the message."""
    private_key, p256dh, auth = make_recipient()
    body = encrypt(MESSAGE, p256dh, auth)

    plaintext = http_ece.decrypt(
        body,
        private_key=private_key,
        auth_secret=b64url_decode(auth),
        version="aes128gcm",
    )
    assert plaintext == MESSAGE
