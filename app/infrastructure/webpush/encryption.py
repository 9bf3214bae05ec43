"""
Web Push message encryption (RFC 8291, "aes128gcm" content coding RFC 8188).

encrypt() is called once per subscription and generates a fresh ephemeral
ECDH key pair and salt every time; its output must never be reused for
another recipient.

Body layout (single record):
    salt (16) | rs (4, big-endian) | idlen (1) | keyid = ephemeral public key (65) | ciphertext + tag
"""
import os
import struct

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from app.domain.push_errors import PushCryptoError
from app.infrastructure.webpush.hkdf import hkdf_sha256
from app.utils.base64url import b64url_decode

CONTENT_ENCODING = "aes128gcm"
RECORD_SIZE = 4096
SALT_LENGTH = 16
AUTH_SECRET_LENGTH = 16
PUBLIC_KEY_LENGTH = 65
TAG_LENGTH = 16
HEADER_LENGTH = SALT_LENGTH + 4 + 1

KEY_INFO_PREFIX = b"WebPush: info\x00"
CEK_INFO = b"Content-Encoding: aes128gcm\x00"
NONCE_INFO = b"Content-Encoding: nonce\x00"
LAST_RECORD_DELIMITER = b"\x02"

MAX_PLAINTEXT_LENGTH = RECORD_SIZE - TAG_LENGTH - len(LAST_RECORD_DELIMITER)


def decode_subscription_keys(p256dh: str, auth: str) -> tuple[ec.EllipticCurvePublicKey, bytes]:
    """
    Decode and check a subscription's keys before any encryption work.

    Returns:
        (recipient public key, 16-byte auth secret)

    Raises:
        PushCryptoError: wrong lengths, bad base64url, or a point not on P-256
    """
    try:
        public_bytes = b64url_decode(p256dh or "")
        auth_secret = b64url_decode(auth or "")
    except ValueError as exc:
        raise PushCryptoError(f"Subscription keys are not valid base64url: {exc}") from exc

    if len(public_bytes) != PUBLIC_KEY_LENGTH or public_bytes[0] != 0x04:
        raise PushCryptoError(
            f"p256dh must be a {PUBLIC_KEY_LENGTH}-byte uncompressed P-256 point, got {len(public_bytes)} bytes"
        )
    if len(auth_secret) != AUTH_SECRET_LENGTH:
        raise PushCryptoError(f"auth must be {AUTH_SECRET_LENGTH} bytes, got {len(auth_secret)}")

    try:
        public_key = ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256R1(), public_bytes)
    except ValueError as exc:
        raise PushCryptoError(f"p256dh is not a valid P-256 point: {exc}") from exc

    return public_key, auth_secret


def raw_public_key(public_key: ec.EllipticCurvePublicKey) -> bytes:
    """Uncompressed X9.62 point (0x04 | X | Y)."""
    return public_key.public_bytes(
        encoding=serialization.Encoding.X962,
        format=serialization.PublicFormat.UncompressedPoint,
    )


def _derive_key_and_nonce(
    shared_secret: bytes,
    auth_secret: bytes,
    ua_public: bytes,
    as_public: bytes,
    salt: bytes,
) -> tuple[bytes, bytes]:
    # RFC 8291 §3.3-3.4
    key_info = KEY_INFO_PREFIX + ua_public + as_public
    ikm = hkdf_sha256(shared_secret, auth_secret, key_info, 32)
    cek = hkdf_sha256(ikm, salt, CEK_INFO, 16)
    nonce = hkdf_sha256(ikm, salt, NONCE_INFO, 12)
    return cek, nonce


def encrypt(plaintext: bytes, p256dh: str, auth: str) -> bytes:
    """
    Encrypt a push message for one subscription.

    Args:
        plaintext: message bytes (UTF-8 JSON for notifications)
        p256dh: recipient public key, base64url
        auth: recipient auth secret, base64url

    Returns:
        HTTP body for Content-Encoding: aes128gcm

    Raises:
        PushCryptoError: invalid keys, oversized payload, or crypto failure
    """
    if len(plaintext) > MAX_PLAINTEXT_LENGTH:
        raise PushCryptoError(
            f"Payload too large for a single record: {len(plaintext)} > {MAX_PLAINTEXT_LENGTH} bytes"
        )

    recipient_key, auth_secret = decode_subscription_keys(p256dh, auth)

    try:
        ephemeral_key = ec.generate_private_key(ec.SECP256R1())
        shared_secret = ephemeral_key.exchange(ec.ECDH(), recipient_key)
        as_public = raw_public_key(ephemeral_key.public_key())
        ua_public = raw_public_key(recipient_key)
        salt = os.urandom(SALT_LENGTH)

        cek, nonce = _derive_key_and_nonce(shared_secret, auth_secret, ua_public, as_public, salt)

        # Single record: content, then the last-record delimiter, no padding
        record = plaintext + LAST_RECORD_DELIMITER
        ciphertext = AESGCM(cek).encrypt(nonce, record, None)
    except (ValueError, TypeError) as exc:
        raise PushCryptoError(f"Encryption failed: {exc}") from exc

    header = salt + struct.pack("!IB", RECORD_SIZE, len(as_public)) + as_public
    return header + ciphertext


def decrypt(body: bytes, private_key: ec.EllipticCurvePrivateKey, auth_secret: bytes) -> bytes:
    """
    Recipient-side decryption of a single-record aes128gcm body.

    Mirrors what the browser does; used to verify encrypt().

    Raises:
        PushCryptoError: malformed header, wrong key, or tampered ciphertext
    """
    if len(body) < HEADER_LENGTH:
        raise PushCryptoError("Body shorter than the aes128gcm header")

    salt = body[:SALT_LENGTH]
    record_size, id_length = struct.unpack("!IB", body[SALT_LENGTH:HEADER_LENGTH])
    as_public = body[HEADER_LENGTH:HEADER_LENGTH + id_length]
    ciphertext = body[HEADER_LENGTH + id_length:]

    if len(as_public) != PUBLIC_KEY_LENGTH:
        raise PushCryptoError(f"keyid must be a {PUBLIC_KEY_LENGTH}-byte public key")
    if len(ciphertext) > record_size:
        raise PushCryptoError("Multi-record bodies are not supported")

    try:
        sender_key = ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256R1(), as_public)
        shared_secret = private_key.exchange(ec.ECDH(), sender_key)
        ua_public = raw_public_key(private_key.public_key())
        cek, nonce = _derive_key_and_nonce(shared_secret, auth_secret, ua_public, as_public, salt)
        record = AESGCM(cek).decrypt(nonce, ciphertext, None)
    except (InvalidTag, ValueError) as exc:
        raise PushCryptoError(f"Decryption failed: {exc!r}") from exc

    unpadded = record.rstrip(b"\x00")
    if not unpadded.endswith(LAST_RECORD_DELIMITER):
        raise PushCryptoError("Missing last-record delimiter")
    return unpadded[:-1]
