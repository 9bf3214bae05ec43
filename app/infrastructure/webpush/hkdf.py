"""
HKDF-SHA256 (RFC 5869) as used by the Web Push content encoding.
"""
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF


def hkdf_sha256(ikm: bytes, salt: bytes, info: bytes, length: int) -> bytes:
    """
    Extract-then-expand: PRK = HMAC(salt, IKM), OKM = T(1) | T(2) | ... [:length]

    Args:
        ikm: input keying material
        salt: non-secret salt (auth secret or record salt for Web Push)
        info: context string, e.g. b"Content-Encoding: nonce\\x00"
        length: number of output bytes

    Raises:
        ValueError: length above 255 * 32 (raised by cryptography's HKDF)
    """
    return HKDF(algorithm=hashes.SHA256(), length=length, salt=salt, info=info).derive(ikm)
