"""
Unpadded base64url codec (RFC 7515 §2, used by VAPID and RFC 8291 keys)
"""
import base64
import binascii


def b64url_encode(data: bytes | str) -> str:
    """
    Encode bytes (or UTF-8 text) as base64url without '=' padding

    Example:
        >>> b64url_encode(b"\\xfb\\xff")
        "-_8"
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(value: str) -> bytes:
    """
    Decode base64url text, padded or not.

    Browsers sometimes hand out keys in standard base64 ('+', '/'), so those
    characters are accepted too.

    Raises:
        ValueError: on characters outside the alphabet or an impossible length
    """
    if isinstance(value, bytes):
        value = value.decode("ascii")
    cleaned = value.strip().rstrip("=").replace("+", "-").replace("/", "_")
    if len(cleaned) % 4 == 1:
        raise ValueError(f"Invalid base64url length: {len(cleaned)}")
    padded = cleaned + "=" * (-len(cleaned) % 4)
    try:
        return base64.b64decode(padded, altchars=b"-_", validate=True)
    except binascii.Error as exc:
        raise ValueError(f"Invalid base64url data: {exc}") from exc
