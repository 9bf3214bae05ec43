"""
VAPID (RFC 8292): application server identification for Web Push.

Each subscription gets its own JWT because the audience is the origin of the
subscription's push service endpoint.
"""
import json
import time
from dataclasses import dataclass
from urllib.parse import urlsplit

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import decode_dss_signature

from app.domain.push_errors import PushConfigurationError, PushCryptoError
from app.infrastructure.webpush.encryption import raw_public_key
from app.utils.base64url import b64url_decode, b64url_encode

# Push services reject tokens living longer than 24h; 12h is our fixed lifetime
JWT_TTL_SECONDS = 12 * 60 * 60
JWT_HEADER = {"typ": "JWT", "alg": "ES256"}
DEFAULT_PORTS = {"https": 443, "http": 80}


@dataclass(frozen=True)
class VapidKeys:
    """Read-only VAPID keypair for one dispatch invocation."""
    private_key: ec.EllipticCurvePrivateKey
    public_key: str  # base64url, uncompressed point
    subject: str  # mailto: or https: contact URI


def _load_private_key(raw_key: str) -> ec.EllipticCurvePrivateKey:
    # .env may store PEM with literal \n or real newlines depending on quoting
    if "\\n" in raw_key:
        raw_key = raw_key.replace("\\n", "\n")

    try:
        if "BEGIN" in raw_key:
            key = serialization.load_pem_private_key(raw_key.strip().encode(), password=None)
        else:
            der = b64url_decode(raw_key)
            if len(der) == 32:
                # Raw private scalar, as produced by some VAPID generators
                key = ec.derive_private_key(int.from_bytes(der, "big"), ec.SECP256R1())
            else:
                # PKCS8 (or SEC1) DER
                key = serialization.load_der_private_key(der, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise PushConfigurationError(f"VAPID private key could not be loaded: {exc}") from exc

    if not isinstance(key, ec.EllipticCurvePrivateKey) or not isinstance(key.curve, ec.SECP256R1):
        raise PushConfigurationError("VAPID private key must be an ES256 (P-256) key")
    return key


def load_vapid_keys(private_key: str, public_key: str | None, subject: str) -> VapidKeys:
    """
    Build a VapidKeys from stored strings.

    Args:
        private_key: PKCS8 DER (base64url), raw 32-byte scalar (base64url) or PEM
        public_key: base64url uncompressed point; derived from the private key if empty
        subject: contact URI for the "sub" claim

    Raises:
        PushConfigurationError: missing/unloadable key or mismatching public key
    """
    if not private_key or not private_key.strip():
        raise PushConfigurationError("VAPID keys not configured")

    key = _load_private_key(private_key.strip())
    derived_public = b64url_encode(raw_public_key(key.public_key()))

    if public_key and public_key.strip():
        try:
            given_public = b64url_decode(public_key)
        except ValueError as exc:
            raise PushConfigurationError(f"VAPID public key is not valid base64url: {exc}") from exc
        if b64url_encode(given_public) != derived_public:
            raise PushConfigurationError("VAPID public key does not match the private key")

    return VapidKeys(private_key=key, public_key=derived_public, subject=subject)


def audience_for(endpoint: str) -> str:
    """
    Origin (scheme://host[:port]) of a push endpoint.

    Host is lowercased and a default port is dropped, so the audience matches
    the origin the push service compares it against.

    Raises:
        PushCryptoError: endpoint has no scheme or host, or a bad port
    """
    parts = urlsplit(endpoint or "")
    if not parts.scheme or not parts.hostname:
        raise PushCryptoError(f"Push endpoint is not an absolute URL: {endpoint[:60]!r}")

    scheme = parts.scheme.lower()
    host = parts.hostname  # already lowercased, userinfo stripped
    if ":" in host:
        host = f"[{host}]"
    try:
        port = parts.port
    except ValueError as exc:
        raise PushCryptoError(f"Push endpoint has an invalid port: {endpoint[:60]!r}") from exc

    if port is not None and port != DEFAULT_PORTS.get(scheme):
        return f"{scheme}://{host}:{port}"
    return f"{scheme}://{host}"


def _json_segment(document: dict) -> str:
    return b64url_encode(json.dumps(document, separators=(",", ":")))


def create_vapid_jwt(keys: VapidKeys, audience: str, now: float | None = None) -> str:
    """
    Mint an ES256 JWT: header.claims.signature, each base64url.

    The signature is the raw r || s form (64 bytes), not DER.
    """
    if now is None:
        now = time.time()
    claims = {
        "aud": audience,
        "exp": int(now) + JWT_TTL_SECONDS,
        "sub": keys.subject,
    }
    signing_input = f"{_json_segment(JWT_HEADER)}.{_json_segment(claims)}"

    der_signature = keys.private_key.sign(signing_input.encode("utf-8"), ec.ECDSA(hashes.SHA256()))
    r, s = decode_dss_signature(der_signature)
    signature = r.to_bytes(32, "big") + s.to_bytes(32, "big")

    return f"{signing_input}.{b64url_encode(signature)}"


def authorization_header(keys: VapidKeys, endpoint: str, now: float | None = None) -> str:
    """Authorization header value for a request to endpoint."""
    token = create_vapid_jwt(keys, audience_for(endpoint), now=now)
    return f"vapid t={token}, k={keys.public_key}"
