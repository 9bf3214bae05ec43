"""
HTTP delivery of encrypted messages to push service endpoints.
"""
import logging
from dataclasses import dataclass

import requests

from app.domain.push_errors import PushTransportError
from app.infrastructure.webpush.encryption import CONTENT_ENCODING

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransportOptions:
    ttl_seconds: int = 86400
    urgency: str = "high"
    timeout_seconds: float = 10.0


def build_headers(authorization: str, body: bytes, options: TransportOptions) -> dict[str, str]:
    return {
        "Authorization": authorization,
        "Content-Type": "application/octet-stream",
        "Content-Encoding": CONTENT_ENCODING,
        "Content-Length": str(len(body)),
        "TTL": str(options.ttl_seconds),
        "Urgency": options.urgency,
    }


def send_encrypted(endpoint: str, authorization: str, body: bytes, options: TransportOptions) -> int:
    """
    POST one encrypted message.

    Returns:
        HTTP status code (2xx)

    Raises:
        PushTransportError: non-2xx response (terminal for 404/410) or network error
    """
    headers = build_headers(authorization, body, options)
    try:
        resp = requests.post(endpoint, data=body, headers=headers, timeout=options.timeout_seconds)
    except requests.RequestException as exc:
        raise PushTransportError(f"Push request failed: {exc}") from exc

    if 200 <= resp.status_code < 300:
        logger.debug("Push accepted (HTTP %d): %s", resp.status_code, endpoint[:60])
        return resp.status_code

    reason = getattr(resp, "reason", "") or ""
    raise PushTransportError(f"Push failed: {resp.status_code} {reason}".strip(), status_code=resp.status_code)
