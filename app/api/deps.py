"""
FastAPI dependencies (DB session, dispatch key check)
"""
import secrets

from fastapi import Request

from app.config import get_settings
from app.infrastructure.db.session import get_db as _get_db


# Re-exported so routers import every dependency from one place
get_db = _get_db


def dispatch_key_ok(request: Request) -> bool:
    """
    Check the X-Dispatch-Key header against DISPATCH_API_KEY.

    Returns:
        True if no key is configured or the header matches
    """
    expected = get_settings().DISPATCH_API_KEY
    if not expected:
        return True
    given = request.headers.get("X-Dispatch-Key", "")
    return secrets.compare_digest(given, expected)
