"""
Push dispatch error taxonomy.

Fatal (abort the whole dispatch before any network I/O):
  PushConfigurationError - VAPID keys absent or unusable
  PushValidationError    - missing title / target

Isolated (counted as a per-subscription failure):
  PushCryptoError    - key import, derivation or encryption failure
  PushTransportError - non-2xx from the push service or connection error;
                       terminal for 404/410 (subscription is gone)
"""

TERMINAL_STATUS_CODES = frozenset({404, 410})


class PushError(Exception):
    """Base class for push dispatch errors"""
    pass


class PushConfigurationError(PushError):
    pass


class PushValidationError(PushError, ValueError):
    pass


class PushCryptoError(PushError):
    pass


class PushTransportError(PushError):
    """Push service rejected the message or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code

    @property
    def terminal(self) -> bool:
        """True when the push service reports the endpoint as gone."""
        return self.status_code in TERMINAL_STATUS_CODES
