"""
Push notification domain objects: payload, dispatch request, dispatch result.

The payload is never persisted as an entity; to_wire_json() produces the
exact JSON document that gets encrypted for each subscription.
"""
import json
import time
from dataclasses import dataclass, field
from typing import Any

from app.domain.push_errors import PushValidationError

DEFAULT_NOTIFICATION_TYPE = "general"
DEFAULT_ICON = "/icons/icon-192x192.png"
DEFAULT_BADGE = "/icons/icon-72x72.png"


@dataclass
class NotificationPayload:
    """
    Notification as the service worker receives it.

    type drives the preference lookup, urgency="critical" bypasses quiet hours.
    """
    title: str
    body: str | None = None
    icon: str | None = None
    badge: str | None = None
    image: str | None = None
    tag: str | None = None
    data: dict[str, Any] = field(default_factory=dict)
    actions: list[dict[str, Any]] | None = None
    require_interaction: bool | None = None
    silent: bool | None = None
    vibrate: list[int] | None = None
    timestamp: int | None = None
    renotify: bool | None = None
    type: str | None = None
    urgency: str | None = None

    @property
    def notification_type(self) -> str:
        """payload.type, then data["type"], then "general"."""
        if self.type:
            return self.type
        data_type = (self.data or {}).get("type")
        if isinstance(data_type, str) and data_type:
            return data_type
        return DEFAULT_NOTIFICATION_TYPE

    def to_wire_json(self, tag_prefix: str, now_ms: int | None = None) -> str:
        """
        Serialize for encryption, filling in icon/badge/tag/timestamp defaults.

        Keys without a value are omitted.
        """
        if now_ms is None:
            now_ms = int(time.time() * 1000)
        notification_type = self.notification_type

        document = {
            "title": self.title,
            "body": self.body,
            "icon": self.icon or DEFAULT_ICON,
            "badge": self.badge or DEFAULT_BADGE,
            "image": self.image,
            "tag": self.tag or f"{tag_prefix}-{notification_type}-{now_ms}",
            "data": {**(self.data or {}), "type": notification_type},
            "actions": self.actions,
            "requireInteraction": self.require_interaction,
            "silent": self.silent,
            "vibrate": self.vibrate,
            "timestamp": self.timestamp or now_ms,
            "renotify": self.renotify,
            "type": notification_type,
            "urgency": self.urgency,
        }
        return json.dumps(
            {k: v for k, v in document.items() if v is not None},
            ensure_ascii=False,
            separators=(",", ":"),
        )


@dataclass
class DispatchRequest:
    """
    Who to notify and with what.

    Target modes, in precedence order:
      user_id → user_ids → (hospital_id, role) → hospital_id
    """
    payload: NotificationPayload | None
    user_id: str | None = None
    user_ids: list[str] | None = None
    hospital_id: str | None = None
    role: str | None = None

    @property
    def target_mode(self) -> str:
        if self.user_id:
            return "user"
        if self.user_ids:
            return "users"
        if self.hospital_id and self.role:
            return "hospital_role"
        if self.hospital_id:
            return "hospital"
        raise PushValidationError("no target specified")

    def validate(self) -> None:
        """Raise PushValidationError for a missing title or target."""
        if self.payload is None or not (self.payload.title or "").strip():
            raise PushValidationError("Missing required payload with title")
        _ = self.target_mode


@dataclass
class DispatchResult:
    sent: int = 0
    failed: int = 0
    total: int = 0
    skipped: int = 0
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "success": True,
            "sent": self.sent,
            "failed": self.failed,
            "total": self.total,
            "skipped": self.skipped,
        }
        if self.message:
            result["message"] = self.message
        return result
