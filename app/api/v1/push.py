"""
Web Push dispatch API endpoints.
"""
import logging
from typing import Any

from fastapi import APIRouter, Request, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from pydantic import BaseModel, ConfigDict, Field

from app.api.deps import get_db, dispatch_key_ok
from app.application.push_service import PushDispatcher, load_vapid_config
from app.config import get_settings
from app.domain.push_errors import PushConfigurationError, PushValidationError
from app.domain.push_notification import DispatchRequest, NotificationPayload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/push", tags=["push"])


# === Request models ===

class NotificationAction(BaseModel):
    action: str
    title: str
    icon: str | None = None


class NotificationPayloadIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str | None = None  # required, checked by the dispatcher (400, not 422)
    body: str | None = None
    icon: str | None = None
    badge: str | None = None
    image: str | None = None
    tag: str | None = None
    data: dict[str, Any] | None = None
    actions: list[NotificationAction] | None = None
    require_interaction: bool | None = Field(default=None, alias="requireInteraction")
    silent: bool | None = None
    vibrate: list[int] | None = None
    timestamp: int | None = None
    renotify: bool | None = None
    type: str | None = None
    urgency: str | None = None

    def to_domain(self) -> NotificationPayload:
        return NotificationPayload(
            title=self.title or "",
            body=self.body,
            icon=self.icon,
            badge=self.badge,
            image=self.image,
            tag=self.tag,
            data=dict(self.data or {}),
            actions=[a.model_dump(exclude_none=True) for a in self.actions] if self.actions else None,
            require_interaction=self.require_interaction,
            silent=self.silent,
            vibrate=self.vibrate,
            timestamp=self.timestamp,
            renotify=self.renotify,
            type=self.type,
            urgency=self.urgency,
        )


class SendPushRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str | None = Field(default=None, alias="userId")
    user_ids: list[str] | None = Field(default=None, alias="userIds")
    hospital_id: str | None = Field(default=None, alias="hospitalId")
    role: str | None = None
    payload: NotificationPayloadIn | None = None

    def to_domain(self) -> DispatchRequest:
        return DispatchRequest(
            payload=self.payload.to_domain() if self.payload else None,
            user_id=self.user_id,
            user_ids=self.user_ids,
            hospital_id=self.hospital_id,
            role=self.role,
        )


# === Endpoints ===

@router.post("/send")
def send_push(body: SendPushRequest, request: Request, db: Session = Depends(get_db)):
    """Fan a notification out to every matching subscription."""
    if not dispatch_key_ok(request):
        return JSONResponse({"error": "Unauthorized"}, status_code=401)

    try:
        result = PushDispatcher(db).dispatch(body.to_domain())
    except PushValidationError as e:
        return JSONResponse({"error": str(e)}, status_code=400)
    except PushConfigurationError as e:
        logger.error("Push dispatch aborted: %s", e)
        return JSONResponse({"error": str(e)}, status_code=500)

    return result.to_dict()


@router.get("/public-key")
def public_key(db: Session = Depends(get_db)):
    """Application server key for PushManager.subscribe() in the browser."""
    try:
        vapid = load_vapid_config(db, get_settings())
    except PushConfigurationError as e:
        return JSONResponse({"error": str(e)}, status_code=500)
    return {"publicKey": vapid.public_key}
