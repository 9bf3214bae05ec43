"""
Push repositories: subscription lookup/lifecycle, delivery log, secrets.

Every write touches a single row and commits on its own; nothing here opens a
transaction spanning several subscriptions.
"""
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.infrastructure.db.models import AppSecret, PushNotificationLog, PushSubscription, User


class PushSubscriptionRepository:
    """Active-subscription lookups and lifecycle updates"""

    def __init__(self, db: Session):
        self.db = db

    def _active(self):
        return select(PushSubscription).where(PushSubscription.is_active.is_(True))

    def list_for_user(self, user_id: str) -> list[PushSubscription]:
        stmt = self._active().where(PushSubscription.user_id == user_id)
        return list(self.db.scalars(stmt).all())

    def list_for_users(self, user_ids: list[str]) -> list[PushSubscription]:
        if not user_ids:
            return []
        stmt = self._active().where(PushSubscription.user_id.in_(user_ids))
        return list(self.db.scalars(stmt).all())

    def list_for_hospital_role(self, hospital_id: str, role: str) -> list[PushSubscription]:
        stmt = (
            self._active()
            .join(User, User.id == PushSubscription.user_id)
            .where(
                User.role == role,
                PushSubscription.hospital_id == hospital_id,
            )
        )
        return list(self.db.scalars(stmt).all())

    def list_for_hospital(self, hospital_id: str) -> list[PushSubscription]:
        stmt = self._active().where(PushSubscription.hospital_id == hospital_id)
        return list(self.db.scalars(stmt).all())

    def touch_last_used(self, subscription_id: str, when: datetime | None = None) -> None:
        """Record a successful delivery."""
        when = when or datetime.now(timezone.utc)
        self.db.execute(
            update(PushSubscription)
            .where(PushSubscription.id == subscription_id)
            .values(last_used_at=when)
        )
        self.db.commit()

    def deactivate(self, subscription_id: str) -> bool:
        """
        Mark a subscription as gone (push service answered 404/410).

        Idempotent: an already inactive row is left untouched.

        Returns:
            True if the row changed state
        """
        result = self.db.execute(
            update(PushSubscription)
            .where(
                PushSubscription.id == subscription_id,
                PushSubscription.is_active.is_(True),
            )
            .values(is_active=False)
        )
        self.db.commit()
        return result.rowcount > 0


class PushNotificationLogRepository:
    """Append-only delivery log"""

    def __init__(self, db: Session):
        self.db = db

    def append(
        self,
        subscription_id: str,
        user_id: str,
        notification_type: str,
        title: str | None,
        body: str | None,
        data: dict[str, Any] | None,
        sent_at: datetime | None = None,
    ) -> str:
        entry = PushNotificationLog(
            subscription_id=subscription_id,
            user_id=user_id,
            notification_type=notification_type,
            title=title,
            body=body,
            data=data,
            sent_at=sent_at or datetime.now(timezone.utc),
        )
        self.db.add(entry)
        self.db.commit()
        return entry.id


class AppSecretsRepository:
    """Read access to app_secrets"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, key: str) -> str | None:
        row = self.db.get(AppSecret, key)
        return row.value if row else None
