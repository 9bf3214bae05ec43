"""
Subscription resolver: expands a dispatch target into active subscriptions.
"""
from sqlalchemy.orm import Session

from app.domain.push_notification import DispatchRequest
from app.infrastructure.db.models import PushSubscription
from app.infrastructure.push.repository import PushSubscriptionRepository


def resolve_subscriptions(db: Session, request: DispatchRequest) -> list[PushSubscription]:
    """
    Active subscriptions for the request's target.

    Precedence: user_id, user_ids, (hospital_id, role), hospital_id.
    An empty list is a valid answer, not an error.

    Raises:
        PushValidationError: no target given
    """
    repo = PushSubscriptionRepository(db)
    mode = request.target_mode

    if mode == "user":
        return repo.list_for_user(request.user_id)
    if mode == "users":
        return repo.list_for_users(request.user_ids)
    if mode == "hospital_role":
        return repo.list_for_hospital_role(request.hospital_id, request.role)
    return repo.list_for_hospital(request.hospital_id)
