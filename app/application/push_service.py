"""
Web Push dispatch service.

One dispatch = one best-effort fan-out:
  resolve targets → preference/quiet-hours filter → per subscription, in
  parallel: VAPID sign, encrypt, POST → delivery log / lifecycle update.

Per-subscription work runs in worker threads and only returns a
DeliveryOutcome; all database writes happen in the calling thread, one row at
a time, as outcomes arrive. A failing recipient never affects its siblings.
"""
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from app.application.push_targets import resolve_subscriptions
from app.config import Settings, get_settings
from app.domain.push_errors import PushConfigurationError, PushCryptoError, PushTransportError
from app.domain.push_notification import DispatchRequest, DispatchResult, NotificationPayload
from app.domain.push_preferences import should_deliver
from app.infrastructure.db.models import PushSubscription
from app.infrastructure.push.repository import (
    AppSecretsRepository,
    PushNotificationLogRepository,
    PushSubscriptionRepository,
)
from app.infrastructure.webpush.encryption import encrypt
from app.infrastructure.webpush.transport import TransportOptions, send_encrypted
from app.infrastructure.webpush.vapid import VapidKeys, authorization_header, load_vapid_keys

logger = logging.getLogger(__name__)

OUTCOME_SENT = "sent"
OUTCOME_EXPIRED = "expired"
OUTCOME_FAILED = "failed"

NO_SUBSCRIPTIONS_MESSAGE = "no active subscriptions"


@dataclass(frozen=True)
class DeliveryTarget:
    """Immutable copy of the subscription fields a worker needs."""
    subscription_id: str
    user_id: str
    endpoint: str
    p256dh: str
    auth: str

    @classmethod
    def from_subscription(cls, sub: PushSubscription) -> "DeliveryTarget":
        return cls(
            subscription_id=sub.id,
            user_id=sub.user_id,
            endpoint=sub.endpoint,
            p256dh=sub.p256dh,
            auth=sub.auth,
        )


@dataclass(frozen=True)
class DeliveryOutcome:
    target: DeliveryTarget
    status: str  # sent, expired, failed
    status_code: int | None = None
    error: str | None = None


def load_vapid_config(db: Session, settings: Settings) -> VapidKeys:
    """
    VAPID keypair from app_secrets, falling back to the environment.

    Raises:
        PushConfigurationError: keys absent or unusable
    """
    secrets = AppSecretsRepository(db)
    private_key = secrets.get("vapid_private_key") or settings.VAPID_PRIVATE_KEY
    public_key = secrets.get("vapid_public_key") or settings.VAPID_PUBLIC_KEY
    if not private_key or not public_key:
        raise PushConfigurationError("VAPID keys not configured")
    return load_vapid_keys(private_key, public_key, settings.VAPID_SUBJECT)


def deliver_to_subscription(
    target: DeliveryTarget,
    message: bytes,
    vapid: VapidKeys,
    options: TransportOptions,
) -> DeliveryOutcome:
    """
    Encrypt, sign and POST one message. Safe to run in any thread.

    Crypto and transport errors become an outcome; anything unexpected
    propagates to the caller through the future.
    """
    try:
        # encrypt() validates the subscription keys, so bad keys fail before signing
        body = encrypt(message, target.p256dh, target.auth)
        authorization = authorization_header(vapid, target.endpoint)
        status_code = send_encrypted(target.endpoint, authorization, body, options)
    except PushCryptoError as exc:
        return DeliveryOutcome(target=target, status=OUTCOME_FAILED, error=str(exc))
    except PushTransportError as exc:
        status = OUTCOME_EXPIRED if exc.terminal else OUTCOME_FAILED
        return DeliveryOutcome(target=target, status=status, status_code=exc.status_code, error=str(exc))

    return DeliveryOutcome(target=target, status=OUTCOME_SENT, status_code=status_code)


class PushDispatcher:
    """
    Dispatches one notification request.

    Usage:
        result = PushDispatcher(db).dispatch(request)
        result.sent, result.failed, result.total, result.skipped
    """

    def __init__(self, db: Session, settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()
        self.subscriptions = PushSubscriptionRepository(db)
        self.delivery_log = PushNotificationLogRepository(db)

    def _local_now(self, now: datetime | None) -> datetime:
        tz = ZoneInfo(self.settings.TIMEZONE)
        if now is None:
            return datetime.now(tz)
        if now.tzinfo is None:
            # Naive clocks are taken as already local
            return now
        return now.astimezone(tz)

    def dispatch(self, request: DispatchRequest, now: datetime | None = None) -> DispatchResult:
        """
        Run the whole fan-out and return aggregate counts.

        Raises:
            PushValidationError: missing title or target (before any I/O)
            PushConfigurationError: VAPID keys absent
        """
        request.validate()
        vapid = load_vapid_config(self.db, self.settings)
        payload = request.payload

        subscriptions = resolve_subscriptions(self.db, request)
        if not subscriptions:
            logger.info("Push dispatch (%s): no active subscriptions", request.target_mode)
            return DispatchResult(message=NO_SUBSCRIPTIONS_MESSAGE)

        notification_type = payload.notification_type
        local_now = self._local_now(now)
        targets = [
            DeliveryTarget.from_subscription(sub)
            for sub in subscriptions
            if should_deliver(sub.preferences, notification_type, payload.urgency, local_now)
        ]
        skipped = len(subscriptions) - len(targets)

        message = payload.to_wire_json(self.settings.PUSH_TAG_PREFIX).encode("utf-8")
        outcomes = self._fan_out(targets, message, vapid, payload)

        sent = 0
        for outcome in outcomes:
            if outcome.status == OUTCOME_SENT:
                sent += 1

        result = DispatchResult(sent=sent, failed=len(targets) - sent, total=len(targets), skipped=skipped)
        logger.info(
            "Push dispatch (%s, type=%s): sent=%d failed=%d total=%d skipped=%d",
            request.target_mode, notification_type, result.sent, result.failed, result.total, result.skipped,
        )
        return result

    def _fan_out(
        self,
        targets: list[DeliveryTarget],
        message: bytes,
        vapid: VapidKeys,
        payload: NotificationPayload,
    ) -> list[DeliveryOutcome]:
        if not targets:
            return []

        options = TransportOptions(
            ttl_seconds=self.settings.PUSH_TTL_SECONDS,
            urgency=self.settings.PUSH_URGENCY,
            timeout_seconds=self.settings.PUSH_TIMEOUT_SECONDS,
        )
        workers = max(1, min(self.settings.PUSH_MAX_WORKERS, len(targets)))
        outcomes: list[DeliveryOutcome] = []

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="push") as pool:
            futures = {
                pool.submit(deliver_to_subscription, target, message, vapid, options): target
                for target in targets
            }
            for future in as_completed(futures):
                target = futures[future]
                try:
                    outcome = future.result()
                except Exception as exc:
                    logger.error(
                        "Push delivery crashed for subscription %s (%s): %s",
                        target.subscription_id, target.endpoint[:60], exc, exc_info=True,
                    )
                    outcome = DeliveryOutcome(target=target, status=OUTCOME_FAILED, error=str(exc))
                self._record(outcome, payload)
                outcomes.append(outcome)

        return outcomes

    def _record(self, outcome: DeliveryOutcome, payload: NotificationPayload) -> None:
        """
        Apply one outcome to the store.

        sent    → last_used_at + delivery log row
        expired → is_active = False (idempotent)
        failed  → log only
        """
        target = outcome.target
        try:
            if outcome.status == OUTCOME_SENT:
                self.subscriptions.touch_last_used(target.subscription_id, datetime.now(timezone.utc))
                self.delivery_log.append(
                    subscription_id=target.subscription_id,
                    user_id=target.user_id,
                    notification_type=payload.notification_type,
                    title=payload.title,
                    body=payload.body,
                    data=payload.data or None,
                )
            elif outcome.status == OUTCOME_EXPIRED:
                logger.info(
                    "Subscription expired (HTTP %s), deactivating: %s",
                    outcome.status_code, target.endpoint[:60],
                )
                self.subscriptions.deactivate(target.subscription_id)
            else:
                logger.error(
                    "Push delivery failed for subscription %s (%s): %s",
                    target.subscription_id, target.endpoint[:60], outcome.error,
                )
        except Exception as exc:
            self.db.rollback()
            logger.error(
                "Push ledger update failed for subscription %s: %s",
                target.subscription_id, exc, exc_info=True,
            )
