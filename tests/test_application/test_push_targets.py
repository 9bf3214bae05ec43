"""
Tests for the subscription resolver (target expansion).
"""
import pytest

from app.application.push_targets import resolve_subscriptions
from app.domain.push_errors import PushValidationError
from app.domain.push_notification import DispatchRequest, NotificationPayload
from app.infrastructure.db.models import PushSubscription, User


@pytest.fixture
def staff(db_session):
    """Two hospitals, nurses and a doctor, one inactive subscription."""
    users = [
        User(id="n1", email="n1@h1.test", role="nurse", hospital_id="H1"),
        User(id="n2", email="n2@h1.test", role="nurse", hospital_id="H1"),
        User(id="d1", email="d1@h1.test", role="doctor", hospital_id="H1"),
        User(id="n3", email="n3@h2.test", role="nurse", hospital_id="H2"),
    ]
    subs = [
        PushSubscription(id="s-n1-phone", user_id="n1", hospital_id="H1",
                         endpoint="https://push.test/n1-phone", p256dh="k", auth="a"),
        PushSubscription(id="s-n1-laptop", user_id="n1", hospital_id="H1",
                         endpoint="https://push.test/n1-laptop", p256dh="k", auth="a"),
        PushSubscription(id="s-n2-old", user_id="n2", hospital_id="H1",
                         endpoint="https://push.test/n2-old", p256dh="k", auth="a", is_active=False),
        PushSubscription(id="s-d1", user_id="d1", hospital_id="H1",
                         endpoint="https://push.test/d1", p256dh="k", auth="a"),
        PushSubscription(id="s-n3", user_id="n3", hospital_id="H2",
                         endpoint="https://push.test/n3", p256dh="k", auth="a"),
    ]
    db_session.add_all(users + subs)
    db_session.commit()
    return db_session


def _ids(subs):
    return sorted(s.id for s in subs)


def _request(**target):
    return DispatchRequest(payload=NotificationPayload(title="t"), **target)


def test_single_user_all_devices(staff):
    assert _ids(resolve_subscriptions(staff, _request(user_id="n1"))) == ["s-n1-laptop", "s-n1-phone"]


def test_inactive_excluded(staff):
    assert resolve_subscriptions(staff, _request(user_id="n2")) == []


def test_user_list(staff):
    result = resolve_subscriptions(staff, _request(user_ids=["n2", "d1", "n3"]))
    assert _ids(result) == ["s-d1", "s-n3"]


def test_hospital_and_role(staff):
    result = resolve_subscriptions(staff, _request(hospital_id="H1", role="nurse"))
    assert _ids(result) == ["s-n1-laptop", "s-n1-phone"]


def test_role_in_other_hospital_not_included(staff):
    result = resolve_subscriptions(staff, _request(hospital_id="H2", role="nurse"))
    assert _ids(result) == ["s-n3"]


def test_whole_hospital(staff):
    result = resolve_subscriptions(staff, _request(hospital_id="H1"))
    assert _ids(result) == ["s-d1", "s-n1-laptop", "s-n1-phone"]


def test_user_id_wins_over_hospital(staff):
    result = resolve_subscriptions(staff, _request(user_id="d1", hospital_id="H2", role="nurse"))
    assert _ids(result) == ["s-d1"]


def test_unknown_user_is_empty(staff):
    assert resolve_subscriptions(staff, _request(user_id="nobody")) == []


def test_no_target(staff):
    with pytest.raises(PushValidationError):
        resolve_subscriptions(staff, _request())
