"""
Recipient preference and quiet-hours filter.

Decides, per subscription, whether a notification must be suppressed:
  1. The type's preference flag explicitly set to False → skip
  2. Quiet hours enabled and the local hour falls inside the window → skip,
     unless the notification is critical (urgency="critical" or vital_alert)

Pure functions only: the clock is passed in by the caller.
"""
from datetime import datetime
from typing import Any

DEFAULT_QUIET_START = "22:00"
DEFAULT_QUIET_END = "07:00"

CRITICAL_URGENCY = "critical"
ALWAYS_DELIVERED_TYPES = frozenset({"vital_alert"})

# notification type → preference flag in PushSubscription.preferences
PREFERENCE_KEYS: dict[str, str] = {
    "patient_assignment": "patientAssignments",
    "surgery_reminder": "surgeryReminders",
    "appointment_reminder": "appointmentReminders",
    "lab_results": "labResults",
    "investigation_results": "investigationResults",
    "prescription_ready": "prescriptionReady",
    "treatment_plan": "treatmentPlanUpdates",
    "vital_alert": "vitalAlerts",
    "staff_message": "staffMessages",
    "system_alert": "systemAlerts",
}

DEFAULT_PREFERENCES: dict[str, Any] = {
    **{key: True for key in PREFERENCE_KEYS.values()},
    "quietHoursEnabled": False,
    "quietHoursStart": DEFAULT_QUIET_START,
    "quietHoursEnd": DEFAULT_QUIET_END,
}


def preference_key_for_type(notification_type: str | None) -> str | None:
    """Preference flag for a notification type, None for unknown types."""
    if not notification_type:
        return None
    return PREFERENCE_KEYS.get(notification_type)


def _parse_hour(value: Any, default: str) -> int:
    """Hour-of-day from 'HH:MM' (minutes are ignored)."""
    for candidate in (value, default):
        if not isinstance(candidate, str):
            continue
        head = candidate.strip().split(":", 1)[0]
        if head.isdigit() and 0 <= int(head) <= 23:
            return int(head)
    return int(default.split(":", 1)[0])


def in_quiet_hours(hour: int, start_hour: int, end_hour: int) -> bool:
    """
    Return True if hour is inside the [start_hour, end_hour) window.

    A window with start > end wraps midnight (e.g. 22 → 7).
    """
    if start_hour > end_hour:
        return hour >= start_hour or hour < end_hour
    return start_hour <= hour < end_hour


def is_critical(notification_type: str | None, urgency: str | None) -> bool:
    return urgency == CRITICAL_URGENCY or notification_type in ALWAYS_DELIVERED_TYPES


def should_deliver(
    preferences: dict[str, Any] | None,
    notification_type: str | None,
    urgency: str | None,
    now: datetime,
) -> bool:
    """
    Apply the recipient's preferences to one notification.

    Args:
        preferences: PushSubscription.preferences (may be empty or None)
        notification_type: effective type of the notification
        urgency: payload urgency ("critical" bypasses quiet hours)
        now: current time, already converted to the recipient's local timezone

    Returns:
        False if the subscription must be skipped
    """
    prefs = preferences or {}

    pref_key = preference_key_for_type(notification_type)
    if pref_key and prefs.get(pref_key) is False:
        return False

    if prefs.get("quietHoursEnabled") is True:
        start_hour = _parse_hour(prefs.get("quietHoursStart"), DEFAULT_QUIET_START)
        end_hour = _parse_hour(prefs.get("quietHoursEnd"), DEFAULT_QUIET_END)
        if in_quiet_hours(now.hour, start_hour, end_hour):
            return is_critical(notification_type, urgency)

    return True
