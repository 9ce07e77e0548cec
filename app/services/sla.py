"""SLA deadlines and live SLA status.

Pure time math, no database access. The deadline is stamped once when a ticket
is created; the status is derived from (deadline, now) on every read.
"""
from datetime import datetime, timedelta
from typing import NamedTuple

from app.clock import as_utc
from app.config import settings

WITHIN_SLA = "within_sla"
AT_RISK = "at_risk"
BREACHED = "breached"

DEFAULT_PRIORITY = "medium"

SLA_HOURS: dict[str, int] = {
    "urgent": settings.SLA_URGENT_HOURS,
    "high": settings.SLA_HIGH_HOURS,
    "medium": settings.SLA_MEDIUM_HOURS,
    "low": settings.SLA_LOW_HOURS,
}

_STATUS_LABELS = {
    WITHIN_SLA: "On Track",
    AT_RISK: "At Risk",
    BREACHED: "SLA Breached",
}


class TimeRemaining(NamedTuple):
    total_seconds: int
    hours: int
    minutes: int
    is_overdue: bool


def sla_hours_for(priority: str | None) -> int:
    key = (priority or "").lower()
    return SLA_HOURS.get(key, SLA_HOURS[DEFAULT_PRIORITY])


def calculate_sla_deadline(priority: str | None, created_at: datetime) -> datetime:
    return as_utc(created_at) + timedelta(hours=sla_hours_for(priority))


def check_sla_status(
    deadline: datetime | None,
    now: datetime,
    created_at: datetime,
    at_risk_percent: int | None = None,
) -> str | None:
    """Derive within_sla / at_risk / breached.

    The at-risk threshold is a share of the whole SLA window
    (``deadline - created_at``).
    """
    if deadline is None:
        return None

    deadline = as_utc(deadline)
    now = as_utc(now)
    remaining = deadline - now
    if remaining <= timedelta(0):
        return BREACHED

    window = deadline - as_utc(created_at)
    if window <= timedelta(0):
        return BREACHED

    percent = settings.SLA_AT_RISK_PERCENT if at_risk_percent is None else at_risk_percent
    if remaining <= window * percent / 100:
        return AT_RISK
    return WITHIN_SLA


def time_remaining(deadline: datetime | None, now: datetime) -> TimeRemaining:
    if deadline is None:
        return TimeRemaining(0, 0, 0, False)
    diff = int((as_utc(deadline) - as_utc(now)).total_seconds())
    overdue = diff <= 0
    total = abs(diff)
    return TimeRemaining(total, total // 3600, (total % 3600) // 60, overdue)


def format_time_remaining(deadline: datetime | None, now: datetime) -> str:
    if deadline is None:
        return "No SLA"
    remaining = time_remaining(deadline, now)
    if remaining.is_overdue:
        if remaining.hours > 0:
            return f"Overdue by {remaining.hours}h {remaining.minutes}m"
        return f"Overdue by {remaining.minutes}m"
    if remaining.hours > 24:
        return f"{remaining.hours // 24}d {remaining.hours % 24}h remaining"
    if remaining.hours > 0:
        return f"{remaining.hours}h {remaining.minutes}m remaining"
    return f"{remaining.minutes}m remaining"


def status_label(status: str | None) -> str:
    return _STATUS_LABELS.get(status, "No SLA")
