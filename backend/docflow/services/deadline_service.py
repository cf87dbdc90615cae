# Overview: Business-day arithmetic for return deadlines and due-date classification.

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum


# Business days a branch has to return original paper documents
RETURN_WINDOW_BUSINESS_DAYS = 5

# Notifier horizon for "due soon"
DEFAULT_SOON_DAYS = 3

_SATURDAY = 5
_SUNDAY = 6


class DueClass(str, Enum):
    OVERDUE = "overdue"
    TODAY = "today"
    SOON = "soon"


@dataclass(frozen=True)
class ReturnWindow:
    send_back_date: date
    deadline_date: date

    def to_dict(self) -> dict:
        return {
            "send_back_date": self.send_back_date.isoformat(),
            "deadline_date": self.deadline_date.isoformat(),
        }


def is_business_day(day: date) -> bool:
    """Saturday and Sunday are the only non-business days; holidays are not modelled."""
    return day.weekday() not in (_SATURDAY, _SUNDAY)


def add_business_days(start: date, n: int) -> date:
    """
    Advance `n` business days from `start`, counting from the day after.

    add_business_days(friday, 1) is the following Monday; n=0 returns start
    unchanged even on a weekend.
    """
    if n < 0:
        raise ValueError("n must be >= 0")

    current = start
    remaining = n
    while remaining > 0:
        current += timedelta(days=1)
        if is_business_day(current):
            remaining -= 1
    return current


def compute_return_window(send_back_date: date, business_days: int = RETURN_WINDOW_BUSINESS_DAYS) -> ReturnWindow:
    return ReturnWindow(
        send_back_date=send_back_date,
        deadline_date=add_business_days(send_back_date, business_days),
    )


def days_until(due_date: date, today: date) -> int:
    """Calendar days from today to due_date; negative once overdue."""
    return (due_date - today).days


def classify_due(due_date: date | None, today: date, soon_days: int = DEFAULT_SOON_DAYS) -> DueClass | None:
    """
    Bucket a due date relative to today.

    Returns None when there is no due date or it is further out than
    soon_days calendar days.
    """
    if due_date is None:
        return None
    delta = days_until(due_date, today)
    if delta < 0:
        return DueClass.OVERDUE
    if delta == 0:
        return DueClass.TODAY
    if delta <= soon_days:
        return DueClass.SOON
    return None
