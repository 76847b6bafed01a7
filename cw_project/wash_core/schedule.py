"""
Schedule evaluation: is a vehicle due for a wash on a given calendar day?

Dates handled here are plain ``datetime.date`` values that are already
expressed in the service time zone (see ``services.periods``).

Weekdays are Sunday-indexed: Sunday=0 ... Saturday=6.

Two definitions of "daily" coexist on purpose:
  * job generation: every calendar day
  * per-wash billing (expected washes): Monday to Saturday
Unifying them would change the rate of every per-wash customer.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Optional

from .models.customer import (SCHEDULE_DAILY, SCHEDULE_WEEKLY,
                              VEHICLE_ACTIVE)

logger = logging.getLogger(__name__)

WEEKDAY_NAMES = (
    "sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday",
)
SUNDAY = 0


def weekday_index(day: date) -> int:
    # isoweekday: Monday=1 ... Sunday=7
    return day.isoweekday() % 7


def _weekday_from_token(token: Any) -> Optional[int]:
    """Map one weekday marker (number, abbreviation or name) to 0-6."""
    if isinstance(token, bool):
        return None
    if isinstance(token, int):
        return token if 0 <= token <= 6 else None
    if not isinstance(token, str):
        return None

    text = token.strip().lower().rstrip(".")
    if not text:
        return None
    if text.isdigit():
        value = int(text)
        return value if 0 <= value <= 6 else None

    # "mo", "mon", "tues", "monday" ... unique prefix of a full name
    if len(text) >= 2:
        matches = [i for i, name in enumerate(WEEKDAY_NAMES) if name.startswith(text)]
        if len(matches) == 1:
            return matches[0]
    # "mondays", "Mon-AM" ... starts with a three-letter abbreviation
    for i, name in enumerate(WEEKDAY_NAMES):
        if text.startswith(name[:3]):
            return i
    return None


def parse_schedule_days(raw: Any) -> frozenset[int]:
    """
    Normalize every stored representation of ``schedule_days``
    into a set of Sunday-indexed weekdays.

    Accepted shapes (and any list mixing them):
        "Mon" / "monday" / "mon, wed, fri" / 1 / "1"
        {"day": "Mon", "value": 1}
    Unrecognized markers are dropped.
    """
    if raw is None:
        return frozenset()

    if isinstance(raw, dict):
        # {day, value}: the numeric value wins, the name is the fallback
        value = _weekday_from_token(raw.get("value"))
        if value is None:
            value = _weekday_from_token(raw.get("day"))
        if value is None:
            logger.debug("Ignoring unrecognized schedule day %r", raw)
            return frozenset()
        return frozenset({value})

    if isinstance(raw, (list, tuple, set, frozenset)):
        days: set[int] = set()
        for item in raw:
            days |= parse_schedule_days(item)
        return frozenset(days)

    if isinstance(raw, str) and "," in raw:
        return parse_schedule_days([part for part in raw.split(",")])

    value = _weekday_from_token(raw)
    if value is None:
        logger.debug("Ignoring unrecognized schedule day %r", raw)
        return frozenset()
    return frozenset({value})


@dataclass(frozen=True)
class VehicleSchedule:
    """Immutable view of everything the evaluator needs from a vehicle."""

    schedule_type: str
    weekdays: frozenset[int]
    active: bool
    start_date: Optional[date] = None
    deactivate_date: Optional[date] = None

    @classmethod
    def from_vehicle(cls, vehicle) -> "VehicleSchedule":
        return cls(
            schedule_type=vehicle.schedule_type,
            weekdays=parse_schedule_days(vehicle.schedule_days),
            active=vehicle.status == VEHICLE_ACTIVE,
            start_date=vehicle.start_date,
            deactivate_date=vehicle.deactivate_date,
        )

    def has_started(self, day: date) -> bool:
        return self.start_date is None or self.start_date <= day

    def is_deactivated(self, day: date) -> bool:
        # An inactive vehicle without a deactivation date counts as
        # deactivated already
        if self.active:
            return False
        return self.deactivate_date is None or self.deactivate_date <= day

    def matches_pattern(self, day: date, billing: bool = False) -> bool:
        if self.schedule_type == SCHEDULE_DAILY:
            return not (billing and weekday_index(day) == SUNDAY)
        if self.schedule_type == SCHEDULE_WEEKLY:
            return weekday_index(day) in self.weekdays
        # onetime washes are booked by hand, never by the recurring scheduler
        return False

    def is_due(self, day: date, billing: bool = False) -> bool:
        if not self.has_started(day) or self.is_deactivated(day):
            return False
        return self.matches_pattern(day, billing=billing)


def as_schedule(vehicle_or_schedule) -> VehicleSchedule:
    if isinstance(vehicle_or_schedule, VehicleSchedule):
        return vehicle_or_schedule
    return VehicleSchedule.from_vehicle(vehicle_or_schedule)


def is_due(vehicle_or_schedule, day: date) -> bool:
    """True when the vehicle needs a wash on ``day`` (job-generation rule)."""
    return as_schedule(vehicle_or_schedule).is_due(day)


def count_due_days(vehicle_or_schedule, range_start: date, range_end: date,
                   billing: bool = False) -> int:
    """Number of due days in [range_start, range_end], both inclusive."""
    schedule = as_schedule(vehicle_or_schedule)
    total = 0
    day = range_start
    while day <= range_end:
        if schedule.is_due(day, billing=billing):
            total += 1
        day += timedelta(days=1)
    return total


def expected_washes(vehicle_or_schedule, period) -> int:
    """Denominator of the per-wash rate for a billing period (billing rule)."""
    return count_due_days(
        vehicle_or_schedule, period.first_day, period.last_day, billing=True
    )
