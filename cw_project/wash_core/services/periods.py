"""
Service time zone clock and billing periods.

Every calendar decision (which day is "tomorrow", which month an
invoice belongs to) is taken in the service time zone,
never in UTC or in the host's local zone.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from django.conf import settings
from django.utils import timezone

from ..exceptions import InvalidRunParameters


# ----------------------------
# Service time zone helpers
# ----------------------------
def service_tz() -> ZoneInfo:
    return ZoneInfo(settings.WASH_SERVICE_TIME_ZONE)


def service_now(now: Optional[datetime] = None) -> datetime:
    """Current instant (or ``now``) expressed in the service zone."""
    now = now or timezone.now()
    if timezone.is_naive(now):
        # naive datetimes are read as service-zone wall time
        return now.replace(tzinfo=service_tz())
    return now.astimezone(service_tz())


def service_today(now: Optional[datetime] = None) -> date:
    return service_now(now).date()


def to_service_date(value: datetime) -> date:
    return service_now(value).date()


def start_of_day(day: date) -> datetime:
    """Midnight of ``day`` in the service zone, as an aware datetime."""
    return datetime.combine(day, time.min, tzinfo=service_tz())


# ----------------------------
# Billing period
# ----------------------------
@dataclass(frozen=True)
class BillingPeriod:
    """A calendar month of service. Invoices for it are issued on the 1st of the next month."""

    year: int
    month: int  # 1-12

    def __post_init__(self):
        if not 1 <= self.month <= 12:
            raise InvalidRunParameters(f"Month must be between 1 and 12, got {self.month}")
        if not 1 <= self.year <= 9999:
            raise InvalidRunParameters(f"Invalid year {self.year}")

    @classmethod
    def from_date(cls, day: date) -> "BillingPeriod":
        return cls(day.year, day.month)

    @classmethod
    def from_datetime(cls, value: datetime) -> "BillingPeriod":
        return cls.from_date(to_service_date(value))

    @property
    def key(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"  # e.g. "2026-03"

    @property
    def label(self) -> str:
        return self.first_day.strftime("%B %Y")  # e.g. "March 2026"

    @property
    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def last_day(self) -> date:
        return self.next().first_day - timedelta(days=1)

    @property
    def start(self) -> datetime:
        return start_of_day(self.first_day)

    @property
    def end(self) -> datetime:
        # exclusive bound: midnight of the following month
        return self.next().start

    @property
    def invoice_date(self) -> datetime:
        # postpaid: the work of March is invoiced on April 1st
        return self.next().start

    def next(self) -> "BillingPeriod":
        if self.month == 12:
            return BillingPeriod(self.year + 1, 1)
        return BillingPeriod(self.year, self.month + 1)

    def previous(self) -> "BillingPeriod":
        if self.month == 1:
            return BillingPeriod(self.year - 1, 12)
        return BillingPeriod(self.year, self.month - 1)

    def contains(self, value: datetime) -> bool:
        return self.start <= value < self.end

    def __str__(self):
        return self.key


class BillingPeriodResolver:
    """
    Decide which month a run bills.

    Manual runs pass both year and month.
    Unattended runs pass neither and bill the month that just ended,
    because the cron fires on the 1st.
    """

    def resolve(self, year: Optional[int] = None, month: Optional[int] = None,
                now: Optional[datetime] = None) -> BillingPeriod:
        if year is None and month is None:
            return BillingPeriod.from_date(service_today(now)).previous()
        if year is None or month is None:
            raise InvalidRunParameters("Provide both year and month, or neither.")
        try:
            year, month = int(year), int(month)
        except (TypeError, ValueError):
            raise InvalidRunParameters(f"Invalid period {year!r}-{month!r}") from None
        return BillingPeriod(year, month)


def resolve_billing_period(year=None, month=None, now=None) -> BillingPeriod:
    return BillingPeriodResolver().resolve(year=year, month=month, now=now)
