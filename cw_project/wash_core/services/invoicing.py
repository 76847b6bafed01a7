import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Count, Q

from ..exceptions import InvalidRunParameters
from ..models import Customer, Invoice, Job
from ..models.customer import VEHICLE_INACTIVE
from ..models.invoice import MODE_FULL_SUBSCRIPTION, MODE_PER_WASH, ZERO
from ..schedule import expected_washes
from .counters import PAYMENTS, next_id
from .periods import BillingPeriod, resolve_billing_period

logger = logging.getLogger(__name__)

INVOICE_MODES = (MODE_FULL_SUBSCRIPTION, MODE_PER_WASH)
CENT = Decimal("0.01")
RATE_PLACES = Decimal("0.0001")


def round2(value) -> Decimal:
    """Round money half-up to cents."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass
class InvoiceRunResult:
    success: bool = True
    # True when invoices already exist for the month; nothing was written
    blocked: bool = False
    existing_count: int = 0
    created: int = 0
    skipped_inactive: int = 0
    skipped_zero_amount: int = 0
    skipped_no_washes: int = 0
    # already billed by a month-end carry-forward invoice
    skipped_carried: int = 0
    mode: str = MODE_FULL_SUBSCRIPTION
    billing_month: str = ""
    invoice_date: Optional[datetime] = None
    message: str = ""

    def as_dict(self):
        data = asdict(self)
        if self.invoice_date is not None:
            data["invoice_date"] = self.invoice_date.isoformat()
        return data


def validate_mode(mode: Optional[str]) -> str:
    mode = mode or settings.WASH_DEFAULT_INVOICE_MODE
    if mode not in INVOICE_MODES:
        raise InvalidRunParameters(
            f"Unknown invoice mode {mode!r}; expected one of {', '.join(INVOICE_MODES)}"
        )
    return mode


# ----------------------------
# Duplicate detection
# ----------------------------
def carried_invoices(period: BillingPeriod):
    """Invoices a month-end close created to carry a balance into ``period``."""
    return Invoice.objects.residence().filter(
        billing_month=period.key, carried_in_entries__target_created=True
    ).distinct()


def existing_invoices(period: BillingPeriod):
    """
    Live residence invoices that already bill ``period``.
    Legacy rows without billing_month are matched by their created_at.
    Carry-forward invoices created by a month-end close are left out:
    they cover only their own vehicle, see ``carried_invoices``.
    """
    legacy = (Q(billing_month__isnull=True) | Q(billing_month="")) & Q(
        created_at__gte=period.start, created_at__lt=period.end
    )
    return (
        Invoice.objects.residence()
        .filter(Q(billing_month=period.key) | legacy)
        .exclude(carried_in_entries__target_created=True)
    )


def check_existing(year: int, month: int) -> dict:
    """Read-only twin of the generator's duplicate guard."""
    period = resolve_billing_period(year, month)
    count = existing_invoices(period).count()
    return {"exists": count > 0, "count": count, "billing_month": period.key}


def completed_wash_counts(period: BillingPeriod) -> dict:
    """Map (customer_id, vehicle_id) -> jobs completed inside the period."""
    rows = (
        Job.objects.alive()
        .filter(
            status="completed",
            completed_date__gte=period.start,
            completed_date__lt=period.end,
        )
        .values("customer_id", "vehicle_id")
        .annotate(washes=Count("id"))
        .order_by()  # group by the two ids only
    )
    return {(row["customer_id"], row["vehicle_id"]): row["washes"] for row in rows}


def last_balance(customer_id, vehicle_id) -> Decimal:
    """Balance of the vehicle's most recent invoice, 0 when it has none."""
    last_invoice = (
        Invoice.objects.residence()
        .for_vehicle(customer_id, vehicle_id)
        .order_by("-pk")
        .only("balance")
        .first()
    )
    if last_invoice is None:
        return ZERO
    return last_invoice.balance or ZERO


def per_wash_charge(monthly_amount: Decimal, completed: int, expected: int):
    """Return (rate, charge) for per-wash billing."""
    rate = monthly_amount / expected if expected > 0 else monthly_amount
    return rate, round2(completed * rate)


# ----------------------------------------------
# Monthly invoice generation
# ----------------------------------------------
def generate_invoices(year: Optional[int] = None, month: Optional[int] = None,
                      mode: Optional[str] = None, now: Optional[datetime] = None,
                      created_by: Optional[str] = None) -> InvoiceRunResult:
    """
    Issue one invoice per active, chargeable vehicle for a billing month.

    Without year/month the previous calendar month is billed.
    If any invoice already bills that month the whole run is blocked
    and nothing is written.
    """
    mode = validate_mode(mode)
    period = resolve_billing_period(year, month, now)
    created_by = created_by or settings.WASH_CRON_ACTOR

    result = InvoiceRunResult(
        mode=mode, billing_month=period.key, invoice_date=period.invoice_date
    )
    logger.info(
        "Invoice run started for %s (%s), invoice date %s",
        period.label, mode, period.invoice_date.date(),
    )

    # Hard stop before anything is written
    existing_count = existing_invoices(period).count()
    if existing_count:
        return _blocked(result, existing_count)

    customers = Customer.objects.alive().prefetch_related("vehicles").order_by("pk")
    wash_counts = completed_wash_counts(period) if mode == MODE_PER_WASH else {}
    carried = set(carried_invoices(period).values_list("customer_id", "vehicle_id"))

    invoices = []
    for customer in customers:
        for vehicle in customer.vehicles.all():
            if vehicle.status == VEHICLE_INACTIVE:
                result.skipped_inactive += 1
                continue
            if (customer.pk, vehicle.pk) in carried:
                result.skipped_carried += 1
                continue

            monthly_amount = vehicle.amount or ZERO
            per_wash_fields = {}

            if mode == MODE_FULL_SUBSCRIPTION:
                charge = monthly_amount
                if charge == 0:
                    result.skipped_zero_amount += 1
                    continue
            else:
                completed = wash_counts.get((customer.pk, vehicle.pk), 0)
                if not completed:
                    result.skipped_no_washes += 1
                    continue
                expected = expected_washes(vehicle, period)
                rate, charge = per_wash_charge(monthly_amount, completed, expected)
                per_wash_fields = {
                    "completed_washes": completed,
                    "expected_washes": expected,
                    "per_wash_rate": rate.quantize(RATE_PLACES, rounding=ROUND_HALF_UP),
                }

            invoice = Invoice(
                number=next_id(PAYMENTS),
                customer=customer,
                vehicle=vehicle,
                registration_no=vehicle.registration_no,
                parking_no=vehicle.parking_no,
                # NULL rather than an empty placeholder when unassigned
                worker_id=vehicle.worker_id,
                building_id=customer.building_id,
                location=customer.location,
                amount_charged=charge,
                old_balance=last_balance(customer.pk, vehicle.pk),
                amount_paid=ZERO,
                status="pending",
                settled="pending",
                onewash=False,
                billing_month=period.key,
                invoice_mode=mode,
                created_at=period.invoice_date,
                created_by=created_by,
                **per_wash_fields,
            )
            invoice.recalc_totals()
            invoices.append(invoice)

    if invoices:
        try:
            with transaction.atomic():
                Invoice.objects.bulk_create(invoices)
        except IntegrityError:
            # Another run inserted invoices for this month after our check
            logger.warning("Invoice insert for %s hit the uniqueness constraint", period.key)
            return _blocked(result, existing_invoices(period).count())
        result.created = len(invoices)
        result.message = f"Created {len(invoices)} invoices for {period.label}."
    else:
        result.message = f"No invoices to create for {period.label}."

    logger.info(
        "Invoice run summary %s: created=%d skipped_inactive=%d skipped_zero_amount=%d "
        "skipped_no_washes=%d skipped_carried=%d",
        period.key,
        result.created,
        result.skipped_inactive,
        result.skipped_zero_amount,
        result.skipped_no_washes,
        result.skipped_carried,
    )
    return result


def _blocked(result: InvoiceRunResult, existing_count: int) -> InvoiceRunResult:
    logger.warning(
        "Invoice run for %s blocked: %d invoices already exist",
        result.billing_month, existing_count,
    )
    result.success = False
    result.blocked = True
    result.existing_count = existing_count
    result.message = (
        f"{existing_count} invoices already exist for {result.billing_month}; "
        "run blocked to prevent duplicates."
    )
    return result
