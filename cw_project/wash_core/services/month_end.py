import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import List, Optional

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Count, Sum
from django.db.models.functions import TruncMonth
from django.utils import timezone

from ..exceptions import InvalidRunParameters
from ..models import ClosureEntry, Invoice, MonthClosure
from ..models.invoice import ZERO
from .audit_helper import actor_label, log_action
from .counters import CLOSURES, PAYMENTS, next_id
from .periods import BillingPeriod, resolve_billing_period, service_now, service_tz

logger = logging.getLogger(__name__)

CURRENCY = "AED"


@dataclass
class CloseResult:
    success: bool = True
    batch_id: Optional[int] = None
    month: str = ""
    closed: int = 0
    created_next: int = 0
    updated_next: int = 0
    failed: int = 0
    message: str = ""

    def as_dict(self):
        return asdict(self)


@dataclass
class RevertResult:
    success: bool = True
    batch_ids: List[int] = field(default_factory=list)
    month: str = ""
    reopened: int = 0
    deleted_next: int = 0
    restored_next: int = 0
    failed: int = 0
    message: str = ""

    def as_dict(self):
        return asdict(self)


def _explicit_period(year, month) -> BillingPeriod:
    # Month-end always names its month: no "previous month" default here
    if year is None or month is None:
        raise InvalidRunParameters("Month-end operations need both year and month.")
    return resolve_billing_period(year, month)


# ----------------------------------------------
# Month-end close: pending -> completed
# ----------------------------------------------
def close_month(year: int, month: int, user=None,
                now: Optional[datetime] = None) -> CloseResult:
    """
    Close every pending residence invoice issued in the month and carry
    its balance into the same vehicle's invoice of the following month
    (updating it when it exists, creating it otherwise).

    Each invoice is handled in its own transaction; a failure is logged,
    counted and skipped.
    """
    period = _explicit_period(year, month)
    actor = actor_label(user, settings.WASH_CRON_ACTOR)
    close_time = now or timezone.now()

    pending = list(
        Invoice.objects.residence()
        .filter(status="pending")
        .created_between(period.start, period.end)
        .order_by("pk")
    )
    logger.info("Month-end close %s by %s: %d pending invoices", period.key, actor, len(pending))

    closure = MonthClosure.objects.create(
        batch_id=next_id(CLOSURES),
        year=period.year,
        month=period.month,
        closed_at=close_time,
        closed_by=actor,
    )
    result = CloseResult(batch_id=closure.batch_id, month=period.key)

    for invoice in pending:
        try:
            # one invoice per tiny transaction
            with transaction.atomic():
                created = _close_invoice(invoice.pk, closure, close_time, actor)
        except Exception:
            # catch-all so one failure doesn't stop the whole batch
            logger.exception("Error closing invoice %s", invoice.pk)
            result.failed += 1
            continue
        result.closed += 1
        if created:
            result.created_next += 1
        else:
            result.updated_next += 1

    closure.closed_count = result.closed
    closure.created_next_count = result.created_next
    closure.updated_next_count = result.updated_next
    closure.failed_count = result.failed
    closure.save(update_fields=[
        "closed_count", "created_next_count", "updated_next_count", "failed_count",
    ])

    result.message = (
        f"Closed {result.closed} invoices for {period.key}: "
        f"{result.created_next} next-month invoices created, {result.updated_next} updated, "
        f"{result.failed} failed."
    )
    logger.info("Month-end close summary (batch %s): %s", closure.batch_id, result.message)
    return result


def _close_invoice(invoice_pk, closure, close_time, actor) -> bool:
    """Close one invoice; return True when the next-month invoice had to be created."""
    # re-load & lock the row to avoid racing a payment collection
    invoice = Invoice.objects.select_for_update().get(pk=invoice_pk)
    if invoice.status != "pending" or invoice.is_deleted:
        raise ValidationError(f"Invoice {invoice.pk} is no longer pending")

    carried = invoice.balance or ZERO
    entry = ClosureEntry(
        closure=closure,
        source_invoice=invoice,
        carried_amount=carried,
        previous_notes=invoice.notes,
        previous_collected_date=invoice.collected_date,
    )

    # 1. Close: balance moves to next month, amount_paid untouched
    note = (
        f"Closed by Month-End on {service_now(close_time):%Y-%m-%d} "
        f"- Carried Forward: {carried} {CURRENCY}"
    )
    invoice.status = "completed"
    invoice.balance = ZERO
    invoice.collected_date = close_time
    invoice.notes = f"{invoice.notes} | {note}" if invoice.notes else note
    invoice.closure = closure
    invoice.save(update_fields=["status", "balance", "collected_date", "notes", "closure", "updated_at"])

    # 2. Carry into the following month's invoice for the same vehicle
    issued = BillingPeriod.from_datetime(invoice.created_at)
    following = issued.next()
    target = (
        Invoice.objects.residence()
        .select_for_update()
        .for_vehicle(invoice.customer_id, invoice.vehicle_id)
        .created_between(following.start, following.end)
        .exclude(pk=invoice.pk)
        .order_by("pk")
        .first()
    )

    if target is not None:
        before = {"old_balance": str(target.old_balance), "balance": str(target.balance)}
        target.old_balance = (target.old_balance or ZERO) + carried
        target.recalc_totals()
        target.closure = closure
        target.save(update_fields=["old_balance", "total_amount", "balance", "closure", "updated_at"])
        entry.target_created = False
        log_action(
            action="carry_forward",
            instance=target,
            user=actor,
            changes={"before": before, "old_balance": str(target.old_balance),
                     "balance": str(target.balance), "batch": closure.batch_id},
        )
    else:
        target = Invoice(
            number=next_id(PAYMENTS),
            customer_id=invoice.customer_id,
            vehicle_id=invoice.vehicle_id,
            registration_no=invoice.registration_no,
            parking_no=invoice.parking_no,
            worker_id=invoice.worker_id,
            building_id=invoice.building_id,
            location=invoice.location,
            amount_charged=invoice.amount_charged,
            old_balance=carried,
            amount_paid=ZERO,
            status="pending",
            settled="pending",
            onewash=False,
            # the month between the closed invoice's issue date and the new one
            billing_month=issued.key,
            invoice_mode=invoice.invoice_mode,
            created_at=following.start,
            created_by=actor,
            closure=closure,
        )
        target.recalc_totals()
        target.save()
        entry.target_created = True

    entry.target_invoice = target
    entry.save()

    log_action(
        action="close_month",
        instance=invoice,
        user=actor,
        changes={"carried_forward": str(carried), "target_invoice": target.pk,
                 "target_created": entry.target_created, "batch": closure.batch_id},
    )
    return entry.target_created


# ----------------------------------------------
# Revert month-end close: completed -> pending
# ----------------------------------------------
def revert_month(year: int, month: int, user=None,
                 now: Optional[datetime] = None) -> RevertResult:
    """Revert every closure batch still in force for the month, newest first."""
    period = _explicit_period(year, month)
    closures = list(
        MonthClosure.objects.filter(year=period.year, month=period.month, status="closed")
        .order_by("-closed_at", "-pk")
    )
    result = RevertResult(month=period.key)
    if not closures:
        result.message = f"No month-end close found for {period.key}."
        logger.info(result.message)
        return result

    for closure in closures:
        revert_closure(closure, user=user, now=now, result=result)

    result.message = (
        f"Reverted {period.key}: {result.reopened} invoices reopened, "
        f"{result.deleted_next} next-month invoices deleted, "
        f"{result.restored_next} restored, {result.failed} failed."
    )
    logger.info(result.message)
    return result


def revert_closure(closure: MonthClosure, user=None, now: Optional[datetime] = None,
                   result: Optional[RevertResult] = None) -> RevertResult:
    """Undo exactly what one closure batch did, entry by entry."""
    actor = actor_label(user, settings.WASH_CRON_ACTOR)
    revert_time = now or timezone.now()
    if result is None:
        result = RevertResult(month=f"{closure.year:04d}-{closure.month:02d}")
    result.batch_ids.append(closure.batch_id)

    logger.info("Reverting closure batch %s by %s", closure.batch_id, actor)
    failed = 0
    for entry in closure.entries.filter(reverted=False).order_by("-pk"):
        try:
            with transaction.atomic():
                deleted = _revert_entry(entry.pk, revert_time, actor)
        except Exception:
            logger.exception("Error reverting closure entry %s (invoice %s)",
                             entry.pk, entry.source_invoice_id)
            failed += 1
            continue
        result.reopened += 1
        if deleted is True:
            result.deleted_next += 1
        elif deleted is False:
            result.restored_next += 1

    result.failed += failed
    # A batch with failed entries stays "closed" so a second revert
    # picks up exactly the leftovers
    if failed == 0:
        closure.status = "reverted"
        closure.reverted_at = revert_time
        closure.reverted_by = actor
        closure.save(update_fields=["status", "reverted_at", "reverted_by"])
    return result


def _revert_entry(entry_pk, revert_time, actor):
    """
    Reopen one source invoice and undo its carry-forward.
    Returns True (target deleted), False (target restored) or None (no live target).
    """
    entry = ClosureEntry.objects.select_for_update().get(pk=entry_pk)
    source = Invoice.objects.select_for_update().get(pk=entry.source_invoice_id)

    outcome = None
    if entry.target_invoice_id:
        target = Invoice.objects.select_for_update().get(pk=entry.target_invoice_id)
        if not target.is_deleted:
            if entry.target_created:
                if target.amount_paid:
                    raise ValidationError(
                        f"Invoice {target.pk} already has payments; cannot remove it")
                target.is_deleted = True
                target.deleted_at = revert_time
                target.save(update_fields=["is_deleted", "deleted_at", "updated_at"])
                outcome = True
            else:
                target.old_balance = (target.old_balance or ZERO) - entry.carried_amount
                target.recalc_totals()
                target.save(update_fields=["old_balance", "total_amount", "balance", "updated_at"])
                outcome = False

    source.status = "pending"
    source.balance = entry.carried_amount
    source.collected_date = entry.previous_collected_date
    source.notes = entry.previous_notes
    source.save(update_fields=["status", "balance", "collected_date", "notes", "updated_at"])

    entry.reverted = True
    entry.save(update_fields=["reverted"])

    log_action(
        action="revert_month",
        instance=source,
        user=actor,
        changes={"balance": str(source.balance), "target_invoice": entry.target_invoice_id,
                 "target_deleted": outcome is True, "batch": entry.closure.batch_id},
    )
    return outcome


# ----------------------------------------------
# Month overview (which months are still open)
# ----------------------------------------------
def months_overview() -> list:
    """
    Pending/completed counts and outstanding balance per issue month,
    newest first. A month is closed when nothing in it is pending.
    """
    rows = (
        Invoice.objects.residence()
        .filter(status__in=["pending", "completed"])
        .annotate(issue_month=TruncMonth("created_at", tzinfo=service_tz()))
        .values("issue_month", "status")
        .annotate(count=Count("id"), total_balance=Sum("balance"))
        .order_by()
    )

    months = {}
    for row in rows:
        issued = row["issue_month"]
        key = (issued.year, issued.month)
        summary = months.setdefault(key, {
            "year": issued.year,
            "month": issued.month,
            "pending": 0,
            "completed": 0,
            "count": 0,
            "total_balance": ZERO,
        })
        summary[row["status"]] += row["count"]
        summary["count"] += row["count"]
        summary["total_balance"] += row["total_balance"] or ZERO

    overview = []
    for key in sorted(months, reverse=True):
        summary = months[key]
        summary["is_closed"] = summary["pending"] == 0 and summary["completed"] > 0
        overview.append(summary)
    return overview
