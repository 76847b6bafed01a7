from decimal import Decimal, InvalidOperation
from typing import Optional

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from ..models import Invoice, PaymentTransaction
from ..models.invoice import ZERO
from .audit_helper import actor_label, log_action


# ----------------------------
# Payment collection
# ----------------------------
def collect_payment(invoice_id: int, amount, payment_mode: str = "cash",
                    payment_date=None, user=None):
    """
    Record money received against an invoice.
    Locks the invoice row during the operation.
    Returns (invoice, transaction).
    """
    try:
        amount = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid payment amount {amount!r}") from None
    if not amount.is_finite():
        # NaN and Infinity parse as Decimals but cannot be compared or stored
        raise ValidationError(f"Invalid payment amount {amount}")
    if amount <= ZERO:
        raise ValidationError("Payment amount must be positive")

    actor = actor_label(user)
    paid_at = payment_date or timezone.now()

    with transaction.atomic():
        # Lock the invoice until the transaction finishes
        invoice = Invoice.objects.select_for_update().get(pk=invoice_id, is_deleted=False)
        before = {"amount_paid": str(invoice.amount_paid), "balance": str(invoice.balance),
                  "status": invoice.status}

        invoice.amount_paid = (invoice.amount_paid or ZERO) + amount
        invoice.recalc_totals()
        # Fully settled once nothing is left to pay
        invoice.status = "completed" if invoice.balance <= ZERO else "pending"
        invoice.payment_mode = payment_mode or invoice.payment_mode
        invoice.collected_date = paid_at
        invoice.save(update_fields=[
            "amount_paid", "total_amount", "balance", "status",
            "payment_mode", "collected_date", "updated_at",
        ])

        payment_tx = PaymentTransaction.objects.create(
            invoice=invoice,
            amount=amount,
            payment_mode=payment_mode or "",
            payment_date=paid_at,
            created_by=actor,
        )

        log_action(
            action="collect_payment",
            instance=invoice,
            user=actor,
            changes={
                "before": before,
                "amount": str(amount),
                "amount_paid": str(invoice.amount_paid),
                "balance": str(invoice.balance),
                "status": invoice.status,
            },
        )

    return invoice, payment_tx
