from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from ..managers import InvoiceManager
from .building import Building, Worker
from .customer import Customer, Vehicle

INVOICE_STATUS_CHOICES = [
    ("pending", "Pending"),
    ("completed", "Completed"),
]

MODE_FULL_SUBSCRIPTION = "full_subscription"
MODE_PER_WASH = "per_wash"

INVOICE_MODE_CHOICES = [
    (MODE_FULL_SUBSCRIPTION, "Full subscription"),
    (MODE_PER_WASH, "Per wash"),
]

ZERO = Decimal("0.00")


# ---------- Invoice (payment record) ----------
class Invoice(models.Model):  # Monthly bill for one vehicle

    # Human-facing sequential number (Counter "payments")
    number = models.PositiveBigIntegerField(unique=True, null=True, blank=True)

    customer = models.ForeignKey(
        Customer, on_delete=models.PROTECT, related_name="invoices"
    )
    vehicle = models.ForeignKey(
        Vehicle,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="invoices",
    )
    # Vehicle snapshot at issue time
    # (the registration may be edited later, the bill must not change)
    registration_no = models.CharField(max_length=32, blank=True, default="")
    parking_no = models.CharField(max_length=32, blank=True, default="")

    worker = models.ForeignKey(
        Worker, null=True, blank=True, on_delete=models.SET_NULL, related_name="invoices"
    )
    building = models.ForeignKey(
        Building,
        null=True,
        blank=True,
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        related_name="invoices",
    )
    location = models.CharField(max_length=200, blank=True, default="")

    # Money
    # total_amount = amount_charged + old_balance
    # balance = total_amount - amount_paid
    amount_charged = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    old_balance = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    amount_paid = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    balance = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)

    status = models.CharField(
        max_length=10, choices=INVOICE_STATUS_CHOICES, default="pending"
    )
    settled = models.CharField(
        max_length=10, choices=INVOICE_STATUS_CHOICES, default="pending"
    )
    # One-off washes are billed by a different flow and ignored here
    onewash = models.BooleanField(default=False)

    # "YYYY-MM" month of service. Null on legacy rows,
    # which are matched by created_at instead
    billing_month = models.CharField(max_length=7, null=True, blank=True)
    invoice_mode = models.CharField(
        max_length=20, choices=INVOICE_MODE_CHOICES, null=True, blank=True
    )
    # Per-wash diagnostics
    completed_washes = models.PositiveIntegerField(null=True, blank=True)
    expected_washes = models.PositiveIntegerField(null=True, blank=True)
    per_wash_rate = models.DecimalField(
        max_digits=12, decimal_places=4, null=True, blank=True
    )

    # Issue date: 1st of the month after the billing month
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)
    collected_date = models.DateTimeField(null=True, blank=True)
    payment_mode = models.CharField(max_length=20, blank=True, default="")
    notes = models.TextField(blank=True, default="")
    created_by = models.CharField(max_length=150, blank=True, default="")

    # Last month-end closure batch that touched this invoice
    closure = models.ForeignKey(
        "MonthClosure",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="invoices",
    )

    is_deleted = models.BooleanField(default=False)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = InvoiceManager()

    class Meta:
        indexes = [
            models.Index(fields=["customer", "vehicle"]),
            models.Index(fields=["status", "created_at"]),
            models.Index(fields=["billing_month"]),
        ]
        constraints = [
            # At most one live residence invoice per vehicle per billing month.
            # Turns the generator's duplicate check into a hard invariant
            models.UniqueConstraint(
                fields=["customer", "vehicle", "billing_month"],
                condition=models.Q(is_deleted=False, onewash=False),
                name="uq_invoice_vehicle_billing_month",
            ),
        ]

    def __str__(self):
        return f"Inv {self.number or self.pk} {self.registration_no} {self.billing_month or ''}".strip()

    def recalc_totals(self):
        """Derive total_amount and balance from charge, carried balance and payments."""
        self.total_amount = (self.amount_charged or ZERO) + (self.old_balance or ZERO)
        self.balance = self.total_amount - (self.amount_paid or ZERO)

    def clean(self):
        if self.amount_charged is not None and self.amount_charged < 0:
            raise ValidationError("amount_charged must be >= 0")
        if self.amount_paid is not None and self.amount_paid < 0:
            raise ValidationError("amount_paid must be >= 0")


# ---------- Payment transaction ----------
class PaymentTransaction(models.Model):  # One collected amount against an invoice
    invoice = models.ForeignKey(
        Invoice, on_delete=models.PROTECT, related_name="transactions"
    )
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    payment_mode = models.CharField(max_length=20, blank=True, default="")
    payment_date = models.DateTimeField(default=timezone.now)
    created_by = models.CharField(max_length=150, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="payment_tx_positive_amount",
            ),
        ]

    def __str__(self):
        return f"{self.amount} on Inv {self.invoice_id}"
