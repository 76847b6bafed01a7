from decimal import Decimal

from django.db import models

CLOSURE_STATUS_CHOICES = [
    ("closed", "Closed"),
    ("reverted", "Reverted"),
]


# ---------- Month-end closure batch ----------
class MonthClosure(models.Model):
    """
    One run of the month-end close.
    Every invoice the run touches is recorded as a ClosureEntry,
    so the revert works from this batch instead of guessing from field values.
    """

    batch_id = models.PositiveBigIntegerField(unique=True)  # Counter "closures"
    year = models.PositiveSmallIntegerField()
    month = models.PositiveSmallIntegerField()  # 1-12

    status = models.CharField(max_length=10, choices=CLOSURE_STATUS_CHOICES, default="closed")
    closed_at = models.DateTimeField()
    closed_by = models.CharField(max_length=150, blank=True, default="")
    reverted_at = models.DateTimeField(null=True, blank=True)
    reverted_by = models.CharField(max_length=150, blank=True, default="")

    # Summary of the close run
    closed_count = models.PositiveIntegerField(default=0)
    created_next_count = models.PositiveIntegerField(default=0)
    updated_next_count = models.PositiveIntegerField(default=0)
    failed_count = models.PositiveIntegerField(default=0)

    class Meta:
        indexes = [models.Index(fields=["year", "month", "status"])]
        ordering = ("-closed_at",)
        constraints = [
            models.CheckConstraint(
                condition=models.Q(month__gte=1) & models.Q(month__lte=12),
                name="closure_month_range",
            ),
        ]

    def __str__(self):
        return f"Closure #{self.batch_id} {self.year}-{self.month:02d} ({self.status})"


class ClosureEntry(models.Model):  # What the close did to one invoice
    closure = models.ForeignKey(MonthClosure, on_delete=models.CASCADE, related_name="entries")
    # The pending invoice that got closed
    source_invoice = models.ForeignKey(
        "Invoice", on_delete=models.PROTECT, related_name="closure_entries"
    )
    # The next-month invoice that received the carried balance
    target_invoice = models.ForeignKey(
        "Invoice",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="carried_in_entries",
    )
    carried_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    # True: target was created by the close (revert soft-deletes it)
    # False: target existed already (revert subtracts carried_amount back out)
    target_created = models.BooleanField(default=False)
    # Set once the revert has undone this entry
    reverted = models.BooleanField(default=False)

    # Pre-close values restored on revert
    previous_notes = models.TextField(blank=True, default="")
    previous_collected_date = models.DateTimeField(null=True, blank=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["closure", "source_invoice"],
                name="uq_closure_entry_source",
            ),
        ]

    def __str__(self):
        return f"#{self.closure_id}: {self.source_invoice_id} -> {self.target_invoice_id} ({self.carried_amount})"
