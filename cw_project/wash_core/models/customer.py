from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models

from ..managers import SoftDeleteManager
from .building import Building, Worker

SCHEDULE_DAILY = "daily"
SCHEDULE_WEEKLY = "weekly"
SCHEDULE_ONETIME = "onetime"

SCHEDULE_TYPE_CHOICES = [
    (SCHEDULE_DAILY, "Daily"),
    (SCHEDULE_WEEKLY, "Weekly"),
    (SCHEDULE_ONETIME, "One time"),
]

VEHICLE_ACTIVE = 1
VEHICLE_INACTIVE = 2

VEHICLE_STATUS_CHOICES = [
    (VEHICLE_ACTIVE, "Active"),
    (VEHICLE_INACTIVE, "Inactive"),
]


# ---------- Customer ----------
class Customer(models.Model):  # Subscriber who owns one or more vehicles
    first_name = models.CharField(max_length=100, blank=True, default="")
    last_name = models.CharField(max_length=100, blank=True, default="")
    mobile = models.CharField(max_length=32, blank=True, default="")
    location = models.CharField(max_length=200, blank=True, default="")

    # The reference is not enforced by the database:
    # imported customers may point at buildings that no longer exist,
    # and the batch runs must skip them instead of crashing
    building = models.ForeignKey(
        Building,
        null=True,
        blank=True,
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        related_name="customers",
    )

    is_deleted = models.BooleanField(default=False)

    objects = SoftDeleteManager()

    class Meta:
        indexes = [models.Index(fields=["is_deleted", "building"])]

    def __str__(self):
        full_name = f"{self.first_name} {self.last_name}".strip()
        return full_name or f"Customer {self.pk}"


# ---------- Vehicle ----------
class Vehicle(models.Model):  # One subscribed car and its wash schedule
    customer = models.ForeignKey(
        Customer, on_delete=models.CASCADE, related_name="vehicles"
    )
    registration_no = models.CharField(max_length=32)
    parking_no = models.CharField(max_length=32, blank=True, default="")

    schedule_type = models.CharField(
        max_length=10, choices=SCHEDULE_TYPE_CHOICES, default=SCHEDULE_DAILY
    )
    # Raw weekday markers exactly as entered by the CRUD screens:
    # "Mon", "monday", "mon,wed,fri", [1, 3], [{"day": "Mon", "value": 1}], ...
    # wash_core.schedule normalizes them before any evaluation
    schedule_days = models.JSONField(default=list, blank=True)

    status = models.PositiveSmallIntegerField(
        choices=VEHICLE_STATUS_CHOICES, default=VEHICLE_ACTIVE
    )
    start_date = models.DateField(null=True, blank=True)
    deactivate_date = models.DateField(null=True, blank=True)

    # Monthly subscription amount
    amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )

    worker = models.ForeignKey(
        Worker,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="vehicles",
    )

    class Meta:
        indexes = [models.Index(fields=["customer", "status"])]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gte=0),
                name="vehicle_non_negative_amount",
            ),
        ]

    def __str__(self):
        return f"{self.registration_no} ({self.parking_no or '-'})"

    @property
    def is_active(self):
        return self.status == VEHICLE_ACTIVE

    def clean(self):
        # Weekly schedules without a single recognizable weekday
        # would silently never be washed
        if self.schedule_type == SCHEDULE_WEEKLY:
            from ..schedule import parse_schedule_days

            if not parse_schedule_days(self.schedule_days):
                raise ValidationError(
                    {"schedule_days": "Weekly schedule needs at least one weekday."}
                )
        if (
            self.start_date
            and self.deactivate_date
            and self.deactivate_date < self.start_date
        ):
            raise ValidationError("deactivate_date cannot be before start_date")

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
