from django.db import models

from ..managers import SoftDeleteManager
from .building import Building, Worker
from .customer import Customer, Vehicle

JOB_STATUS_CHOICES = [
    ("pending", "Pending"),
    ("completed", "Completed"),
]


# ---------- Job ----------
class Job(models.Model):  # One scheduled wash of one vehicle on one day

    # Batch marker shared by every job created in the same cron run
    # (not a uniqueness key)
    schedule_id = models.PositiveIntegerField(null=True, blank=True, db_index=True)

    customer = models.ForeignKey(Customer, on_delete=models.PROTECT, related_name="jobs")
    vehicle = models.ForeignKey(Vehicle, on_delete=models.PROTECT, related_name="jobs")
    building = models.ForeignKey(
        Building,
        null=True,
        blank=True,
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        related_name="jobs",
    )
    worker = models.ForeignKey(
        Worker, null=True, blank=True, on_delete=models.SET_NULL, related_name="jobs"
    )
    location = models.CharField(max_length=200, blank=True, default="")

    # Calendar day in the service time zone
    assigned_date = models.DateField()

    status = models.CharField(max_length=10, choices=JOB_STATUS_CHOICES, default="pending")
    # Set by staff when the wash is done; drives per-wash billing
    completed_date = models.DateTimeField(null=True, blank=True)

    # Building forced same-day scheduling
    immediate = models.BooleanField(default=False)

    created_by = models.CharField(max_length=100, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    is_deleted = models.BooleanField(default=False)

    objects = SoftDeleteManager()

    class Meta:
        indexes = [
            models.Index(fields=["assigned_date"]),
            models.Index(fields=["status", "completed_date"]),
        ]
        constraints = [
            # One live job per vehicle per day:
            # a crash-and-retry of the job cron cannot double-book a car
            models.UniqueConstraint(
                fields=["customer", "vehicle", "assigned_date"],
                condition=models.Q(is_deleted=False),
                name="uq_job_vehicle_assigned_date",
            ),
        ]

    def __str__(self):
        return f"Job {self.pk} {self.vehicle_id} on {self.assigned_date}"
