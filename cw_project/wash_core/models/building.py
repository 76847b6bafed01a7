from django.db import models

from ..managers import SoftDeleteManager


# ---------- Building ----------
class Building(models.Model):  # Residential building where the vehicles park
    name = models.CharField(max_length=200)
    location = models.CharField(max_length=200, blank=True, default="")

    # Same-day onboarding switch:
    # when True the job cron targets "today" instead of "tomorrow"
    # for every vehicle at this building
    schedule_today = models.BooleanField(default=False)

    is_deleted = models.BooleanField(default=False)

    objects = SoftDeleteManager()

    def __str__(self):
        return self.name


# ---------- Worker ----------
# Staff member who washes the cars (staff management lives elsewhere,
# only the assignment is needed here)
class Worker(models.Model):
    name = models.CharField(max_length=200)
    mobile = models.CharField(max_length=32, blank=True, default="")
    is_deleted = models.BooleanField(default=False)

    objects = SoftDeleteManager()

    def __str__(self):
        return self.name
