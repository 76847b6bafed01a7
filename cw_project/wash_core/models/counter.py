from django.db import models


# ---------- Counter ----------
# Named monotonic sequence ("payments", "scheduler", "closures").
# Rows are created on first use and never reset.
class Counter(models.Model):
    name = models.CharField(max_length=50, unique=True)
    seq = models.PositiveBigIntegerField(default=0)

    def __str__(self):
        return f"{self.name}={self.seq}"
