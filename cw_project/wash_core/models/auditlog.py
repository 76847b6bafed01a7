from django.db import models


# ---------- Audit / Event log ----------
class AuditLog(models.Model):  # Trace of who changed which invoice and how
    # Free-text actor: a username for admin actions,
    # "Cron Scheduler" for unattended runs
    user = models.CharField(max_length=150, blank=True, default="")
    # Common choices: close_month, revert_month, collect_payment
    action = models.CharField(max_length=50)
    object_type = models.CharField(max_length=100)  # e.g. "Invoice"
    object_id = models.CharField(max_length=100)
    # Before/after details in JSON
    changes = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["object_type", "object_id"]),
            models.Index(fields=["created_at"]),
        ]

    def __str__(self):
        return f"[{self.created_at:%Y-%m-%d %H:%M}] {self.user} {self.action} {self.object_type}({self.object_id})"
