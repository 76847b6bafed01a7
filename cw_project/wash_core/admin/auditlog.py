from django.contrib import admin

from wash_core.models import AuditLog

from .ReadOnly import ReadOnlyAdmin


# Register `AuditLog` model
@admin.register(AuditLog)
class AuditLogAdmin(ReadOnlyAdmin):
    list_display = (
        "id",
        "user",
        "action",
        "object_type",
        "object_id",
        "batch",
        "created_at",
    )
    search_fields = ("object_type", "object_id", "user")
    list_filter = ("action", "created_at")

    # Month-end rows carry their closure batch id in changes
    @admin.display(description="Batch")
    def batch(self, obj):
        return (obj.changes or {}).get("batch", "")

    # No bulk actions on the audit trail
    def get_actions(self, request):
        return {}
