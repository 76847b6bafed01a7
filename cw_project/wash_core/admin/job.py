from django.contrib import admin

from wash_core.models import Job

from .actions import restore_selected, soft_delete_selected


# Register `Job` model
@admin.register(Job)
class JobAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "schedule_id",
        "assigned_date",
        "customer",
        "vehicle",
        "worker",
        "status",
        "completed_date",
        "immediate",
        "is_deleted",
    )
    list_filter = ("status", "immediate", "is_deleted", "assigned_date")
    search_fields = ("vehicle__registration_no", "customer__first_name", "customer__last_name")
    date_hierarchy = "assigned_date"
    actions = [soft_delete_selected, restore_selected]

    def get_queryset(self, request):
        return super().get_queryset(request).select_related("customer", "vehicle", "worker")

    # Jobs are soft-deleted only
    def has_delete_permission(self, request, obj=None):
        return False
