from django.contrib import admin, messages
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from wash_core.services import close_month, revert_closure
from wash_core.services.periods import BillingPeriod

# ---------- Admin actions ----------


@admin.action(description="Soft delete selected rows")
def soft_delete_selected(modeladmin, request, queryset):
    # Jobs and invoices are never removed, only flagged
    fields = {"is_deleted": True}
    if hasattr(queryset.model, "deleted_at"):
        fields["deleted_at"] = timezone.now()
    count = queryset.update(**fields)
    modeladmin.message_user(request, f"Soft deleted {count} rows.", level=messages.SUCCESS)


@admin.action(description="Restore selected rows")
def restore_selected(modeladmin, request, queryset):
    count = queryset.update(is_deleted=False)
    modeladmin.message_user(request, f"Restored {count} rows.", level=messages.SUCCESS)


@admin.action(description="Run month-end close for the issue month of selected invoices")
def close_month_of_selected(modeladmin, request, queryset):
    """
    Admin action: close every month the selected invoices were issued in.
    The close works on the whole month, not only on the selection.
    """
    months = {BillingPeriod.from_datetime(inv.created_at) for inv in queryset.only("created_at")}
    for period in sorted(months, key=lambda p: p.key):
        result = close_month(period.year, period.month, user=request.user)
        modeladmin.message_user(
            request,
            result.message,
            level=messages.SUCCESS if result.failed == 0 else messages.WARNING,
        )


@admin.action(description="Revert selected month-end closures")
def revert_selected_closures(modeladmin, request, queryset):
    """
    Admin action: undo each selected closure batch.
    Per-invoice failures are logged by the service and reported here.
    """
    for closure in queryset.filter(status="closed").order_by("-closed_at"):
        result = revert_closure(closure, user=request.user)
        modeladmin.message_user(
            request,
            _("Closure %(batch)s: %(reopened)d reopened, %(deleted)d deleted, "
              "%(restored)d restored, %(failed)d failed.") % {
                "batch": closure.batch_id,
                "reopened": result.reopened,
                "deleted": result.deleted_next,
                "restored": result.restored_next,
                "failed": result.failed,
            },
            level=messages.SUCCESS if result.failed == 0 else messages.WARNING,
        )
