from django.contrib import admin

from wash_core.models import Invoice

from .actions import (close_month_of_selected, restore_selected,
                      soft_delete_selected)
from .inlines import PaymentTransactionInline


# Register `Invoice` model
@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = (
        "number",
        "customer",
        "registration_no",
        "billing_month",
        "invoice_mode",
        "amount_charged",
        "old_balance",
        "total_amount",
        "amount_paid",
        "balance",
        "status",
        "created_at",
        "is_deleted",
    )
    list_filter = ("status", "invoice_mode", "billing_month", "onewash", "is_deleted")
    search_fields = ("number", "registration_no", "customer__first_name", "customer__last_name")
    date_hierarchy = "created_at"
    inlines = [PaymentTransactionInline]
    actions = [close_month_of_selected, soft_delete_selected, restore_selected]
    # Money moves only through the billing services
    readonly_fields = (
        "number",
        "amount_charged",
        "old_balance",
        "total_amount",
        "amount_paid",
        "balance",
        "billing_month",
        "invoice_mode",
        "completed_washes",
        "expected_washes",
        "per_wash_rate",
        "closure",
        "updated_at",
    )

    def get_queryset(self, request):
        return super().get_queryset(request).select_related("customer", "vehicle", "worker")

    # Invoices are soft-deleted only
    def has_delete_permission(self, request, obj=None):
        return False
