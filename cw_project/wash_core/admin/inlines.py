from django.contrib import admin

from wash_core.models import ClosureEntry, PaymentTransaction, Vehicle

# ---------- Helpful inline admin classes ----------


class VehicleInline(admin.TabularInline):
    """Show the customer's vehicles and their schedules on the customer page"""

    model = Vehicle
    extra = 0  # don’t show “empty” rows by default (prevents clutter)
    fields = (
        "registration_no",
        "parking_no",
        "schedule_type",
        "schedule_days",
        "status",
        "start_date",
        "deactivate_date",
        "amount",
        "worker",
    )
    show_change_link = True


class PaymentTransactionInline(admin.TabularInline):
    """Collected amounts under an invoice (read-only audit trail)"""

    model = PaymentTransaction
    extra = 0
    fields = ("amount", "payment_mode", "payment_date", "created_by")
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


class ClosureEntryInline(admin.TabularInline):
    """What a closure batch did to each invoice"""

    model = ClosureEntry
    extra = 0
    fields = (
        "source_invoice",
        "target_invoice",
        "carried_amount",
        "target_created",
        "reverted",
    )
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False
