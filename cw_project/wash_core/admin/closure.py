from django.contrib import admin

from wash_core.models import MonthClosure

from .actions import revert_selected_closures
from .inlines import ClosureEntryInline
from .ReadOnly import ReadOnlyAdmin


# Register `MonthClosure` model
@admin.register(MonthClosure)
class MonthClosureAdmin(ReadOnlyAdmin):
    list_display = (
        "batch_id",
        "year",
        "month",
        "status",
        "closed_at",
        "closed_by",
        "closed_count",
        "created_next_count",
        "updated_next_count",
        "failed_count",
        "reverted_at",
    )
    list_filter = ("status", "year", "month")
    inlines = [ClosureEntryInline]
    actions = [revert_selected_closures]
