from django.contrib import admin

from wash_core.models import Customer

from .actions import restore_selected, soft_delete_selected
from .inlines import VehicleInline


# Register `Customer` model
@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ("id", "first_name", "last_name", "mobile", "building", "is_deleted")
    list_filter = ("is_deleted", "building")
    search_fields = ("first_name", "last_name", "mobile", "vehicles__registration_no")
    inlines = [VehicleInline]
    actions = [soft_delete_selected, restore_selected]

    # Fetch building in the same SQL query
    def get_queryset(self, request):
        return super().get_queryset(request).select_related("building")
