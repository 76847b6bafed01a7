from django.contrib import admin

from wash_core.models import Building, Worker

from .actions import restore_selected, soft_delete_selected


# Register `Building` model
@admin.register(Building)
class BuildingAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "location", "schedule_today", "is_deleted")
    list_filter = ("schedule_today", "is_deleted")
    search_fields = ("name", "location")
    actions = [soft_delete_selected, restore_selected]


# Register `Worker` model
@admin.register(Worker)
class WorkerAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "mobile", "is_deleted")
    list_filter = ("is_deleted",)
    search_fields = ("name", "mobile")
    actions = [soft_delete_selected, restore_selected]
