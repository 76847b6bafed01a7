from django.contrib import admin
from django.core.exceptions import PermissionDenied

"""Base admin for history rows (audit trail, month-end batches): viewable, never editable."""
class ReadOnlyAdmin(admin.ModelAdmin):
    list_per_page = 50

    # every concrete field is shown as text
    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    # The change page stays reachable so the row and its inlines can be inspected
    def change_view(self, request, object_id, form_url="", extra_context=None):
        extra_context = dict(extra_context or {})
        extra_context.update({
            "show_save": False,
            "show_save_and_continue": False,
            "show_save_and_add_another": False,
            "show_delete": False,
        })
        return super().change_view(request, object_id, form_url, extra_context=extra_context)

    def save_model(self, request, obj, form, change):
        raise PermissionDenied("History rows cannot be changed via the admin.")
