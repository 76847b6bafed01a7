from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("admin/", admin.site.urls),
    # Batch triggers and month-end operations (JSON API)
    path("api/", include("wash_core.urls")),
]
