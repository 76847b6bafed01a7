from django.urls import path

from . import views

app_name = "wash_core"

urlpatterns = [
    path("jobs/generate/", views.generate_jobs_view, name="generate-jobs"),
    path("invoices/generate/", views.generate_invoices_view, name="generate-invoices"),
    path("invoices/existing/", views.check_existing_view, name="check-existing"),
    path("invoices/<int:invoice_id>/collect/", views.collect_payment_view, name="collect-payment"),
    path("month-end/close/", views.close_month_view, name="close-month"),
    path("month-end/revert/", views.revert_month_view, name="revert-month"),
    path("month-end/months/", views.months_overview_view, name="months-overview"),
]
