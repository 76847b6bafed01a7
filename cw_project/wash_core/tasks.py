from celery import shared_task

from .services import generate_invoices, generate_jobs


@shared_task  # daily, see CELERY_BEAT_SCHEDULE
def generate_daily_jobs(target_date=None):
    # Celery results must be JSON-serializable: return the summary dict
    return generate_jobs(target_date=target_date).as_dict()


@shared_task  # 1st of every month, bills the month that just ended
def generate_monthly_invoices(year=None, month=None, mode=None):
    return generate_invoices(year=year, month=month, mode=mode).as_dict()
