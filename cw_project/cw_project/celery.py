from __future__ import annotations
import os
from celery import Celery

# worker and beat processes import this module before Django is configured
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "cw_project.settings")

celery_app = Celery("cw_project")

# CELERY_* names in settings.py: broker url, time zone, beat schedule
celery_app.config_from_object("django.conf:settings", namespace="CELERY")

# picks up wash_core.tasks
celery_app.autodiscover_tasks()
