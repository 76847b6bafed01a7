"""
Django settings for cw_project.

Every deploy-specific value is read from the environment so the same
module serves the cron worker, the Celery beat process and the admin site.
"""
import os
from pathlib import Path

from celery.schedules import crontab

BASE_DIR = Path(__file__).resolve().parent.parent


def env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def env_list(name, default=""):
    return [item.strip() for item in os.environ.get(name, default).split(",") if item.strip()]


# ---------- Core ----------
SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "dev-only-insecure-key")
DEBUG = env_bool("DJANGO_DEBUG", False)
ALLOWED_HOSTS = env_list("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1")

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "wash_core",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "cw_project.urls"
WSGI_APPLICATION = "cw_project.wsgi.application"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]


# ---------- Database ----------
# SQLite by default; set DATABASE_ENGINE=django.db.backends.postgresql in production
DATABASES = {
    "default": {
        "ENGINE": os.environ.get("DATABASE_ENGINE", "django.db.backends.sqlite3"),
        "NAME": os.environ.get("DATABASE_NAME", str(BASE_DIR / "db.sqlite3")),
        "USER": os.environ.get("DATABASE_USER", ""),
        "PASSWORD": os.environ.get("DATABASE_PASSWORD", ""),
        "HOST": os.environ.get("DATABASE_HOST", ""),
        "PORT": os.environ.get("DATABASE_PORT", ""),
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"


# ---------- Time zone ----------
# All scheduling and billing dates are calendar dates in this zone
WASH_SERVICE_TIME_ZONE = os.environ.get("WASH_SERVICE_TIME_ZONE", "Asia/Dubai")

LANGUAGE_CODE = "en-us"
TIME_ZONE = WASH_SERVICE_TIME_ZONE
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"


# ---------- Billing engine ----------
# Label stored in created_by for unattended runs
WASH_CRON_ACTOR = "Cron Scheduler"
# "full_subscription" or "per_wash"
WASH_DEFAULT_INVOICE_MODE = os.environ.get("WASH_DEFAULT_INVOICE_MODE", "full_subscription")


# ---------- Celery ----------
CELERY_BROKER_URL = os.environ.get("CELERY_BROKER_URL", "redis://localhost:6379/0")
CELERY_TIMEZONE = WASH_SERVICE_TIME_ZONE
CELERY_ENABLE_UTC = False
CELERY_TASK_ALWAYS_EAGER = env_bool("CELERY_TASK_ALWAYS_EAGER", False)

CELERY_BEAT_SCHEDULE = {
    # Jobs for tomorrow (or today for same-day buildings), 4:05 PM daily
    "generate-daily-jobs": {
        "task": "wash_core.tasks.generate_daily_jobs",
        "schedule": crontab(hour=16, minute=5),
    },
    # Invoices for the month that just ended, 12:05 AM on the 1st
    "generate-monthly-invoices": {
        "task": "wash_core.tasks.generate_monthly_invoices",
        "schedule": crontab(hour=0, minute=5, day_of_month=1),
    },
}


# ---------- Logging ----------
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
    "loggers": {
        "wash_core": {
            "handlers": ["console"],
            "level": os.environ.get("WASH_LOG_LEVEL", "INFO"),
            "propagate": False,
        },
    },
}
