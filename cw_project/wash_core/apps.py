from django.apps import AppConfig


class WashCoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "wash_core"

    # ensure receivers are registered
    def ready(self):
        import wash_core.signals  # noqa: F401
