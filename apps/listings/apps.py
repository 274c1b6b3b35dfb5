from django.apps import AppConfig


class ListingsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.listings"
    label = "listings"
    verbose_name = "Anuncios"

    def ready(self) -> None:
        # Subscribes activity-log handlers to listing domain events
        from . import handlers  # noqa: F401
