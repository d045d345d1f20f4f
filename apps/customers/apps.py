from django.apps import AppConfig


class CustomersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.customers"

    def ready(self):
        from apps.customers import signals  # noqa: F401
