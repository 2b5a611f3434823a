from django.apps import AppConfig


class AppVersionsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "app_versions"
    label = "app_versions"
