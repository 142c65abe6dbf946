from django.apps import AppConfig


class BloodRequestsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'blood_requests'

    def ready(self):
        from blood_requests import signals  # noqa: F401
