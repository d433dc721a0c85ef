from django.apps import AppConfig


class CoreConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'core'
    verbose_name = 'Tasker Marketplace Core'

    def ready(self):
        # Connect the event narration receivers
        from . import signals  # noqa: F401
