from django.apps import AppConfig
from django.conf import settings


class SeoConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'seo'

    def ready(self):
        from . import compat
        compat.configure(settings.CLICKRANK['SEO_COMPAT_MODE'])
