"""
Management command to re-announce this site's webhook to ClickRank.
Usage: python manage.py clickrank_health_check
Scheduled twice daily.
"""
from django.core.management.base import BaseCommand

from integrations import clickrank_api


class Command(BaseCommand):
    help = 'Announce the webhook to the ClickRank platform (health check)'

    def handle(self, *args, **options):
        if clickrank_api.health_check():
            self.stdout.write(self.style.SUCCESS('ClickRank health check passed.'))
        else:
            self.stdout.write(self.style.WARNING('ClickRank health check failed, see logs.'))
