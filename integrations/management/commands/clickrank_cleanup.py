"""
Management command for daily maintenance: trims the activity log and
deletes stale SEO records.
Usage: python manage.py clickrank_cleanup [--days N]
"""
from django.conf import settings
from django.core.management.base import BaseCommand

from integrations.models import LogEntry
from seo import store


class Command(BaseCommand):
    help = 'Trim ClickRank logs and delete SEO records not updated for --days days'

    def add_arguments(self, parser):
        parser.add_argument('--days', type=int, default=settings.CLICKRANK['RETENTION_DAYS'],
                            help='Retention period for SEO records, in days')

    def handle(self, *args, **options):
        logs = LogEntry.objects.trim(settings.CLICKRANK['MAX_LOG_ENTRIES'])
        records = store.cleanup(max_age_days=options['days'])
        self.stdout.write(self.style.SUCCESS(
            f'Deleted {logs} log entries and {records} SEO records.'
        ))
