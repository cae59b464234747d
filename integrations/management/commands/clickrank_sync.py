"""
Management command to pull pending optimizations from ClickRank and apply them.
Usage: python manage.py clickrank_sync
"""
from django.core.management.base import BaseCommand, CommandError

from content.meta import get_option
from integrations import clickrank_api
from integrations.permissions import API_KEY_OPTION


class Command(BaseCommand):
    help = 'Sync SEO optimizations from the ClickRank platform'

    def handle(self, *args, **options):
        api_key = get_option(API_KEY_OPTION, '')
        if not api_key:
            raise CommandError('No ClickRank API key configured.')

        if clickrank_api.sync_data(api_key):
            self.stdout.write(self.style.SUCCESS('Sync complete.'))
        else:
            raise CommandError('Sync failed, see logs.')
