"""
Management command to print SEO store statistics and migration status.
Usage: python manage.py clickrank_status
"""
from django.core.management.base import BaseCommand

from seo import migration, store


class Command(BaseCommand):
    help = 'Show ClickRank SEO store statistics and migration status'

    def handle(self, *args, **options):
        stats = store.statistics()
        self.stdout.write(f"SEO records: {stats['total']} ({stats['linked']} linked to posts)")
        for field in ('title', 'description', 'canonical', 'schema'):
            self.stdout.write(f"  with {field}: {stats['with_' + field]}")
        self.stdout.write(f"  oldest: {stats['oldest'] or '-'}  newest: {stats['newest'] or '-'}")

        status = migration.migration_status()
        self.stdout.write(
            f"Published posts: {status['total_posts']}, public terms: {status['total_terms']}"
        )
        last = status['last_migration']
        if last:
            self.stdout.write(f"Last migration completed at {last.get('completed_at') or '-'}")
        else:
            self.stdout.write('No migration has been run.')
