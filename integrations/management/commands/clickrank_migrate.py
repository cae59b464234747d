"""
Management command to copy legacy post/term/homepage SEO metadata into the URL table.
Usage: python manage.py clickrank_migrate [--batch-size N]
"""
from django.core.management.base import BaseCommand

from seo import migration


class Command(BaseCommand):
    help = 'Migrate legacy SEO metadata into the URL-keyed SEO table'

    def add_arguments(self, parser):
        parser.add_argument('--batch-size', type=int, default=100)

    def handle(self, *args, **options):
        summary = migration.run_full_migration(batch_size=options['batch_size'])

        for section in ('homepage', 'posts', 'terms'):
            result = summary[section]
            self.stdout.write(
                f"{section}: {result['migrated']} migrated, {result['skipped']} skipped "
                f"of {result['processed']} processed"
            )
            for error in result['errors']:
                self.stdout.write(self.style.ERROR(f'  {error}'))

        self.stdout.write(self.style.SUCCESS('Migration complete.'))
