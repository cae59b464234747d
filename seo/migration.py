"""
One-off migration of legacy per-entity SEO metadata into the URL-keyed store.

Values already live in post/term meta and the homepage options; copying them
lets the SEO store answer lookups for pages ClickRank optimized before the
store existed. Migrated rows get no backups: the migrated value is the
baseline.
"""
import logging

from django.conf import settings
from django.utils import timezone

from content.meta import get_option, get_post_meta, get_term_meta, update_option
from content.models import Post, Term, home_url

from . import compat, store
from .exceptions import ClickRankError
from .models import SeoRecord
from .reconciliation import CANONICAL_META_KEY, SCHEMA_META_KEY

logger = logging.getLogger(__name__)

RESULTS_OPTION = 'clickrank_ai_migration_results'


def _empty_results():
    return {'processed': 0, 'migrated': 0, 'skipped': 0, 'errors': []}


def _already_migrated(url, entity_id=None):
    record = store.get(url)
    if record is None and entity_id is not None:
        # Stored under another URL of the same post, e.g. an old permalink
        record = store.get_by_entity(entity_id)
    return record is not None and bool(record.title)


def _migrate_one(results, label, url, seo_data, entity_id=None):
    if not seo_data or _already_migrated(url, entity_id):
        results['skipped'] += 1
        return
    try:
        store.upsert(url, seo_data, preserve_originals=False, entity_id=entity_id)
    except ClickRankError as exc:
        results['errors'].append(f"Failed to migrate {label}: {exc.message}")
        return
    results['migrated'] += 1
    logger.debug("Migrated %s", label)


def migrate_posts(batch_size=100, offset=0):
    profile = compat.active_profile()
    results = _empty_results()
    posts = Post.objects.filter(status='publish').order_by('id')[offset:offset + batch_size]

    for post in posts:
        results['processed'] += 1
        seo_data = {
            'title': get_post_meta(post.id, profile.post_title_key),
            'description': get_post_meta(post.id, profile.post_description_key),
            'schema': get_post_meta(post.id, SCHEMA_META_KEY),
            'canonical': get_post_meta(post.id, CANONICAL_META_KEY),
        }
        seo_data = {k: v for k, v in seo_data.items() if v}
        _migrate_one(results, f"post {post.id}", post.get_absolute_url(), seo_data,
                     entity_id=post.id)

    return results


def migrate_terms(batch_size=100, offset=0):
    """Term descriptions only; the term name is the live title and stays in place."""
    key = compat.active_profile().term_description_key
    results = _empty_results()
    terms = (
        Term.objects.filter(taxonomy__in=settings.CLICKRANK['PUBLIC_TAXONOMIES'])
        .order_by('id')[offset:offset + batch_size]
    )

    for term in terms:
        results['processed'] += 1
        description = get_term_meta(term.id, key)
        seo_data = {'description': description} if description else {}
        _migrate_one(results, f"term {term.id}", term.get_absolute_url(), seo_data)

    return results


def migrate_homepage():
    results = _empty_results()
    results['processed'] = 1
    seo_data = {
        'title': get_option(compat.HOMEPAGE_TITLE_OPTION, ''),
        'description': get_option(compat.HOMEPAGE_DESCRIPTION_OPTION, ''),
        'schema': get_option(compat.HOMEPAGE_SCHEMA_OPTION, ''),
        'canonical': get_option(compat.HOMEPAGE_CANONICAL_OPTION, ''),
    }
    seo_data = {k: v for k, v in seo_data.items() if v}
    _migrate_one(results, "homepage", home_url(), seo_data)
    return results


def _merge(total, batch):
    for key in ('processed', 'migrated', 'skipped'):
        total[key] += batch[key]
    total['errors'].extend(batch['errors'])


def run_full_migration(batch_size=100):
    """Migrate the homepage, all published posts and all public terms. Stores the summary."""
    logger.info("Starting full migration to URL table")
    summary = {
        'started_at': timezone.now().isoformat(),
        'homepage': migrate_homepage(),
        'posts': _empty_results(),
        'terms': _empty_results(),
        'completed_at': None,
    }

    for name, migrate, total in (
        ('posts', migrate_posts, Post.objects.filter(status='publish').count()),
        ('terms', migrate_terms,
         Term.objects.filter(taxonomy__in=settings.CLICKRANK['PUBLIC_TAXONOMIES']).count()),
    ):
        for offset in range(0, total, batch_size):
            _merge(summary[name], migrate(batch_size=batch_size, offset=offset))

    summary['completed_at'] = timezone.now().isoformat()
    update_option(RESULTS_OPTION, summary)
    logger.info(
        "Migration complete: %d posts, %d terms migrated",
        summary['posts']['migrated'], summary['terms']['migrated'],
    )
    return summary


def migration_status():
    return {
        'total_posts': Post.objects.filter(status='publish').count(),
        'total_terms': Term.objects.filter(
            taxonomy__in=settings.CLICKRANK['PUBLIC_TAXONOMIES']).count(),
        'url_records': SeoRecord.objects.count(),
        'last_migration': get_option(RESULTS_OPTION),
    }
