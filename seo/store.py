"""
URL-keyed SEO data store.

Every write goes through `upsert`, which keeps the first value ClickRank
replaced in the `original_*` column of the field so it can be reverted later.
"""
import logging
from datetime import timedelta

from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import Count, Max, Min, Q
from django.utils import timezone

from .exceptions import PersistenceError
from .models import SeoRecord
from .normalizer import normalize_url

logger = logging.getLogger(__name__)

# field class -> (current column, backup column)
FIELD_COLUMNS = {
    'title': ('title', 'original_title'),
    'description': ('description', 'original_description'),
    'canonical': ('canonical_url', 'original_canonical'),
    'schema': ('schema', 'original_schema'),
}


def upsert(url, fields, preserve_originals=True, entity_id=None):
    """
    Insert or update the record for `url` and return its id.

    `fields` maps field classes (title, description, canonical, schema) to
    values; unknown keys are ignored. Only supplied fields are touched.
    """
    key = normalize_url(url)
    values = {k: v for k, v in (fields or {}).items() if k in FIELD_COLUMNS}

    try:
        with transaction.atomic():
            record = _locked(key)
            if record is None:
                try:
                    with transaction.atomic():
                        record = SeoRecord.objects.create(
                            url=url,
                            url_normalized=key,
                            resolved_entity_id=entity_id,
                            **{FIELD_COLUMNS[k][0]: v for k, v in values.items()},
                        )
                    logger.info("Inserted SEO data for URL: %s", url)
                    return record.pk
                except IntegrityError:
                    # Lost an insert race for the same key
                    record = SeoRecord.objects.select_for_update().get(url_normalized=key)

            _update(record, url, values, preserve_originals, entity_id)
            logger.info("Updated SEO data for URL: %s", url)
            return record.pk
    except DatabaseError as exc:
        logger.error(
            "Failed to save SEO data for URL: %s", url,
            extra={'context': {'url': url, 'fields': sorted(values), 'error': str(exc)}},
        )
        raise PersistenceError(f"Failed to save SEO data for {url}", url=url) from exc


def _locked(key):
    return SeoRecord.objects.select_for_update().filter(url_normalized=key).first()


def _update(record, url, values, preserve_originals, entity_id):
    changed = ['url', 'updated_at']
    record.url = url
    if entity_id is not None:
        record.resolved_entity_id = entity_id
        changed.append('resolved_entity_id')

    for field_class, value in values.items():
        column, backup = FIELD_COLUMNS[field_class]
        current = getattr(record, column)
        if preserve_originals and current and not getattr(record, backup):
            setattr(record, backup, current)
            changed.append(backup)
        setattr(record, column, value)
        changed.append(column)

    record.save(update_fields=changed)


def get(url):
    return SeoRecord.objects.filter(url_normalized=normalize_url(url)).first()


def get_by_entity(entity_id):
    """Most recently updated record linked to a post id."""
    return SeoRecord.objects.filter(resolved_entity_id=entity_id).order_by('-updated_at').first()


def revert(url, fields=()):
    """
    Restore backed-up values for `url`.

    Empty `fields` means every field class. Each requested field with a
    non-empty backup is copied back and its backup cleared. Returns False when
    there is no record or nothing was restored.
    """
    requested = [f for f in (fields or FIELD_COLUMNS) if f in FIELD_COLUMNS]
    try:
        with transaction.atomic():
            record = _locked(normalize_url(url))
            if record is None:
                return False

            changed = []
            for field_class in requested:
                column, backup = FIELD_COLUMNS[field_class]
                original = getattr(record, backup)
                if not original:
                    continue
                setattr(record, column, original)
                setattr(record, backup, None)
                changed.extend([column, backup])

            if not changed:
                return False
            record.save(update_fields=changed + ['updated_at'])
    except DatabaseError as exc:
        raise PersistenceError(f"Failed to revert SEO data for {url}", url=url) from exc

    logger.info("Reverted SEO data for URL: %s", url,
                extra={'context': {'fields': requested}})
    return True


def delete(url):
    """Delete the record for `url`. Returns True if a row was deleted."""
    deleted, _ = SeoRecord.objects.filter(url_normalized=normalize_url(url)).delete()
    if deleted:
        logger.info("Deleted SEO data for URL: %s", url)
    return deleted > 0


def cleanup(max_age_days=90):
    """Delete records not updated for `max_age_days`. Returns the number deleted."""
    cutoff = timezone.now() - timedelta(days=max_age_days)
    deleted, _ = SeoRecord.objects.filter(updated_at__lt=cutoff).delete()
    if deleted:
        logger.info("Cleaned up %d old SEO records", deleted)
    return deleted


def statistics():
    def populated(column):
        return Count('id', filter=Q(**{f'{column}__isnull': False}) & ~Q(**{column: ''}))

    stats = SeoRecord.objects.aggregate(
        total=Count('id'),
        with_title=populated('title'),
        with_description=populated('description'),
        with_canonical=populated('canonical_url'),
        with_schema=populated('schema'),
        linked=Count('id', filter=Q(resolved_entity_id__isnull=False)),
        oldest=Min('created_at'),
        newest=Max('updated_at'),
    )
    return stats
