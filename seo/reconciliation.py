"""
Reconciliation engine.

Applies an incoming optimization (already sanitized by
integrations.serializers.OptimizationSerializer) to a resolved entity:

- the URL-keyed SEO store is written first, for every kind of ref;
- the legacy store (post/term meta, homepage options, attachments) is written
  next, after snapshotting each field's previous value into the entity's
  revert bundle.

A field class is written only when its module toggle is on and the incoming
value is non-empty.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from django.db import DatabaseError, transaction

from content.meta import (
    delete_option, delete_post_meta, delete_term_meta, get_option, get_post_meta,
    get_term_meta, update_option, update_post_meta, update_term_meta,
)
from content.models import Attachment, Post, Term, home_url

from . import compat, store
from .exceptions import NotFoundError, PersistenceError
from .resolver import HOMEPAGE, POST, TERM, resolve
from .toggles import ModuleToggleSet

logger = logging.getLogger(__name__)

FIELD_CLASSES = ('title', 'description', 'canonical', 'schema', 'images', 'links')
STORE_FIELDS = ('title', 'description', 'canonical', 'schema')

# Wire names accepted in a revert request's `fields`
FIELD_ALIASES = {
    'page_title': 'title',
    'post_title': 'title',
    'term_name': 'title',
    'meta_description': 'description',
    'canonical_url': 'canonical',
    'page_schema': 'schema',
    'image_optimizations': 'images',
    'link_titles': 'links',
}

REVERT_META_KEY = '_clickrank_ai_revert_data'
HOMEPAGE_REVERT_OPTION = '_clickrank_ai_homepage_revert_data'
CANONICAL_META_KEY = '_clickrank_ai_canonical_url'
SCHEMA_META_KEY = '_clickrank_ai_page_schema'
LINK_TITLES_META_KEY = '_clickrank_ai_link_titles'

# Legacy field classes each entity kind supports (images are handled separately)
SUPPORTED_FIELDS = {
    HOMEPAGE: ('title', 'description', 'schema', 'canonical'),
    POST: ('title', 'description', 'canonical', 'schema', 'links'),
    TERM: ('title', 'description'),
}


@dataclass
class ApplyResult:
    updated: List[str] = field(default_factory=list)
    url_saved: bool = False
    record_id: Optional[int] = None
    images_updated: int = 0


@dataclass
class RevertResult:
    ref: object
    restored: List[str] = field(default_factory=list)
    url_reverted: bool = False


def canonical_fields(names):
    """Map wire field names to field classes, dropping unknown names and duplicates."""
    result = []
    for name in names or ():
        field_class = FIELD_ALIASES.get(name, name)
        if field_class in FIELD_CLASSES and field_class not in result:
            result.append(field_class)
    return result


def incoming_fields(ref, optimization, toggles):
    """Field class -> incoming value, for the non-empty values whose toggle is on."""
    if ref.kind == TERM:
        title = optimization.get('term_name') or optimization.get('page_title')
    else:
        title = optimization.get('page_title')
    values = {
        'title': title,
        'description': optimization.get('meta_description'),
        'canonical': optimization.get('canonical_url'),
        'schema': optimization.get('page_schema'),
        'images': optimization.get('image_optimizations'),
        'links': optimization.get('link_titles'),
    }
    return {k: v for k, v in values.items() if v and toggles.allows(k)}


def store_url(ref, optimization):
    """URL the SEO store row is keyed on: the home URL for the homepage, else the page URL."""
    if ref.kind == HOMEPAGE:
        return home_url()
    return optimization.get('page_url', '')


def apply(ref, optimization, toggles=None):
    """
    Apply `optimization` to the entity `ref` points at.

    Raises NotFoundError for an unpublished or missing post, and
    PersistenceError when a legacy write failed or when the SEO store write
    failed and nothing else could be applied.
    """
    toggles = toggles or ModuleToggleSet.load()
    incoming = incoming_fields(ref, optimization, toggles)
    result = ApplyResult()
    context = {'url': optimization.get('page_url'), 'ref': str(ref), 'fields': sorted(incoming)}

    store_error = None
    store_values = {k: v for k, v in incoming.items() if k in STORE_FIELDS}
    if store_values:
        try:
            result.record_id = store.upsert(
                store_url(ref, optimization),
                store_values,
                preserve_originals=True,
                entity_id=ref.id if ref.kind == POST else None,
            )
            result.url_saved = True
        except PersistenceError as exc:
            store_error = exc
            logger.error("SEO store write failed, continuing with entity update",
                         extra={'context': context})

    if ref.kind == POST:
        post = Post.objects.filter(pk=ref.id).first()
        if post is None or not post.is_published:
            logger.warning("Post not found or not accessible: %s", ref.id, extra={'context': context})
            raise NotFoundError("Post not found or not accessible", **context)

    try:
        if ref.kind in SUPPORTED_FIELDS:
            with transaction.atomic():
                _apply_entity(ref, incoming, result)
        elif 'images' in incoming and not store_values:
            result.images_updated, _ = _update_images(incoming['images'])
            if result.images_updated:
                result.updated.append('images')
    except DatabaseError as exc:
        logger.error("Failed to update %s: %s", ref, exc, extra={'context': context})
        raise PersistenceError(f"Failed to update {ref}", **context) from exc

    if store_error is not None and not result.updated:
        raise store_error

    logger.info("Applied optimization to %s: %s", ref, ', '.join(result.updated) or 'nothing',
                extra={'context': context})
    return result


def _apply_entity(ref, incoming, result):
    bundle = load_bundle(ref)
    changed = False

    def snapshot(field_class, value):
        nonlocal changed
        if field_class not in bundle:
            bundle[field_class] = value
            changed = True

    write = WRITERS[ref.kind]
    for field_class in SUPPORTED_FIELDS[ref.kind]:
        if field_class in incoming:
            snapshot(field_class, _current_value(ref, field_class))
            write(ref, field_class, incoming[field_class])
            result.updated.append(field_class)

    if 'images' in incoming:
        count, snapshots = _update_images(incoming['images'])
        if count:
            known = {img['image_url'] for img in bundle.get('images', [])}
            new = [img for img in snapshots if img['image_url'] not in known]
            if new:
                bundle['images'] = bundle.get('images', []) + new
                changed = True
            result.images_updated = count
            result.updated.append('images')

    if changed:
        _save_bundle(ref, bundle)


def _current_value(ref, field_class):
    if ref.kind == HOMEPAGE:
        return get_option(_homepage_option(field_class), '')
    if ref.kind == POST:
        return get_post_meta(ref.id, _post_meta_key(field_class), '')
    if field_class == 'title':
        return Term.objects.filter(pk=ref.id).values_list('name', flat=True).first() or ''
    return get_term_meta(ref.id, compat.active_profile().term_description_key, '')


def _homepage_option(field_class):
    return {
        'title': compat.HOMEPAGE_TITLE_OPTION,
        'description': compat.HOMEPAGE_DESCRIPTION_OPTION,
        'schema': compat.HOMEPAGE_SCHEMA_OPTION,
        'canonical': compat.HOMEPAGE_CANONICAL_OPTION,
    }[field_class]


def _post_meta_key(field_class):
    profile = compat.active_profile()
    return {
        'title': profile.post_title_key,
        'description': profile.post_description_key,
        'canonical': CANONICAL_META_KEY,
        'schema': SCHEMA_META_KEY,
        'links': LINK_TITLES_META_KEY,
    }[field_class]


def _write_homepage(ref, field_class, value):
    if field_class == 'title':
        compat.update_homepage_title(value)
    elif field_class == 'description':
        compat.update_homepage_description(value)
    elif value:
        update_option(_homepage_option(field_class), value)
    else:
        delete_option(_homepage_option(field_class))


def _write_post(ref, field_class, value):
    key = _post_meta_key(field_class)
    if value:
        update_post_meta(ref.id, key, value)
    else:
        delete_post_meta(ref.id, key)


def _write_term(ref, field_class, value):
    if field_class == 'title':
        # An empty name would orphan the term in listings
        if value:
            Term.objects.filter(pk=ref.id).update(name=value[:200])
        return
    key = compat.active_profile().term_description_key
    if value:
        update_term_meta(ref.id, key, value)
    else:
        delete_term_meta(ref.id, key)


WRITERS = {HOMEPAGE: _write_homepage, POST: _write_post, TERM: _write_term}


def _update_images(optimizations):
    """Update attachments by image URL. Returns (fields updated, pre-update snapshots)."""
    updated = 0
    snapshots = []
    for opt in optimizations:
        attachment = Attachment.objects.filter(url=opt.get('image_url')).first()
        if attachment is None:
            continue
        snapshots.append({
            'image_url': attachment.url,
            'original_alt': attachment.alt_text,
            'original_title': attachment.title,
        })
        changed = []
        if opt.get('new_alt_text') is not None:
            attachment.alt_text = opt['new_alt_text']
            changed.append('alt_text')
        if opt.get('new_title') is not None:
            attachment.title = opt['new_title']
            changed.append('title')
        if changed:
            attachment.save(update_fields=changed + ['updated_at'])
            updated += len(changed)
    return updated, snapshots


def _revert_images(snapshots):
    for snap in snapshots or ():
        Attachment.objects.filter(url=snap.get('image_url')).update(
            alt_text=snap.get('original_alt') or '',
            title=snap.get('original_title') or '',
        )


def load_bundle(ref):
    if ref.kind == HOMEPAGE:
        bundle = get_option(HOMEPAGE_REVERT_OPTION, {})
    elif ref.kind == POST:
        bundle = get_post_meta(ref.id, REVERT_META_KEY, {})
    elif ref.kind == TERM:
        bundle = get_term_meta(ref.id, REVERT_META_KEY, {})
    else:
        bundle = {}
    return dict(bundle) if isinstance(bundle, dict) else {}


def _save_bundle(ref, bundle):
    if ref.kind == HOMEPAGE:
        update_option(HOMEPAGE_REVERT_OPTION, bundle)
    elif ref.kind == POST:
        if bundle:
            update_post_meta(ref.id, REVERT_META_KEY, bundle)
        else:
            delete_post_meta(ref.id, REVERT_META_KEY)
    elif ref.kind == TERM:
        if bundle:
            update_term_meta(ref.id, REVERT_META_KEY, bundle)
        else:
            delete_term_meta(ref.id, REVERT_META_KEY)


def clear_homepage_backup():
    """Drop the homepage revert bundle. Returns True if one existed."""
    return delete_option(HOMEPAGE_REVERT_OPTION)


def revert(ref, requested_fields=()):
    """
    Restore the legacy values snapshotted in the entity's revert bundle.

    Restores the fields present both in `requested_fields` and in the bundle
    and returns the restored field classes. Empty `requested_fields` means
    every field; names that map to no field class restore nothing. Post and
    term bundles lose the restored entries; the homepage bundle is kept.
    """
    bundle = load_bundle(ref)
    if not bundle:
        raise NotFoundError("No revert data found", ref=str(ref))

    requested = canonical_fields(requested_fields) if requested_fields else list(FIELD_CLASSES)
    restored = []
    try:
        with transaction.atomic():
            for field_class in requested:
                if field_class not in bundle:
                    continue
                value = bundle[field_class]
                if field_class == 'images':
                    _revert_images(value)
                elif field_class in SUPPORTED_FIELDS.get(ref.kind, ()):
                    WRITERS[ref.kind](ref, field_class, value)
                else:
                    continue
                restored.append(field_class)

            if restored and ref.kind != HOMEPAGE:
                for field_class in restored:
                    bundle.pop(field_class, None)
                _save_bundle(ref, bundle)
    except DatabaseError as exc:
        logger.error("Failed to revert %s: %s", ref, exc, extra={'context': {'fields': requested}})
        raise PersistenceError(f"Failed to revert {ref}", ref=str(ref), fields=requested) from exc

    logger.info("Reverted %s: %s", ref, ', '.join(restored) or 'nothing')
    return restored


def process(optimization, toggles=None):
    """Resolve the optimization's page URL and apply it. Returns (ref, ApplyResult)."""
    ref = resolve(optimization['page_url'])
    return ref, apply(ref, optimization, toggles=toggles)


def process_revert(optimization):
    """
    Revert the SEO store row and then the entity the page URL resolves to.

    Succeeds when either side restored something; raises NotFoundError when
    neither had anything to restore. A `fields` list naming no known field
    restores nothing on either side.
    """
    ref = resolve(optimization['page_url'])
    requested_names = optimization.get('fields')
    requested = canonical_fields(requested_names)
    if requested_names and not requested:
        logger.warning("No revertable fields in request for %s: %s",
                       optimization['page_url'], ', '.join(requested_names))
        return RevertResult(ref=ref)

    store_fields = [f for f in requested if f in STORE_FIELDS]
    url_reverted = False
    if store_fields or not requested:
        url_reverted = store.revert(store_url(ref, optimization), store_fields)
    result = RevertResult(ref=ref, url_reverted=url_reverted)

    if not ref.is_resolved:
        if not url_reverted:
            raise NotFoundError("Cannot revert: content not found", url=optimization['page_url'])
        return result

    try:
        result.restored = revert(ref, requested)
    except NotFoundError:
        if not url_reverted:
            raise
    return result
