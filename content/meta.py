"""
Accessors for the option store and per-entity metadata.

Missing keys read as the supplied default, so callers can treat "never set"
and "set to empty" alike.
"""
from .models import Option, PostMeta, TermMeta


def get_option(name, default=None):
    value = Option.objects.filter(name=name).values_list('value', flat=True).first()
    if value is None:
        return default
    return value


def update_option(name, value):
    Option.objects.update_or_create(name=name, defaults={'value': value})


def delete_option(name):
    """Delete an option. Returns True if it existed."""
    deleted, _ = Option.objects.filter(name=name).delete()
    return deleted > 0


def get_post_meta(post_id, key, default=''):
    value = PostMeta.objects.filter(post_id=post_id, key=key).values_list('value', flat=True).first()
    if value is None:
        return default
    return value


def update_post_meta(post_id, key, value):
    PostMeta.objects.update_or_create(post_id=post_id, key=key, defaults={'value': value})


def delete_post_meta(post_id, key):
    deleted, _ = PostMeta.objects.filter(post_id=post_id, key=key).delete()
    return deleted > 0


def get_term_meta(term_id, key, default=''):
    value = TermMeta.objects.filter(term_id=term_id, key=key).values_list('value', flat=True).first()
    if value is None:
        return default
    return value


def update_term_meta(term_id, key, value):
    TermMeta.objects.update_or_create(term_id=term_id, key=key, defaults={'value': value})


def delete_term_meta(term_id, key):
    deleted, _ = TermMeta.objects.filter(term_id=term_id, key=key).delete()
    return deleted > 0
