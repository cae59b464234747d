"""
SEO models: the URL-keyed store of ClickRank-managed SEO values.

Each row holds the current value of every field class plus the value it had
before ClickRank first changed it (the `original_*` columns), which is what a
revert restores.
"""

from django.db import models

MAX_URL_LENGTH = 2000


class SeoRecord(models.Model):
    url = models.CharField(max_length=MAX_URL_LENGTH, db_index=True, help_text="URL as received")
    url_normalized = models.CharField(max_length=MAX_URL_LENGTH, unique=True,
        help_text="Lookup key, see seo.normalizer.normalize_url")
    resolved_entity_id = models.BigIntegerField(null=True, blank=True, db_index=True,
        help_text="Post ID the URL resolved to, when known")

    title = models.TextField(null=True, blank=True)
    description = models.TextField(null=True, blank=True)
    canonical_url = models.CharField(max_length=500, null=True, blank=True)
    schema = models.TextField(null=True, blank=True, help_text="JSON-LD markup")

    original_title = models.TextField(null=True, blank=True)
    original_description = models.TextField(null=True, blank=True)
    original_canonical = models.CharField(max_length=500, null=True, blank=True)
    original_schema = models.TextField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True, db_index=True)

    class Meta:
        db_table = 'seo_records'
        ordering = ['-updated_at']

    def __str__(self):
        return self.url_normalized

    @property
    def has_backup(self):
        return any([
            self.original_title, self.original_description,
            self.original_canonical, self.original_schema,
        ])
