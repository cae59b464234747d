"""
Site content models: the posts, taxonomy terms and images ClickRank optimizes,
plus the per-entity metadata and option store they are configured through.
"""
from urllib.parse import urljoin

from django.conf import settings
from django.db import models


def home_url():
    """Public URL of the site, always with a trailing slash."""
    url = settings.CLICKRANK['SITE_URL']
    return url if url.endswith('/') else url + '/'


class Post(models.Model):
    """
    A post, page or custom post type entry.
    `path` is the permalink relative to the home URL, without surrounding slashes.
    """
    STATUS_CHOICES = [
        ('publish', 'Published'),
        ('draft', 'Draft'),
        ('private', 'Private'),
        ('trash', 'Trash'),
    ]

    post_type = models.CharField(max_length=50, default='post',
        help_text="post, page, product, ...")
    title = models.CharField(max_length=500, blank=True)
    slug = models.SlugField(max_length=200, allow_unicode=True)
    path = models.CharField(max_length=500, blank=True, db_index=True,
        help_text="Permalink path relative to the home URL, e.g. 2024/05/hello-world")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='publish')
    published_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'posts'
        ordering = ['-published_at']
        indexes = [
            models.Index(fields=['slug', 'status'], name='posts_slug_status_idx'),
        ]

    def __str__(self):
        return f"{self.title or self.slug} ({self.post_type})"

    @property
    def is_published(self):
        return self.status == 'publish'

    def get_absolute_url(self):
        return urljoin(home_url(), f"{(self.path or self.slug).strip('/')}/")


class PostMeta(models.Model):
    post = models.ForeignKey(Post, on_delete=models.CASCADE, related_name='meta')
    key = models.CharField(max_length=255)
    value = models.JSONField(null=True, blank=True)

    class Meta:
        db_table = 'post_meta'
        unique_together = [['post', 'key']]

    def __str__(self):
        return f"{self.post_id}:{self.key}"


class Term(models.Model):
    """A taxonomy term (category, tag, product category, ...)."""
    # Taxonomies whose archive base differs from the taxonomy name
    ARCHIVE_BASES = {
        'post_tag': 'tag',
    }

    taxonomy = models.CharField(max_length=50, default='category')
    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=200, allow_unicode=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'terms'
        ordering = ['taxonomy', 'name']
        unique_together = [['taxonomy', 'slug']]

    def __str__(self):
        return f"{self.name} ({self.taxonomy})"

    def get_absolute_url(self):
        base = self.ARCHIVE_BASES.get(self.taxonomy, self.taxonomy)
        return urljoin(home_url(), f"{base}/{self.slug}/")


class TermMeta(models.Model):
    term = models.ForeignKey(Term, on_delete=models.CASCADE, related_name='meta')
    key = models.CharField(max_length=255)
    value = models.JSONField(null=True, blank=True)

    class Meta:
        db_table = 'term_meta'
        unique_together = [['term', 'key']]

    def __str__(self):
        return f"{self.term_id}:{self.key}"


class Attachment(models.Model):
    """An uploaded image, addressed by its public URL."""
    url = models.CharField(max_length=1000, unique=True)
    title = models.CharField(max_length=500, blank=True)
    alt_text = models.CharField(max_length=1000, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'attachments'

    def __str__(self):
        return self.url


class Option(models.Model):
    """Site-wide key/value settings (API key, module toggles, homepage SEO values)."""
    name = models.CharField(max_length=191, unique=True)
    value = models.JSONField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'options'
        ordering = ['name']

    def __str__(self):
        return self.name
