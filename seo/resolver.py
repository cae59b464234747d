"""
Content resolver: maps an external page URL to the entity it addresses.
"""
import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qs, unquote, urlsplit

from django.conf import settings

from content.models import Post, Term, home_url

logger = logging.getLogger(__name__)

HOMEPAGE = 'homepage'
POST = 'post'
TERM = 'term'
UNKNOWN = 'unknown'


@dataclass(frozen=True)
class ContentRef:
    kind: str
    id: Optional[int] = None
    taxonomy: str = ''

    @classmethod
    def homepage(cls):
        return cls(HOMEPAGE)

    @classmethod
    def post(cls, post_id):
        return cls(POST, post_id)

    @classmethod
    def term(cls, term_id, taxonomy):
        return cls(TERM, term_id, taxonomy)

    @classmethod
    def unknown(cls):
        return cls(UNKNOWN)

    @property
    def is_resolved(self):
        return self.kind != UNKNOWN

    def __str__(self):
        if self.kind == TERM:
            return f"term:{self.taxonomy}:{self.id}"
        if self.kind == POST:
            return f"post:{self.id}"
        return self.kind


def resolve(url):
    """
    Resolve `url` to a ContentRef. First match wins:

    1. the home path -> homepage
    2. ?p= / ?page_id= or the full permalink path -> post
    3. last path segment as a published post slug (latest first) -> post
    4. last path segment as a term slug in a public taxonomy -> term
    5. {taxonomy}/{slug} -> term
    6. otherwise unknown
    """
    parsed = urlsplit((url or '').strip())
    path = unquote(parsed.path).rstrip('/')
    home_path = urlsplit(home_url()).path.rstrip('/')

    if path == home_path and not _query_post_id(parsed.query):
        return ContentRef.homepage()

    post_id = _permalink_post(parsed.query, path, home_path)
    if post_id:
        return ContentRef.post(post_id)

    relative = path[len(home_path):] if home_path and path.startswith(home_path + '/') else path
    segments = [s for s in relative.split('/') if s]
    if not segments:
        return ContentRef.unknown()
    slug = segments[-1]

    post_id = (
        Post.objects.filter(slug=slug, status='publish')
        .order_by('-published_at')
        .values_list('id', flat=True)
        .first()
    )
    if post_id:
        return ContentRef.post(post_id)

    for taxonomy in settings.CLICKRANK['PUBLIC_TAXONOMIES']:
        term_id = Term.objects.filter(taxonomy=taxonomy, slug=slug).values_list('id', flat=True).first()
        if term_id:
            return ContentRef.term(term_id, taxonomy)

    if len(segments) == 2:
        taxonomy = _taxonomy_for_base(segments[0])
        term_id = Term.objects.filter(taxonomy=taxonomy, slug=slug).values_list('id', flat=True).first()
        if term_id:
            return ContentRef.term(term_id, taxonomy)

    logger.debug("Could not resolve URL: %s", url)
    return ContentRef.unknown()


def _query_post_id(query):
    params = parse_qs(query)
    for name in ('p', 'page_id'):
        value = (params.get(name) or [''])[0]
        if value.isdigit():
            return int(value)
    return None


def _permalink_post(query, path, home_path):
    post_id = _query_post_id(query)
    if post_id:
        return Post.objects.filter(pk=post_id).values_list('id', flat=True).first()

    relative = path[len(home_path):] if home_path and path.startswith(home_path + '/') else path
    relative = relative.strip('/')
    if not relative:
        return None
    return Post.objects.filter(path=relative).values_list('id', flat=True).first()


def _taxonomy_for_base(base):
    for taxonomy, archive_base in Term.ARCHIVE_BASES.items():
        if archive_base == base:
            return taxonomy
    return base
