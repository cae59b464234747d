"""
URL normalization for SEO record lookup.
"""
import string
from urllib.parse import urlsplit


def normalize_url(url):
    """
    Canonical lookup key for a URL.

    Lower-cases scheme and host, drops user info, query string and fragment,
    and strips the trailing slash except for the root path. Parameterized
    variants of the same page collapse to one key. Never raises.

    >>> normalize_url('HTTPS://Example.com/Blog/Post/?utm_source=x#top')
    'https://example.com/Blog/Post'
    """
    url = (url or '').strip()
    try:
        parsed = urlsplit(url)
    except ValueError:
        # e.g. unbalanced IPv6 brackets; keep what precedes the query
        return _normalize_path(url.split('?', 1)[0].split('#', 1)[0])

    host = parsed.netloc.rpartition('@')[2].lower()
    if not host:
        # A scheme without a host (mailto:, http:///x) carries no lookup value
        path = parsed.path
        if path.startswith('//'):
            path = '/' + path.lstrip('/')
        return _normalize_path(path)

    prefix = parsed.scheme.lower() + '://' if parsed.scheme else '//'
    return prefix + host + _normalize_path(parsed.path)


def _normalize_path(path):
    path = path.rstrip('/' + string.whitespace)
    return path or '/'
