"""
Access checks for the ClickRank webhook.

Both run as DRF permissions, in order: the rate limit is counted before the
API key is looked at, so rejected keys still use up the client's budget.
"""
import hmac
import logging

from django.conf import settings
from django.core.cache import cache
from rest_framework import permissions

from content.meta import get_option
from seo.exceptions import AuthError, RateLimitError

logger = logging.getLogger(__name__)

API_KEY_OPTION = 'clickrank_ai_api_key'


def client_ip(request):
    """First X-Forwarded-For address, falling back to REMOTE_ADDR."""
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR', '')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR', '127.0.0.1')


class WebhookRateLimit(permissions.BasePermission):
    """
    Fixed-window limit per client address, kept in the Django cache.
    RATE_LIMIT_REQUESTS requests per RATE_LIMIT_WINDOW seconds.
    """
    cache_prefix = 'clickrank_ai_rate_limit_'

    def has_permission(self, request, view):
        config = settings.CLICKRANK
        if not config['RATE_LIMIT_ENABLED']:
            return True

        key = self.cache_prefix + client_ip(request)
        window = config['RATE_LIMIT_WINDOW']
        # add() only sets the key if missing, so the window starts at the first hit
        cache.add(key, 0, timeout=window)
        try:
            count = cache.incr(key)
        except ValueError:
            # expired between add() and incr()
            cache.set(key, 1, timeout=window)
            count = 1

        if count > config['RATE_LIMIT_REQUESTS']:
            logger.warning("Webhook rate limit exceeded for IP: %s", client_ip(request))
            raise RateLimitError('Rate limit exceeded')
        return True


class HasClickRankAPIKey(permissions.BasePermission):
    """
    Bearer token must equal the API key configured in the option store.

    401 when no key is configured or the header is malformed, 403 for a wrong key.
    """

    def has_permission(self, request, view):
        api_key = get_option(API_KEY_OPTION, '')
        if not api_key:
            logger.warning("Webhook blocked: No API key configured")
            raise AuthError('API key not configured')

        auth_header = request.META.get('HTTP_AUTHORIZATION', '')
        scheme, _, token = auth_header.strip().partition(' ')
        token = token.strip()
        if scheme.lower() != 'bearer' or not token:
            logger.warning("Webhook blocked: Invalid authorization")
            raise AuthError('Invalid authorization')

        if not hmac.compare_digest(str(api_key).encode(), token.encode()):
            logger.warning("Webhook blocked: Invalid API key from IP: %s", client_ip(request))
            raise AuthError('Invalid API key', status_code=403)

        return True
