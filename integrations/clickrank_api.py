"""
Outbound client for the ClickRank platform API.

Announces this site's webhook (subscription), pulls pending optimizations
(sync) and runs each through the same sanitize/resolve/apply pipeline as the
webhook. Calls are never made from the webhook request path.
"""
import json
import logging
import time
from urllib.parse import urljoin

import requests
from django.conf import settings
from django.core.cache import cache
from django.urls import reverse
from django.utils import timezone

from content.meta import get_option
from content.models import Post, home_url
from seo import reconciliation
from seo.exceptions import ClickRankError, TransientNetworkError
from .permissions import API_KEY_OPTION
from .serializers import OptimizationSerializer

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 2
LAST_CONNECTION_CACHE_KEY = 'clickrank_ai_last_successful_connection'
LAST_CONNECTION_TIMEOUT = 60 * 60 * 24  # one day


def _post_once(url, data, api_key, timeout):
    """POST once. Returns the response for 2xx/4xx; raises TransientNetworkError otherwise."""
    headers = {
        'Authorization': f'Bearer {api_key}',
        'Content-Type': 'application/json',
    }
    try:
        resp = requests.post(url, data=json.dumps(data), headers=headers, timeout=timeout)
    except requests.RequestException as exc:
        raise TransientNetworkError(str(exc), url=url) from exc
    if resp.status_code >= 500:
        raise TransientNetworkError(f"Server error (status: {resp.status_code})", url=url)
    return resp


def _make_request(endpoint, data, api_key, timeout=None):
    """
    POST `data` to the ClickRank API with one retry on network errors and 5xx.

    Returns the response on 2xx, None on failure. 4xx responses are not retried.
    """
    config = settings.CLICKRANK
    url = urljoin(config['API_BASE_URL'], endpoint)
    timeout = timeout or config['REQUEST_TIMEOUT']
    logger.debug("Making API request to: %s", endpoint)

    for attempt in range(1, MAX_ATTEMPTS + 1):
        try:
            resp = _post_once(url, data, api_key, timeout)
        except TransientNetworkError as exc:
            if attempt < MAX_ATTEMPTS:
                logger.warning("API request failed, retrying: %s", exc.message)
                time.sleep(config['RETRY_DELAY'])
                continue
            logger.error("API request failed: %s", exc.message, extra={'context': {'endpoint': endpoint}})
            return None

        if 200 <= resp.status_code < 300:
            logger.info("API request successful: %s", endpoint)
            return resp

        try:
            message = resp.json().get('message', 'Unknown error')
        except (ValueError, AttributeError):
            message = 'Unknown error'
        logger.error("API request failed (status: %s): %s", resp.status_code, message,
                     extra={'context': {'endpoint': endpoint}})
        return None

    return None


def webhook_url():
    return urljoin(home_url(), reverse('clickrank-update-post').lstrip('/'))


def send_subscription(api_key):
    """Announce this site's webhook URL to ClickRank."""
    if not api_key:
        logger.error("Cannot send subscription - API key is empty")
        return False

    data = {
        'webhook_url': webhook_url(),
        'site_url': home_url(),
        'api_key': api_key,
    }
    return _make_request('subscription', data, api_key) is not None


def sync_data(api_key):
    """
    Pull pending optimizations and apply them.

    Returns True when at least one page was updated, or when ClickRank had
    nothing to send.
    """
    if not api_key:
        logger.error("Cannot sync data - API key is empty")
        return False

    data = {
        'site_url': home_url(),
        'api_key': api_key,
        'post_count': Post.objects.filter(post_type='post', status='publish').count(),
    }
    resp = _make_request('sync', data, api_key, timeout=settings.CLICKRANK['SYNC_TIMEOUT'])
    if resp is None:
        return False

    try:
        body = resp.json()
    except ValueError:
        body = None
    if not body or not isinstance(body, dict):
        return True

    logger.info("Sync successful: processing %d optimizations", len(body))
    return _process_sync_data(body)


def _process_sync_data(items):
    processed = 0
    successful = 0

    for page_url, optimization in items.items():
        processed += 1
        if not isinstance(optimization, dict):
            logger.warning("Skipping malformed sync item for: %s", page_url)
            continue
        optimization = dict(optimization)
        optimization.setdefault('page_url', page_url)
        if _apply_item(optimization):
            successful += 1

    logger.info("Sync complete: %d/%d pages updated", successful, processed)
    return successful > 0


def _apply_item(optimization):
    page_url = optimization.get('page_url') or ''
    serializer = OptimizationSerializer(data=optimization)
    if not serializer.is_valid():
        logger.warning("Invalid sync item for: %s", page_url,
                       extra={'context': {'errors': serializer.errors}})
        return False

    try:
        ref, result = reconciliation.process(serializer.validated_data)
    except ClickRankError as exc:
        logger.warning("Sync item failed for %s: %s", page_url, exc.message,
                       extra={'context': exc.context})
        return False

    if result.updated:
        return True
    if not ref.is_resolved:
        logger.warning("Cannot resolve URL: %s", page_url)
    else:
        logger.warning("No updates applied for %s", page_url)
    return False


def test_connection(api_key):
    if not api_key:
        return {'success': False, 'message': 'API key required'}

    if send_subscription(api_key):
        cache.set(LAST_CONNECTION_CACHE_KEY, timezone.now().isoformat(), LAST_CONNECTION_TIMEOUT)
        return {'success': True, 'message': 'Connection successful'}
    return {'success': False, 'message': 'Connection failed - please verify your API key'}


def health_check():
    """Scheduled re-announcement with the configured key. Never raises."""
    api_key = get_option(API_KEY_OPTION, '')
    if not api_key:
        logger.warning("Health check skipped: no API key configured")
        return False
    try:
        ok = send_subscription(api_key)
    except Exception:
        logger.exception("Health check failed")
        return False
    if not ok:
        logger.warning("Health check failed: subscription not accepted")
    return ok
