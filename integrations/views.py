"""
Inbound ClickRank webhook.
Applies (or reverts) one page's SEO optimization pushed by the ClickRank platform.
"""
import logging

from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.response import Response

from seo import reconciliation
from seo.exceptions import ValidationError
from seo.resolver import HOMEPAGE, POST, TERM
from .permissions import HasClickRankAPIKey, WebhookRateLimit
from .serializers import OptimizationSerializer

logger = logging.getLogger(__name__)


def _success(message, **extra):
    logger.info(message)
    return Response({'success': True, 'message': message, **extra}, status=status.HTTP_200_OK)


def _error(message, status_code):
    logger.warning(message)
    return Response({'success': False, 'message': message}, status=status_code)


def _entity_label(ref):
    if ref.kind == HOMEPAGE:
        return 'Homepage'
    if ref.kind == POST:
        return f'Post {ref.id}'
    if ref.kind == TERM:
        return f'Term {ref.id}'
    return 'Content'


@api_view(['POST'])
@authentication_classes([])
@permission_classes([WebhookRateLimit, HasClickRankAPIKey])
def update_post(request):
    """
    Apply or revert an SEO optimization for one page.

    POST /api/v1/clickrank/update-post
    Headers: Authorization: Bearer <api_key>
    Body: {
        "page_url": "https://example.com/blog/post/",   (required)
        "action": "revert",                              (optional)
        "fields": ["page_title", ...],                   (revert only, optional)
        "page_title": "...", "meta_description": "...", "canonical_url": "...",
        "page_schema": "..." | {...}, "term_name": "...",
        "image_optimizations": [{"image_url": "...", "new_alt_text": "...", "new_title": "..."}],
        "link_titles": {"https://...": "title"}
    }

    Returns: { "success": true, "message": "...", ... }
    """
    serializer = OptimizationSerializer(data=request.data)
    if not serializer.is_valid():
        raise ValidationError('Invalid request data', errors=serializer.errors)

    data = serializer.validated_data
    logger.info("Processing webhook for: %s", data['page_url'])

    if data.get('action') == 'revert':
        return _handle_revert(data)

    ref, result = reconciliation.process(data)

    if ref.kind == HOMEPAGE:
        return _success('Homepage updated', fields=result.updated)

    if ref.is_resolved:
        if not result.updated:
            return _error('No updates applied', status.HTTP_400_BAD_REQUEST)
        return _success(f'{_entity_label(ref)} updated', fields=result.updated)

    if result.url_saved:
        logger.info("URL stored in table but post not found: %s", data['page_url'])
        return _success('SEO data saved to URL table (post not resolved)', url_table_only=True)
    if result.images_updated:
        return _success('Images updated', count=result.images_updated)
    if data.get('image_optimizations'):
        return _error('No images updated', status.HTTP_400_BAD_REQUEST)
    return _error('Content not found and no data to save', status.HTTP_404_NOT_FOUND)


def _handle_revert(data):
    result = reconciliation.process_revert(data)

    if result.restored:
        return _success(f'{_entity_label(result.ref)} reverted', fields=result.restored)
    if result.url_reverted:
        return _success('Reverted from URL table', url_table_only=True)
    return _error('No fields reverted', status.HTTP_400_BAD_REQUEST)
