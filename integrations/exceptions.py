"""
DRF exception handler rendering every webhook failure as {success: false, message}.
"""
import logging

from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from seo.exceptions import ClickRankError

logger = logging.getLogger(__name__)


def clickrank_exception_handler(exc, context):
    if isinstance(exc, ClickRankError):
        level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
        logger.log(level, exc.message, extra={'context': exc.context} if exc.context else None)
        return Response({'success': False, 'message': exc.message}, status=exc.status_code)

    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, exceptions.Throttled):
        message = 'Rate limit exceeded'
    elif isinstance(exc, exceptions.ValidationError):
        message = 'Invalid request data'
    elif isinstance(exc, exceptions.APIException):
        message = str(exc.detail)
    else:
        message = 'Request failed'

    data = {'success': False, 'message': message}
    if isinstance(exc, exceptions.ValidationError):
        data['errors'] = response.data
    if response.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(message)
    return Response(data, status=response.status_code, headers=_retry_headers(response))


def _retry_headers(response):
    return {k: v for k, v in response.items() if k in ('Retry-After', 'Allow', 'WWW-Authenticate')}
