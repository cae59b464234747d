"""
Error taxonomy for the ClickRank reconciliation core.

Each error carries the HTTP status it maps to so the webhook layer can render
it without knowing where it was raised.
"""


class ClickRankError(Exception):
    status_code = 500
    default_message = 'ClickRank request failed'

    def __init__(self, message=None, status_code=None, **context):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.context = context
        super().__init__(self.message)


class ValidationError(ClickRankError):
    """Missing or malformed input. Not retried."""
    status_code = 400
    default_message = 'Invalid request data'


class AuthError(ClickRankError):
    """Missing or wrong credential. 401 by default, 403 for a wrong key."""
    status_code = 401
    default_message = 'Invalid authorization'


class NotFoundError(ClickRankError):
    status_code = 404
    default_message = 'Content not found'


class RateLimitError(ClickRankError):
    status_code = 429
    default_message = 'Rate limit exceeded'


class TransientNetworkError(ClickRankError):
    """Network failure or 5xx from the ClickRank API; retried once."""
    status_code = 502
    default_message = 'ClickRank API unavailable'


class PersistenceError(ClickRankError):
    status_code = 500
    default_message = 'Failed to store SEO data'
