"""
CourseFlow backend API client.

Views never talk to ``requests`` directly; they use the client that
``ApiSessionMiddleware`` attaches as ``request.api``.
"""

from .base import ApiClient, ApiResponse, ApiError, SessionExpired, Page, extract_page, normalize_payload
from .client import CourseFlowClient
from .pagination import fetch_all, fetch_concurrently

SESSION_TOKEN_KEY = 'courseflow_token'
SESSION_USER_KEY = 'courseflow_user'


def get_client(request=None, token=None):
    """
    Build a client bound to the request's session token.

    Args:
        request: Django request (optional); its session token is used
        token: explicit bearer token (overrides the session)

    Returns:
        CourseFlowClient instance
    """
    from core import config

    if token is None and request is not None and hasattr(request, 'session'):
        token = request.session.get(SESSION_TOKEN_KEY)

    return CourseFlowClient(config.API_URL, token=token, timeout=config.API_TIMEOUT)


__all__ = [
    'ApiClient',
    'ApiResponse',
    'ApiError',
    'SessionExpired',
    'Page',
    'CourseFlowClient',
    'extract_page',
    'normalize_payload',
    'fetch_all',
    'fetch_concurrently',
    'get_client',
    'SESSION_TOKEN_KEY',
    'SESSION_USER_KEY',
]
