import hashlib
import logging

from django.core.cache import cache

from core import config
from core.api import SESSION_TOKEN_KEY

logger = logging.getLogger(__name__)


def current_user(request):
    """
    Add the signed-in CourseFlow user to template context.
    Makes 'api_user' and the role flags available in all templates.
    """
    user = getattr(request, 'api_user', None)
    return {
        'api_user': user,
        'is_authenticated': user is not None,
        'is_admin': bool(user and user.is_admin),
        'is_lecturer': bool(user and user.is_lecturer),
        'is_hod': bool(user and user.is_hod),
        'is_staff_member': bool(user and user.is_staff_member),
    }


def _session_cache_key(token):
    return f"active_session:{hashlib.sha256(token.encode()).hexdigest()[:16]}"


def clear_academic_session_cache(request):
    """Forget the cached active session after it changes."""
    token = request.session.get(SESSION_TOKEN_KEY)
    if token:
        cache.delete(_session_cache_key(token))


def academic_session(request):
    """
    Add the active academic session to template context.
    Cached per token so page loads do not each hit the backend.
    """
    token = request.session.get(SESSION_TOKEN_KEY) if hasattr(request, 'session') else None
    api = getattr(request, 'api', None)
    if not token or api is None:
        return {'current_session': None}

    cache_key = _session_cache_key(token)
    session = cache.get(cache_key)
    if session is None:
        response = api.get_active_academic_session()
        if response.success and isinstance(response.data, dict):
            session = response.data
        else:
            # Remember the miss as well; an empty dict is falsy in templates
            session = {}
        cache.set(cache_key, session, config.SESSION_CACHE_TIMEOUT)

    return {'current_session': session or None}
