import logging
from functools import wraps

from django.conf import settings
from django.core.cache import cache
from django.shortcuts import render

logger = logging.getLogger(__name__)

PERIODS = {'s': 1, 'm': 60, 'h': 3600, 'd': 86400}


def parse_rate(rate):
    """'10/m' -> (10, 60). Falls back to 100 per hour on a bad rate string."""
    try:
        limit, period = rate.split('/')
        return int(limit), PERIODS.get(period, 3600)
    except (ValueError, AttributeError):
        return 100, 3600


def get_client_ip(request):
    """Get client IP address from request."""
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        return x_forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


def ratelimit(key='ip', rate='100/h', method=None, block=True):
    """
    Simple cache-based rate limiter decorator.

    Args:
        key: 'user' for signed-in-user limiting (IP when signed out), 'ip' for IP-based
        rate: Format "number/period" where period is s/m/h/d (second/minute/hour/day)
        method: only count requests with this HTTP method (all methods when None)
        block: If True, return a 429 page; if False, just log warning

    Usage:
        @ratelimit(key='ip', rate='10/m', method='POST')
        def login(request):
            ...

    Disabled entirely with RATELIMIT_ENABLE = False.
    """
    limit, period_seconds = parse_rate(rate)

    def decorator(view_func):
        @wraps(view_func)
        def wrapper(request, *args, **kwargs):
            if not getattr(settings, 'RATELIMIT_ENABLE', True):
                return view_func(request, *args, **kwargs)
            if method and request.method != method:
                return view_func(request, *args, **kwargs)

            user = getattr(request, 'api_user', None)
            if key == 'user' and user is not None:
                cache_key = f"ratelimit:{view_func.__name__}:user:{user.id}"
            else:
                cache_key = f"ratelimit:{view_func.__name__}:ip:{get_client_ip(request)}"

            # Atomically create the key if it doesn't exist
            if not cache.add(cache_key, 1, period_seconds):
                try:
                    current = cache.incr(cache_key)
                except ValueError:
                    # Key expired between add and incr, recreate
                    cache.set(cache_key, 1, period_seconds)
                    current = 1

                if current > limit:
                    logger.warning(f"Rate limit exceeded for {cache_key}")
                    if block:
                        return render(request, 'core/ratelimited.html', status=429)

            return view_func(request, *args, **kwargs)
        return wrapper
    return decorator
