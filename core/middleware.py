import logging
import os
import time

import requests
from django.contrib import messages
from django.http import JsonResponse
from django.shortcuts import redirect

from core import config
from core.api import SessionExpired, get_client
from core.session import get_session_user, logout_session

logger = logging.getLogger(__name__)


class ApiSessionMiddleware:
    """
    Attach the CourseFlow API client and signed-in user to every request.

    - request.api: CourseFlowClient carrying the session's bearer token
    - request.api_user: SessionUser, or None when signed out

    A view that lets SessionExpired escape (the backend answered 401) is
    sent back to the login page with a fresh session.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.api = get_client(request)
        request.api_user = get_session_user(request)
        return self.get_response(request)

    def process_exception(self, request, exception):
        if not isinstance(exception, SessionExpired):
            return None

        logger.info(f"Backend session expired for {request.path}")
        logout_session(request)
        messages.warning(request, 'Your session has expired. Please sign in again.')
        return redirect('accounts:login')


class HealthCheckMiddleware:
    """
    Middleware to answer health check requests before anything else runs.

    Endpoints:
    - /health/ - Basic health check (for load balancers)
    - /health/ready/ - Readiness check (includes backend API, cache)
    - /health/live/ - Liveness check (basic)
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        # Basic health check (fast, for load balancers)
        if request.path in ['/health/', '/health', '/health/live/', '/health/live']:
            return JsonResponse({'status': 'healthy'})

        # Detailed readiness check
        if request.path in ['/health/ready/', '/health/ready']:
            return self._readiness_check()

        return self.get_response(request)

    def _readiness_check(self):
        """Check if the app can reach everything it needs."""
        checks = {}

        start = time.time()
        checks['backend'] = self._check_backend()
        checks['backend']['response_time_ms'] = round((time.time() - start) * 1000, 2)

        checks['cache'] = self._check_cache()

        all_healthy = all(c['status'] == 'healthy' for c in checks.values())
        status_code = 200 if all_healthy else 503

        return JsonResponse({
            'status': 'ready' if all_healthy else 'not_ready',
            'checks': checks,
            'version': os.getenv('APP_VERSION', 'unknown'),
        }, status=status_code)

    def _check_backend(self):
        """Check the CourseFlow API answers at all (any HTTP status counts)."""
        try:
            response = requests.get(config.API_URL, timeout=5)
            if response.status_code >= 500:
                return {'status': 'unhealthy', 'error': f'HTTP {response.status_code}'}
            return {'status': 'healthy'}
        except requests.exceptions.RequestException as e:
            return {'status': 'unhealthy', 'error': str(e)}

    def _check_cache(self):
        """Check cache read/write."""
        try:
            from django.core.cache import cache
            cache.set('health_check', 'ok', 10)
            if cache.get('health_check') == 'ok':
                return {'status': 'healthy'}
            return {'status': 'unhealthy', 'error': 'Cache read/write failed'}
        except Exception as e:
            return {'status': 'unhealthy', 'error': str(e)}
