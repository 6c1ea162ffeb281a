"""Test helpers: canned API responses and a signed-in session."""
from unittest import mock

from django.conf import settings
from django.core.cache import cache

from core.api import ApiResponse, CourseFlowClient, SESSION_TOKEN_KEY, SESSION_USER_KEY

ACTIVE_SESSION = {'id': 'sess-1', 'name': '2025/2026', 'isActive': True}

USERS = {
    'STUDENT': {'id': 'u-1', 'email': 'ada@example.com', 'name': 'Ada Obi', 'role': 'STUDENT', 'matricNO': 'CSC/2021/001'},
    'LECTURER': {'id': 'u-2', 'email': 'lect@example.com', 'name': 'Dr. Bello', 'role': 'LECTURER'},
    'HOD': {'id': 'u-3', 'email': 'hod@example.com', 'name': 'Prof. Eze', 'role': 'HOD'},
    'ADMIN': {'id': 'u-4', 'email': 'admin@example.com', 'name': 'Admin', 'role': 'ADMIN'},
}


def ok(data=None, status_code=200):
    return ApiResponse(success=True, data=data, status_code=status_code)


def failed(error='Request failed', status_code=400):
    return ApiResponse.failure(error, status_code)


def paged(items, total=None, total_pages=1, page=1, limit=20):
    """A list response in the backend's {data: {items, pagination}} shape."""
    total = len(items) if total is None else total
    return ok({'data': {
        'items': items,
        'pagination': {'page': page, 'limit': limit, 'total': total, 'totalPages': total_pages},
    }})


class ApiTestMixin:
    """
    Mixin for view tests.

    Stubs the active-session lookup the context processor makes on every
    page, and provides sign_in() and mock_api() helpers.
    """

    def setUp(self):
        super().setUp()
        cache.clear()
        self.mock_api('get_active_academic_session', return_value=ok(ACTIVE_SESSION))

    def mock_api(self, method, **kwargs):
        """Patch a CourseFlowClient method for the duration of the test."""
        patcher = mock.patch.object(CourseFlowClient, method, **kwargs)
        mocked = patcher.start()
        self.addCleanup(patcher.stop)
        return mocked

    def sign_in(self, role='STUDENT', token='test-token'):
        session = self.client.session
        session[SESSION_TOKEN_KEY] = token
        session[SESSION_USER_KEY] = USERS[role]
        session.save()
        self.client.cookies[settings.SESSION_COOKIE_NAME] = session.session_key
        return USERS[role]
