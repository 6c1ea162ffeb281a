from importlib import import_module
from unittest import mock

import requests
from django.conf import settings
from django.core.cache import cache
from django.core.files.uploadedfile import SimpleUploadedFile
from django.http import HttpResponse
from django.test import RequestFactory, SimpleTestCase, override_settings
from django.urls import reverse

from core.api import (
    ApiClient, ApiError, SessionExpired, extract_page, fetch_all,
    fetch_concurrently, normalize_payload,
)
from core.context_processors import academic_session, clear_academic_session_cache
from core.ratelimit import parse_rate, ratelimit
from core.session import SessionUser, get_session_user, login_session
from core.templatetags.core_tags import (
    badge_class, get_navigation_items, humanize_choice, level_label,
)
from core.testing import ACTIVE_SESSION, ApiTestMixin, failed, ok, paged
from core.utils import format_time, safe_filename


def fake_response(status_code=200, body=None, content=b'{}', reason='OK'):
    response = mock.Mock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.reason = reason
    response.content = content
    if isinstance(body, Exception):
        response.json.side_effect = body
    else:
        response.json.return_value = body
    return response


class NormalizePayloadTests(SimpleTestCase):
    """Tests for wrapping backend bodies in ApiResponse."""

    def test_auth_payload(self):
        data = {'user': {'id': 1}, 'access_token': 'abc'}
        response = normalize_payload(data, '/auth/login')
        self.assertTrue(response.success)
        self.assertEqual(response.data, data)

    def test_paginated_body_is_wrapped(self):
        data = {'data': [{'code': 'CSC101'}, {'code': 'CSC102'}], 'total': 5, 'page': 2, 'limit': 2}
        response = normalize_payload(data, '/courses')
        page = response.page
        self.assertEqual(page.items, data['data'])
        self.assertEqual(page.total, 5)
        self.assertEqual(page.total_pages, 3)
        self.assertEqual(page.page, 2)

    def test_bare_array(self):
        response = normalize_payload([{'id': 1}], '/auth/verification-codes')
        self.assertTrue(response.success)
        self.assertEqual(response.items, [{'id': 1}])

    def test_envelope_failure(self):
        data = {'success': False, 'error': 'Course exists', 'statusCode': 409}
        response = normalize_payload(data, '/courses')
        self.assertFalse(response.success)
        self.assertEqual(response.error, 'Course exists')
        self.assertEqual(response.status_code, 409)

    def test_plain_object(self):
        response = normalize_payload({'id': 'x'}, '/academic-sessions/active')
        self.assertTrue(response.success)
        self.assertEqual(response.data, {'id': 'x'})


class ExtractPageTests(SimpleTestCase):
    """Tests for reading items out of list envelopes."""

    def test_list(self):
        page = extract_page([1, 2, 3])
        self.assertEqual(page.items, [1, 2, 3])
        self.assertEqual(page.total, 3)
        self.assertEqual(page.total_pages, 1)

    def test_items_with_pagination(self):
        page = extract_page({'items': [1], 'pagination': {'total': 30, 'totalPages': 3, 'page': 2, 'limit': 10}})
        self.assertEqual(page.total, 30)
        self.assertEqual(page.total_pages, 3)
        self.assertEqual(page.page, 2)

    def test_nested_data(self):
        page = extract_page({'data': {'items': ['a'], 'pagination': {'total': 1, 'totalPages': 1}}})
        self.assertEqual(page.items, ['a'])

    def test_data_list(self):
        page = extract_page({'data': ['a', 'b']})
        self.assertEqual(page.items, ['a', 'b'])
        self.assertEqual(page.total, 2)

    def test_unrecognized(self):
        self.assertIsNone(extract_page(None))
        self.assertIsNone(extract_page('text'))
        self.assertIsNone(extract_page({'id': 1}))

    def test_failed_response_has_no_items(self):
        response = failed('Nope')
        self.assertIsNone(response.page)
        self.assertEqual(response.items, [])
        self.assertEqual(response.total, 0)


@mock.patch('core.api.base.requests.request')
class ApiClientRequestTests(SimpleTestCase):
    """Tests for ApiClient.request error handling."""

    def setUp(self):
        self.client_api = ApiClient('https://api.example.com/api/v1/', token='tok')

    def test_sends_bearer_token_and_drops_empty_params(self, mock_request):
        mock_request.return_value = fake_response(body=[])
        self.client_api.request('GET', '/courses', params={'level': 'LEVEL_100', 'search': '', 'semester': None})

        args, kwargs = mock_request.call_args
        self.assertEqual(args, ('GET', 'https://api.example.com/api/v1/courses'))
        self.assertEqual(kwargs['headers']['Authorization'], 'Bearer tok')
        self.assertEqual(kwargs['params'], {'level': 'LEVEL_100'})

    def test_error_message_from_body(self, mock_request):
        mock_request.return_value = fake_response(400, body={'message': ['name is required', 'code is required']})
        response = self.client_api.request('POST', '/courses', json={})
        self.assertFalse(response.success)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.error, 'name is required; code is required')

    def test_error_without_body(self, mock_request):
        mock_request.return_value = fake_response(502, body=ValueError(), reason='Bad Gateway')
        response = self.client_api.request('GET', '/courses')
        self.assertEqual(response.error, 'HTTP 502: Bad Gateway')

    def test_unauthorized_raises_session_expired(self, mock_request):
        mock_request.return_value = fake_response(401, body={'message': 'Unauthorized'})
        response = self.client_api.request('GET', '/auth/me')
        with self.assertRaises(SessionExpired):
            response.raise_for_error()

    def test_timeout(self, mock_request):
        mock_request.side_effect = requests.exceptions.Timeout()
        response = self.client_api.request('GET', '/courses')
        self.assertFalse(response.success)
        self.assertEqual(response.error, 'Connection timeout')

    def test_connection_error(self, mock_request):
        mock_request.side_effect = requests.exceptions.ConnectionError('refused')
        response = self.client_api.request('GET', '/courses')
        self.assertFalse(response.success)
        self.assertEqual(response.error, 'refused')

    def test_no_content(self, mock_request):
        mock_request.return_value = fake_response(204, content=b'')
        response = self.client_api.request('DELETE', '/venues/1')
        self.assertTrue(response.success)
        self.assertIsNone(response.data)

    def test_invalid_json(self, mock_request):
        mock_request.return_value = fake_response(200, body=ValueError(), content=b'<html>')
        response = self.client_api.request('GET', '/courses')
        self.assertFalse(response.success)
        self.assertEqual(response.error, 'Invalid response from server')


class ApiClientFileTests(SimpleTestCase):
    """Tests for CSV template downloads and bulk uploads."""

    def setUp(self):
        self.client_api = ApiClient('https://api.example.com/api/v1', token='tok')

    def csv_upload(self):
        return SimpleUploadedFile('courses.csv', b'code,name\nCSC101,Intro\n', content_type='text/csv')

    @mock.patch('core.api.base.requests.post')
    def test_upload_sends_multipart_file(self, mock_post):
        mock_post.return_value = fake_response(201, body={'success': True, 'data': {'created': 1}})

        response = self.client_api.upload_file('/courses/bulk-upload', self.csv_upload())

        self.assertTrue(response.success)
        self.assertEqual(response.data, {'created': 1})
        args, kwargs = mock_post.call_args
        self.assertEqual(args, ('https://api.example.com/api/v1/courses/bulk-upload',))
        self.assertEqual(kwargs['files'], {'file': ('courses.csv', b'code,name\nCSC101,Intro\n', 'text/csv')})
        self.assertEqual(kwargs['headers']['Authorization'], 'Bearer tok')
        self.assertNotIn('Content-Type', kwargs['headers'])

    @mock.patch('core.api.base.requests.post')
    def test_upload_error_without_message(self, mock_post):
        mock_post.return_value = fake_response(400, body={'statusCode': 400}, reason='Bad Request')
        response = self.client_api.upload_file('/courses/bulk-upload', self.csv_upload())
        self.assertFalse(response.success)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.error, 'Upload failed')

    @mock.patch('core.api.base.requests.post')
    def test_upload_error_message_from_body(self, mock_post):
        mock_post.return_value = fake_response(400, body={'message': 'Row 2: unknown department'})
        response = self.client_api.upload_file('/courses/bulk-upload', self.csv_upload())
        self.assertEqual(response.error, 'Row 2: unknown department')

    @mock.patch('core.api.base.requests.post')
    def test_upload_network_error(self, mock_post):
        mock_post.side_effect = requests.exceptions.ConnectionError('refused')
        response = self.client_api.upload_file('/courses/bulk-upload', self.csv_upload())
        self.assertFalse(response.success)
        self.assertEqual(response.error, 'refused')

    @mock.patch('core.api.base.requests.get')
    def test_download_returns_text(self, mock_get):
        mock_get.return_value = fake_response(200)
        mock_get.return_value.text = 'code,name,level\n'

        response = self.client_api.download_file('/courses/bulk-upload/template')

        self.assertTrue(response.success)
        self.assertEqual(response.data, 'code,name,level\n')
        mock_get.assert_called_once()
        self.assertEqual(mock_get.call_args[0], ('https://api.example.com/api/v1/courses/bulk-upload/template',))

    @mock.patch('core.api.base.requests.get')
    def test_download_error(self, mock_get):
        mock_get.return_value = fake_response(404, body=ValueError(), reason='Not Found')
        response = self.client_api.download_file('/courses/bulk-upload/template')
        self.assertFalse(response.success)
        self.assertEqual(response.error, 'HTTP 404: Not Found')


class FetchAllTests(SimpleTestCase):
    """Tests for paging through list endpoints."""

    def make_fetcher(self, items):
        calls = []

        def fetch_page(page, limit, **params):
            calls.append((page, params))
            start = (page - 1) * limit
            total_pages = -(-len(items) // limit)
            return paged(items[start:start + limit], total=len(items), total_pages=total_pages, page=page, limit=limit)

        return fetch_page, calls

    def test_collects_every_page(self):
        fetch_page, calls = self.make_fetcher(list(range(5)))
        result = fetch_all(fetch_page, page_size=2, level='LEVEL_100')
        self.assertEqual(result, [0, 1, 2, 3, 4])
        self.assertEqual([page for page, _ in calls], [1, 2, 3])
        self.assertEqual(calls[0][1], {'level': 'LEVEL_100'})

    def test_stops_at_max_pages(self):
        fetch_page, calls = self.make_fetcher(list(range(10)))
        result = fetch_all(fetch_page, page_size=2, max_pages=2)
        self.assertEqual(result, [0, 1, 2, 3])
        self.assertEqual(len(calls), 2)

    def test_bare_array_is_one_page(self):
        fetch_page = mock.Mock(return_value=ok([{'id': 1}, {'id': 2}]))
        self.assertEqual(len(fetch_all(fetch_page, page_size=100)), 2)
        self.assertEqual(fetch_page.call_count, 1)

    def test_failed_page_raises(self):
        fetch_page = mock.Mock(side_effect=[paged([1], total=2, total_pages=2), failed('Server error', 500)])
        with self.assertRaises(ApiError) as ctx:
            fetch_all(fetch_page, page_size=1)
        self.assertEqual(ctx.exception.message, 'Server error')

    def test_expired_session_raises(self):
        fetch_page = mock.Mock(return_value=failed('Unauthorized', 401))
        with self.assertRaises(SessionExpired):
            fetch_all(fetch_page)

    def test_unrecognized_payload_raises(self):
        fetch_page = mock.Mock(return_value=ok('not a list'))
        with self.assertRaises(ApiError):
            fetch_all(fetch_page)


class FetchConcurrentlyTests(SimpleTestCase):

    def test_results_by_name(self):
        results = fetch_concurrently(a=lambda: 1, b=lambda: 'two')
        self.assertEqual(results, {'a': 1, 'b': 'two'})

    def test_no_calls(self):
        self.assertEqual(fetch_concurrently(), {})

    def test_exception_propagates(self):
        def boom():
            raise ApiError('down', 503)

        with self.assertRaises(ApiError):
            fetch_concurrently(good=lambda: 1, bad=boom)


class SessionUserTests(SimpleTestCase):
    """Tests for the session-backed user."""

    def test_role_flags(self):
        hod = SessionUser({'role': 'hod', 'email': 'h@example.com'})
        self.assertTrue(hod.is_hod)
        self.assertTrue(hod.is_staff_member)
        self.assertFalse(hod.is_admin)

    def test_student_defaults(self):
        user = SessionUser({'email': 's@example.com'})
        self.assertTrue(user.is_student)
        self.assertFalse(user.is_staff_member)
        self.assertEqual(user.display_name, 's@example.com')

    def test_unknown_role_display(self):
        self.assertEqual(SessionUser({'role': 'GUEST'}).role_display, 'Guest')

    def test_matric_number(self):
        self.assertEqual(SessionUser({'matricNO': 'CSC/1'}).matric_no, 'CSC/1')


class LoginSessionTests(SimpleTestCase):
    """Tests for storing the backend auth payload in the session."""

    def setUp(self):
        self.request = RequestFactory().get('/')
        self.request.session = import_module(settings.SESSION_ENGINE).SessionStore()

    def test_stores_token_and_user(self):
        user = login_session(self.request, {'access_token': 'abc', 'user': {'email': 'a@example.com', 'role': 'ADMIN'}})
        self.assertTrue(user.is_admin)
        self.assertEqual(get_session_user(self.request).email, 'a@example.com')

    def test_accepts_token_key(self):
        login_session(self.request, {'token': 'abc', 'user': {'email': 'a@example.com'}})
        self.assertIsNotNone(get_session_user(self.request))

    def test_missing_token(self):
        with self.assertRaises(ValueError):
            login_session(self.request, {'user': {'email': 'a@example.com'}})

    def test_signed_out(self):
        self.assertIsNone(get_session_user(self.request))


class AcademicSessionContextTests(SimpleTestCase):
    """Tests for the cached active-session context processor."""

    def setUp(self):
        cache.clear()
        self.request = RequestFactory().get('/')
        self.request.session = {'courseflow_token': 'tok'}
        self.request.api = mock.Mock()
        self.request.api.get_active_academic_session.return_value = ok(ACTIVE_SESSION)

    def test_cached_per_token(self):
        self.assertEqual(academic_session(self.request)['current_session'], ACTIVE_SESSION)
        academic_session(self.request)
        self.assertEqual(self.request.api.get_active_academic_session.call_count, 1)

    def test_cache_cleared(self):
        academic_session(self.request)
        clear_academic_session_cache(self.request)
        academic_session(self.request)
        self.assertEqual(self.request.api.get_active_academic_session.call_count, 2)

    def test_no_active_session(self):
        self.request.api.get_active_academic_session.return_value = failed('Not found', 404)
        self.assertIsNone(academic_session(self.request)['current_session'])

    def test_signed_out(self):
        self.request.session = {}
        self.assertIsNone(academic_session(self.request)['current_session'])
        self.request.api.get_active_academic_session.assert_not_called()


class RateLimitTests(SimpleTestCase):
    """Tests for the cache-based rate limit decorator."""

    def setUp(self):
        cache.clear()
        self.factory = RequestFactory()

    def make_request(self, method='get', ip='10.0.0.1', user=None):
        request = getattr(self.factory, method)('/', REMOTE_ADDR=ip)
        request.api_user = user
        return request

    def test_parse_rate(self):
        self.assertEqual(parse_rate('10/m'), (10, 60))
        self.assertEqual(parse_rate('5/d'), (5, 86400))
        self.assertEqual(parse_rate('garbage'), (100, 3600))

    def test_blocks_after_limit(self):
        view = ratelimit(key='ip', rate='2/m')(lambda request: HttpResponse('ok'))
        self.assertEqual(view(self.make_request()).status_code, 200)
        self.assertEqual(view(self.make_request()).status_code, 200)
        self.assertEqual(view(self.make_request()).status_code, 429)
        # A different client is counted separately
        self.assertEqual(view(self.make_request(ip='10.0.0.2')).status_code, 200)

    def test_forwarded_for(self):
        view = ratelimit(key='ip', rate='1/m')(lambda request: HttpResponse('ok'))
        first = self.factory.get('/', HTTP_X_FORWARDED_FOR='1.2.3.4, 10.0.0.1')
        first.api_user = None
        view(first)
        second = self.make_request(ip='1.2.3.4')
        self.assertEqual(view(second).status_code, 429)

    def test_other_methods_not_counted(self):
        view = ratelimit(key='ip', rate='1/m', method='POST')(lambda request: HttpResponse('ok'))
        for _ in range(3):
            self.assertEqual(view(self.make_request()).status_code, 200)
        self.assertEqual(view(self.make_request('post')).status_code, 200)
        self.assertEqual(view(self.make_request('post')).status_code, 429)

    def test_keyed_by_user(self):
        view = ratelimit(key='user', rate='1/m')(lambda request: HttpResponse('ok'))
        self.assertEqual(view(self.make_request(user=SessionUser({'id': 'a'}))).status_code, 200)
        self.assertEqual(view(self.make_request(user=SessionUser({'id': 'b'}))).status_code, 200)
        self.assertEqual(view(self.make_request(user=SessionUser({'id': 'a'}))).status_code, 429)

    def test_non_blocking(self):
        view = ratelimit(key='ip', rate='1/m', block=False)(lambda request: HttpResponse('ok'))
        view(self.make_request())
        self.assertEqual(view(self.make_request()).status_code, 200)

    @override_settings(RATELIMIT_ENABLE=False)
    def test_disabled(self):
        view = ratelimit(key='ip', rate='1/m')(lambda request: HttpResponse('ok'))
        for _ in range(3):
            self.assertEqual(view(self.make_request()).status_code, 200)


class FormattingTests(SimpleTestCase):
    """Tests for display helpers and template filters."""

    def test_format_time(self):
        self.assertEqual(format_time('13:05'), '1:05 PM')
        self.assertEqual(format_time('00:30:00'), '12:30 AM')
        self.assertEqual(format_time('08:00'), '8:00 AM')
        self.assertEqual(format_time('soon'), 'soon')
        self.assertEqual(format_time(None), '')

    def test_humanize_choice(self):
        self.assertEqual(humanize_choice('IN_PROGRESS'), 'In Progress')
        self.assertEqual(humanize_choice(''), '')

    def test_level_label(self):
        self.assertEqual(level_label('LEVEL_300'), '300 Level')
        self.assertEqual(level_label('OTHER'), 'OTHER')

    def test_badge_class(self):
        self.assertEqual(badge_class('RESOLVED'), 'badge-success')
        self.assertEqual(badge_class(None), 'badge-ghost')

    def test_safe_filename(self):
        self.assertEqual(safe_filename('csc level/300'), 'csc_level_300')
        self.assertEqual(safe_filename('///', default='all'), 'all')


class NavigationTests(SimpleTestCase):
    """Tests for role-based navigation."""

    def nav_labels(self, user, path='/courses/'):
        request = RequestFactory().get(path)
        request.api_user = user
        return get_navigation_items({'request': request})

    def test_signed_out(self):
        items = self.nav_labels(None)
        self.assertEqual([item['label'] for item in items], ['Courses', 'Schedule', 'Departments'])
        self.assertTrue(items[0]['is_active'])

    def test_student(self):
        labels = [item['label'] for item in self.nav_labels(SessionUser({'role': 'STUDENT'}))]
        self.assertIn('Complaints', labels)
        self.assertNotIn('Admin', labels)

    def test_admin_children_active(self):
        items = self.nav_labels(SessionUser({'role': 'ADMIN'}), path='/admin/venues/')
        admin = [item for item in items if item['label'] == 'Admin'][0]
        self.assertTrue(admin['is_active'])
        self.assertEqual(len(admin['children']), 5)


@override_settings(SECURE_SSL_REDIRECT=False)
class HealthCheckTests(SimpleTestCase):

    def test_live(self):
        response = self.client.get('/health/')
        self.assertEqual(response.json(), {'status': 'healthy'})

    @mock.patch('core.middleware.requests.get')
    def test_ready(self, mock_get):
        mock_get.return_value = mock.Mock(status_code=404)
        response = self.client.get('/health/ready/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['status'], 'ready')

    @mock.patch('core.middleware.requests.get')
    def test_backend_down(self, mock_get):
        mock_get.side_effect = requests.exceptions.ConnectionError('refused')
        response = self.client.get('/health/ready/')
        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()['checks']['backend']['status'], 'unhealthy')


@override_settings(SECURE_SSL_REDIRECT=False)
class HomeAndDashboardViewTests(ApiTestMixin, SimpleTestCase):
    """Tests for the landing page and dashboard."""

    def test_home_signed_out(self):
        response = self.client.get(reverse('core:home'))
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, 'Course Catalogue')

    def test_home_signed_in_redirects(self):
        self.sign_in()
        response = self.client.get(reverse('core:home'))
        self.assertRedirects(response, reverse('core:dashboard'), fetch_redirect_response=False)

    def test_dashboard_requires_login(self):
        response = self.client.get(reverse('core:dashboard'))
        self.assertEqual(response.status_code, 302)
        self.assertTrue(response['Location'].startswith(reverse('accounts:login')))
        self.assertIn('next=', response['Location'])

    def test_dashboard_student(self):
        self.sign_in('STUDENT')
        self.mock_api('get_courses', return_value=paged([], total=42))
        self.mock_api('get_departments', return_value=paged([], total=7))
        self.mock_api('get_schedules', return_value=paged([
            {'courseCode': 'CSC201', 'startTime': '10:00', 'endTime': '12:00', 'type': 'LAB', 'venue': 'Lab 2'},
            {'courseCode': 'CSC101', 'startTime': '08:00', 'endTime': '10:00', 'type': 'LECTURE', 'venue': 'LT1'},
        ]))
        my_complaints = self.mock_api('get_my_complaints', return_value=ok([{'id': 'c1'}]))
        all_complaints = self.mock_api('get_complaints')

        response = self.client.get(reverse('core:dashboard'))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context['stats'], {
            'total_courses': 42, 'total_departments': 7, 'total_complaints': 1,
        })
        self.assertEqual([s['courseCode'] for s in response.context['today_classes']], ['CSC101', 'CSC201'])
        self.assertEqual(response.context['admin_actions'], [])
        self.assertContains(response, '2025/2026')
        my_complaints.assert_called_once()
        all_complaints.assert_not_called()

    def test_dashboard_today_classes_in_clock_order(self):
        self.sign_in()
        self.mock_api('get_courses', return_value=paged([]))
        self.mock_api('get_departments', return_value=paged([]))
        self.mock_api('get_my_complaints', return_value=ok([]))
        self.mock_api('get_schedules', return_value=paged([
            {'courseCode': 'MTH101', 'startTime': '10:00', 'endTime': '12:00', 'type': 'LECTURE', 'venue': 'LT2'},
            {'startTime': '8:00', 'endTime': '10:00', 'type': 'LAB',
             'course': {'code': 'PHY101', 'name': 'General Physics'}, 'venue': {'name': 'Physics Lab'}},
        ]))

        response = self.client.get(reverse('core:dashboard'))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            [(s['course_code'], s['course_name'], s['venue_name']) for s in response.context['today_classes']],
            [('PHY101', 'General Physics', 'Physics Lab'), ('MTH101', '', 'LT2')],
        )
        self.assertContains(response, 'General Physics')

    def test_dashboard_admin_sees_all_complaints(self):
        self.sign_in('ADMIN')
        self.mock_api('get_courses', return_value=paged([]))
        self.mock_api('get_departments', return_value=paged([]))
        self.mock_api('get_schedules', return_value=failed('Server error', 500))
        self.mock_api('get_complaints', return_value=paged([], total=3))

        response = self.client.get(reverse('core:dashboard'))

        self.assertEqual(response.context['stats']['total_complaints'], 3)
        self.assertTrue(response.context['admin_actions'])
        self.assertEqual(response.context['today_classes'], [])

    def test_dashboard_htmx_partial(self):
        self.sign_in()
        for method in ('get_courses', 'get_departments', 'get_schedules'):
            self.mock_api(method, return_value=paged([]))
        self.mock_api('get_my_complaints', return_value=ok([]))

        response = self.client.get(reverse('core:dashboard'), HTTP_HX_REQUEST='true')

        self.assertTemplateUsed(response, 'core/partials/dashboard_content.html')
        self.assertTemplateNotUsed(response, 'base.html')
