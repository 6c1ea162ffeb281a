from datetime import date, datetime, timezone as dt_timezone

from django.contrib.messages import get_messages
from django.test import SimpleTestCase, override_settings
from django.urls import reverse

from core.api import CourseFlowClient
from core.testing import ApiTestMixin, failed, ok, paged
from .forms import AcademicSessionForm, ExamForm, VenueForm, VerificationCodeForm, iso_midnight_utc
from .views.base import find_record
from .views.exams import EXAM_CONFLICT_ERROR
from .views.users import search_users
from .views.verification_codes import code_status

COURSES = [{'code': 'CSC101', 'name': 'Intro to Computing'}, {'code': 'MTH101', 'name': 'Calculus'}]

VENUES = [
    {'id': 'v1', 'name': 'Main Hall', 'capacity': 500, 'isIct': False},
    {'id': 'v2', 'name': 'ICT Centre', 'capacity': 120, 'isIct': True},
]

SESSIONS = [
    {'id': 'sess-0', 'name': '2024/2025', 'startDate': '2024-09-01T00:00:00.000Z', 'endDate': '2025-07-31T00:00:00.000Z'},
    {'id': 'sess-1', 'name': '2025/2026', 'startDate': '2025-09-01T00:00:00.000Z', 'endDate': '2026-07-31T00:00:00.000Z',
     'isActive': True},
]

EXAMS = [
    {'id': 'e2', 'courseCode': 'MTH101', 'venueId': 'v1', 'date': '2026-01-20T00:00:00.000Z', 'startTime': '09:00',
     'endTime': '11:00', 'studentCount': 300, 'invigilators': 'Dr. Bello'},
    {'id': 'e1', 'courseCode': 'CSC101', 'venueId': 'v2', 'date': '2026-01-13T00:00:00.000Z', 'startTime': '09:00',
     'endTime': '11:00', 'studentCount': 100, 'invigilators': 'Dr. Eze, Mr. Ade', 'targetCollege': 'CBAS'},
]

USERS = [
    {'id': 'u1', 'name': 'Ada Obi', 'email': 'ada@example.com', 'matricNO': 'CSC/2021/001', 'role': 'STUDENT'},
    {'id': 'u2', 'name': 'Dr. Bello', 'email': 'bello@example.com', 'role': 'LECTURER'},
    {'id': 'u3', 'name': 'Admin', 'email': 'admin@example.com', 'role': 'ADMIN'},
]


def flashed(response):
    return [str(message) for message in get_messages(response.wsgi_request)]


class AdminFormTests(SimpleTestCase):
    """Tests for administration form validation and payloads."""

    def test_iso_midnight_utc(self):
        self.assertEqual(iso_midnight_utc(date(2025, 1, 13)), '2025-01-13T00:00:00.000Z')

    def test_venue_payload(self):
        form = VenueForm(data={'name': ' LT1 ', 'capacity': 250, 'is_ict': 'on'})
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.to_payload(), {'name': 'LT1', 'capacity': 250, 'isIct': True})

    def test_venue_capacity_positive(self):
        self.assertFalse(VenueForm(data={'name': 'LT1', 'capacity': 0}).is_valid())

    def test_venue_initial(self):
        self.assertEqual(VenueForm.initial_from(VENUES[1]), {'name': 'ICT Centre', 'capacity': 120, 'is_ict': True})

    def test_session_payload(self):
        form = AcademicSessionForm(data={'name': '2026/2027', 'start_date': '2026-09-01', 'end_date': '2027-07-31'})
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.to_payload(), {
            'name': '2026/2027',
            'startDate': '2026-09-01T00:00:00.000Z',
            'endDate': '2027-07-31T00:00:00.000Z',
        })

    def test_session_end_after_start(self):
        form = AcademicSessionForm(data={'name': 'x', 'start_date': '2026-09-01', 'end_date': '2026-09-01'})
        self.assertFalse(form.is_valid())
        self.assertEqual(form.errors['end_date'], ['End date must be after start date.'])

    def test_session_initial(self):
        self.assertEqual(AcademicSessionForm.initial_from(SESSIONS[0])['start_date'], '2024-09-01')

    def exam_data(self, **overrides):
        data = {
            'course_code': 'CSC101', 'venue_id': 'v2', 'date': '2026-01-13', 'start_time': '09:00',
            'end_time': '11:00', 'student_count': 100, 'invigilators': ' Dr. Eze ', 'target_college': '',
        }
        data.update(overrides)
        return data

    def test_exam_payload(self):
        form = ExamForm(data=self.exam_data(), courses=COURSES, venues=VENUES)
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.to_payload(), {
            'courseCode': 'CSC101',
            'venueId': 'v2',
            'date': '2026-01-13T00:00:00.000Z',
            'startTime': '09:00',
            'endTime': '11:00',
            'studentCount': 100,
            'invigilators': 'Dr. Eze',
        })

    def test_exam_target_college(self):
        form = ExamForm(data=self.exam_data(target_college='CHMS'), courses=COURSES, venues=VENUES)
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.to_payload()['targetCollege'], 'CHMS')

    def test_exam_end_after_start(self):
        form = ExamForm(data=self.exam_data(end_time='08:00'), courses=COURSES, venues=VENUES)
        self.assertFalse(form.is_valid())
        self.assertIn('end_time', form.errors)

    def test_exam_venue_labels(self):
        form = ExamForm(courses=COURSES, venues=VENUES)
        self.assertEqual(form.fields['venue_id'].choices[2], ('v2', 'ICT Centre (capacity 120) - ICT'))

    def test_exam_initial(self):
        initial = ExamForm.initial_from(EXAMS[1])
        self.assertEqual(initial['date'], '2026-01-13')
        self.assertEqual(initial['venue_id'], 'v2')
        self.assertEqual(initial['target_college'], 'CBAS')

    def test_verification_code_payload(self):
        form = VerificationCodeForm(data={
            'code': ' LECT2025 ', 'role': 'LECTURER', 'expires_at': '2026-12-31T23:59', 'max_uses': 5,
        })
        self.assertTrue(form.is_valid(), form.errors)
        payload = form.to_payload()
        self.assertEqual(payload['code'], 'LECT2025')
        self.assertEqual(payload['maxUses'], 5)
        self.assertTrue(payload['expiresAt'].startswith('2026-12-31T23:59'))

    def test_verification_code_minimal(self):
        form = VerificationCodeForm(data={'code': 'HOD1', 'role': 'HOD'})
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.to_payload(), {'code': 'HOD1', 'role': 'HOD'})

    def test_verification_code_not_for_students(self):
        form = VerificationCodeForm(data={'code': 'X', 'role': 'STUDENT'})
        self.assertFalse(form.is_valid())
        self.assertIn('role', form.errors)


class AdminHelperTests(SimpleTestCase):

    def test_find_record(self):
        self.assertEqual(find_record(VENUES, 'v2')['name'], 'ICT Centre')
        self.assertIsNone(find_record(VENUES, 'v9'))

    def test_search_users(self):
        self.assertEqual([u['id'] for u in search_users(USERS, 'csc/2021')], ['u1'])
        self.assertEqual([u['id'] for u in search_users(USERS, 'BELLO')], ['u2'])
        self.assertEqual(len(search_users(USERS, '')), 3)

    def test_code_status(self):
        now = datetime(2026, 6, 1, tzinfo=dt_timezone.utc)
        self.assertEqual(code_status({'isActive': False}, now), 'inactive')
        self.assertEqual(code_status({'isActive': True, 'expiresAt': '2026-01-01T00:00:00Z'}, now), 'expired')
        self.assertEqual(code_status({'isActive': True, 'expiresAt': '2026-01-01T00:00:00'}, now), 'expired')
        self.assertEqual(code_status({'isActive': True, 'maxUses': 2, 'currentUses': 2}, now), 'used_up')
        self.assertEqual(code_status({'isActive': True, 'expiresAt': '2027-01-01T00:00:00Z', 'maxUses': 2}, now), 'active')


@override_settings(SECURE_SSL_REDIRECT=False)
class AdminAccessTests(ApiTestMixin, SimpleTestCase):
    """Every administration page is for admins only."""

    def test_non_admins_redirected(self):
        for role in ('STUDENT', 'LECTURER', 'HOD'):
            self.sign_in(role)
            for name in ('users', 'venues', 'academic_sessions', 'exams', 'verification_codes'):
                response = self.client.get(reverse(f'administration:{name}'))
                self.assertRedirects(response, reverse('core:dashboard'), fetch_redirect_response=False)

    def test_signed_out_redirected_to_login(self):
        response = self.client.get(reverse('administration:venues'))
        self.assertTrue(response['Location'].startswith(reverse('accounts:login')))


@override_settings(SECURE_SSL_REDIRECT=False)
class UserViewTests(ApiTestMixin, SimpleTestCase):

    def setUp(self):
        super().setUp()
        self.sign_in('ADMIN')
        self.get_users = self.mock_api('get_users', return_value=paged(USERS, total=3))

    def test_list(self):
        response = self.client.get(reverse('administration:users'))
        self.get_users.assert_called_once_with(page=1, limit=50)
        self.assertEqual(response.context['student_count'], 1)
        self.assertEqual(response.context['staff_count'], 2)
        self.assertContains(response, 'CSC/2021/001')

    def test_role_filter_and_search(self):
        response = self.client.get(reverse('administration:users'), {'role': 'LECTURER', 'search': 'example.com'})
        self.assertEqual([u['id'] for u in response.context['users']], ['u2'])

    def test_unknown_role_ignored(self):
        response = self.client.get(reverse('administration:users'), {'role': 'GOD'})
        self.assertEqual(len(response.context['users']), 3)
        self.assertEqual(response.context['role'], '')


@override_settings(SECURE_SSL_REDIRECT=False)
class VenueViewTests(ApiTestMixin, SimpleTestCase):

    def setUp(self):
        super().setUp()
        self.sign_in('ADMIN')
        self.mock_api('get_venues', return_value=paged(VENUES))

    def test_list(self):
        response = self.client.get(reverse('administration:venues'))
        self.assertEqual(response.context['total_capacity'], 620)
        self.assertEqual(response.context['ict_venues'], 1)
        self.assertContains(response, 'ICT Centre')

    def test_create(self):
        create = self.mock_api('create_venue', return_value=ok({'id': 'v3'}))
        response = self.client.post(reverse('administration:venue_create'), {'name': 'LT3', 'capacity': 80})
        self.assertRedirects(response, reverse('administration:venues'), fetch_redirect_response=False)
        create.assert_called_once_with({'name': 'LT3', 'capacity': 80, 'isIct': False})
        self.assertIn('Venue created successfully', flashed(response))

    def test_edit_prefilled(self):
        response = self.client.get(reverse('administration:venue_edit', args=['v1']))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context['form'].initial['capacity'], 500)

    def test_edit(self):
        update = self.mock_api('update_venue', return_value=ok({'id': 'v1'}))
        response = self.client.post(
            reverse('administration:venue_edit', args=['v1']),
            {'name': 'Main Hall', 'capacity': 450},
            HTTP_HX_REQUEST='true',
        )
        self.assertEqual(response.status_code, 204)
        self.assertEqual(response['HX-Trigger'], 'venuesChanged')
        update.assert_called_once_with('v1', {'name': 'Main Hall', 'capacity': 450, 'isIct': False})

    def test_edit_missing(self):
        response = self.client.get(reverse('administration:venue_edit', args=['v9']))
        self.assertRedirects(response, reverse('administration:venues'), fetch_redirect_response=False)
        self.assertIn('Venue not found. It may have been deleted.', flashed(response))

    def test_delete(self):
        delete = self.mock_api('delete_venue', return_value=ok())
        response = self.client.post(reverse('administration:venue_delete', args=['v2']))
        self.assertRedirects(response, reverse('administration:venues'), fetch_redirect_response=False)
        delete.assert_called_once_with('v2')

    def test_delete_failure(self):
        self.mock_api('delete_venue', return_value=failed('Venue has exams scheduled', 409))
        response = self.client.post(reverse('administration:venue_delete', args=['v1']))
        self.assertIn('Venue has exams scheduled', flashed(response))

    def test_delete_requires_post(self):
        delete = self.mock_api('delete_venue')
        response = self.client.get(reverse('administration:venue_delete', args=['v1']))
        self.assertEqual(response.status_code, 405)
        delete.assert_not_called()


@override_settings(SECURE_SSL_REDIRECT=False)
class AcademicSessionViewTests(ApiTestMixin, SimpleTestCase):

    def setUp(self):
        super().setUp()
        self.sign_in('ADMIN')
        self.mock_api('get_academic_sessions', return_value=ok(SESSIONS))

    def test_list_newest_first(self):
        response = self.client.get(reverse('administration:academic_sessions'))
        sessions = response.context['sessions']
        self.assertEqual([s['id'] for s in sessions], ['sess-1', 'sess-0'])
        self.assertTrue(sessions[0]['is_current'])
        self.assertFalse(sessions[1]['is_current'])

    def test_create(self):
        create = self.mock_api('create_academic_session', return_value=ok({'id': 'sess-2'}))
        response = self.client.post(reverse('administration:academic_session_create'), {
            'name': '2026/2027', 'start_date': '2026-09-01', 'end_date': '2027-07-31',
        })
        self.assertRedirects(response, reverse('administration:academic_sessions'), fetch_redirect_response=False)
        self.assertEqual(create.call_args[0][0]['startDate'], '2026-09-01T00:00:00.000Z')

    def test_edit_prefilled(self):
        response = self.client.get(reverse('administration:academic_session_edit', args=['sess-0']))
        self.assertEqual(response.context['form'].initial['end_date'], '2025-07-31')

    def test_activate_refreshes_active_session(self):
        active_lookup = CourseFlowClient.get_active_academic_session
        activate = self.mock_api('activate_academic_session', return_value=ok(SESSIONS[0]))

        self.client.get(reverse('administration:academic_sessions'))
        lookups_before = active_lookup.call_count
        response = self.client.post(reverse('administration:academic_session_activate', args=['sess-0']))
        self.client.get(reverse('administration:academic_sessions'))

        self.assertRedirects(response, reverse('administration:academic_sessions'), fetch_redirect_response=False)
        activate.assert_called_once_with('sess-0')
        self.assertIn('Active academic session updated.', flashed(response))
        # The next page load looks the active session up again instead of using the cache
        self.assertGreater(active_lookup.call_count, lookups_before + 1)

    def test_delete(self):
        delete = self.mock_api('delete_academic_session', return_value=failed('Session is active', 400))
        response = self.client.post(reverse('administration:academic_session_delete', args=['sess-1']))
        delete.assert_called_once_with('sess-1')
        self.assertIn('Session is active', flashed(response))


@override_settings(SECURE_SSL_REDIRECT=False)
class ExamViewTests(ApiTestMixin, SimpleTestCase):

    def setUp(self):
        super().setUp()
        self.sign_in('ADMIN')
        self.get_exams = self.mock_api('get_exams', return_value=paged(EXAMS))
        self.mock_api('get_courses', return_value=paged(COURSES))
        self.mock_api('get_venues', return_value=paged(VENUES))

    def test_list_sorted_with_names(self):
        response = self.client.get(reverse('administration:exams'), {'semester': 'FIRST'})
        self.get_exams.assert_called_once_with(semester='FIRST', limit=50)
        self.assertEqual([e['id'] for e in response.context['exams']], ['e1', 'e2'])
        self.assertContains(response, 'Intro to Computing')
        self.assertContains(response, 'ICT Centre')

    def test_list_names_from_embedded_or_missing_records(self):
        self.get_exams.return_value = paged([
            {'id': 'e3', 'courseCode': 'PHY101', 'course': {'name': 'General Physics'},
             'venue': {'id': 'v9', 'name': 'Annex'}, 'date': '2026-01-15T00:00:00.000Z', 'startTime': '09:00'},
            {'id': 'e4', 'courseCode': 'GST101', 'date': '2026-01-16T00:00:00.000Z', 'startTime': '09:00'},
        ])

        response = self.client.get(reverse('administration:exams'))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            [(e['course_name'], e['venue_name']) for e in response.context['exams']],
            [('General Physics', 'Annex'), ('', '')],
        )
        self.assertContains(response, 'Annex')

    def test_create(self):
        create = self.mock_api('create_exam', return_value=ok({'id': 'e3'}))
        response = self.client.post(reverse('administration:exam_create'), {
            'course_code': 'MTH101', 'venue_id': 'v1', 'date': '2026-01-22', 'start_time': '13:00',
            'end_time': '15:00', 'student_count': 250, 'invigilators': 'Dr. Bello',
        })
        self.assertRedirects(response, reverse('administration:exams'), fetch_redirect_response=False)
        self.assertEqual(create.call_args[0][0]['date'], '2026-01-22T00:00:00.000Z')
        self.assertIn('Exam scheduled successfully.', flashed(response))

    def test_create_conflict(self):
        self.mock_api('create_exam', return_value=failed('', 409))
        response = self.client.post(reverse('administration:exam_create'), {
            'course_code': 'MTH101', 'venue_id': 'v2', 'date': '2026-01-22', 'start_time': '13:00',
            'end_time': '15:00', 'student_count': 250, 'invigilators': 'Dr. Bello',
        })
        self.assertEqual(response.status_code, 200)
        self.assertIn(EXAM_CONFLICT_ERROR, flashed(response))

    def test_edit(self):
        update = self.mock_api('update_exam', return_value=ok({'id': 'e1'}))
        response = self.client.post(reverse('administration:exam_edit', args=['e1']), {
            'course_code': 'CSC101', 'venue_id': 'v2', 'date': '2026-01-14', 'start_time': '09:00',
            'end_time': '11:00', 'student_count': 110, 'invigilators': 'Dr. Eze',
        })
        self.assertRedirects(response, reverse('administration:exams'), fetch_redirect_response=False)
        self.assertEqual(update.call_args[0][0], 'e1')
        self.assertEqual(update.call_args[0][1]['studentCount'], 110)

    def test_edit_missing(self):
        response = self.client.get(reverse('administration:exam_edit', args=['e9']))
        self.assertRedirects(response, reverse('administration:exams'), fetch_redirect_response=False)

    def test_delete(self):
        delete = self.mock_api('delete_exam', return_value=ok())
        response = self.client.post(reverse('administration:exam_delete', args=['e1']), HTTP_HX_REQUEST='true')
        self.assertEqual(response.status_code, 204)
        delete.assert_called_once_with('e1')


@override_settings(SECURE_SSL_REDIRECT=False)
class VerificationCodeViewTests(ApiTestMixin, SimpleTestCase):

    def setUp(self):
        super().setUp()
        self.sign_in('ADMIN')

    def test_list_with_status(self):
        self.mock_api('get_verification_codes', return_value=ok([
            {'id': 'k1', 'code': 'LECT2025', 'role': 'LECTURER', 'isActive': True, 'expiresAt': '2000-01-01T00:00:00Z'},
            {'id': 'k2', 'code': 'HOD2025', 'role': 'HOD', 'isActive': True},
            {'id': 'k3', 'code': 'OLD', 'role': 'ADMIN', 'isActive': False},
        ]))
        response = self.client.get(reverse('administration:verification_codes'))
        self.assertEqual([c['status'] for c in response.context['codes']], ['expired', 'active', 'inactive'])
        self.assertEqual(response.context['active_count'], 1)
        self.assertEqual(response.context['expired_count'], 1)
        self.assertContains(response, 'HOD2025')

    def test_create(self):
        create = self.mock_api('create_verification_code', return_value=ok({'id': 'k4'}))
        response = self.client.post(reverse('administration:verification_code_create'), {
            'code': 'ADMIN2026', 'role': 'ADMIN', 'max_uses': 1,
        })
        self.assertRedirects(response, reverse('administration:verification_codes'), fetch_redirect_response=False)
        create.assert_called_once_with({'code': 'ADMIN2026', 'role': 'ADMIN', 'maxUses': 1})

    def test_toggle_deactivates(self):
        update = self.mock_api('update_verification_code', return_value=ok({'id': 'k1'}))
        response = self.client.post(
            reverse('administration:verification_code_toggle', args=['k1']), {'is_active': 'true'}
        )
        update.assert_called_once_with('k1', {'isActive': False})
        self.assertIn('Verification code deactivated', flashed(response))

    def test_toggle_activates(self):
        update = self.mock_api('update_verification_code', return_value=ok({'id': 'k1'}))
        response = self.client.post(
            reverse('administration:verification_code_toggle', args=['k1']), {'is_active': 'false'}
        )
        update.assert_called_once_with('k1', {'isActive': True})
        self.assertIn('Verification code activated', flashed(response))

    def test_delete(self):
        delete = self.mock_api('delete_verification_code', return_value=ok())
        response = self.client.post(reverse('administration:verification_code_delete', args=['k1']))
        delete.assert_called_once_with('k1')
        self.assertIn('Verification code deleted successfully', flashed(response))
