from django.contrib.messages import get_messages
from django.test import SimpleTestCase, override_settings
from django.urls import reverse

from core.session import SessionUser
from core.testing import USERS, ApiTestMixin, failed, ok, paged
from .forms import ComplaintForm
from .views import status_counts

DEPARTMENTS = [{'code': 'CSC', 'name': 'Computer Science'}, {'code': 'MTH', 'name': 'Mathematics'}]

COMPLAINTS = [
    {'id': 'c1', 'subject': 'Clash on Monday', 'message': 'CSC101 and MTH101 overlap', 'status': 'PENDING',
     'name': 'Ada Obi', 'email': 'ada@example.com', 'department': 'Computer Science'},
    {'id': 'c2', 'subject': 'Venue too small', 'message': 'LT1 cannot hold 300 students', 'status': 'IN_PROGRESS',
     'name': 'Ada Obi', 'email': 'ada@example.com', 'department': 'Computer Science'},
]


def flashed(response):
    return [str(message) for message in get_messages(response.wsgi_request)]


class ComplaintFormTests(SimpleTestCase):
    """Tests for ComplaintForm."""

    def test_prefilled_from_user(self):
        form = ComplaintForm(departments=DEPARTMENTS, user=SessionUser(USERS['STUDENT']))
        self.assertEqual(form.initial, {'name': 'Ada Obi', 'email': 'ada@example.com'})

    def test_departments_by_name(self):
        form = ComplaintForm(departments=DEPARTMENTS)
        self.assertEqual(
            form.fields['department'].choices,
            [('', 'Select department'), ('Computer Science', 'Computer Science'), ('Mathematics', 'Mathematics')],
        )

    def test_payload(self):
        form = ComplaintForm(data={
            'name': ' Ada Obi ', 'email': 'ada@example.com', 'department': 'Mathematics',
            'subject': ' Missing results ', 'message': ' MTH201 results are missing. ',
        }, departments=DEPARTMENTS)
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.to_payload(), {
            'name': 'Ada Obi',
            'email': 'ada@example.com',
            'department': 'Mathematics',
            'subject': 'Missing results',
            'message': 'MTH201 results are missing.',
        })

    def test_unknown_department(self):
        form = ComplaintForm(data={
            'name': 'Ada', 'email': 'ada@example.com', 'department': 'Physics', 'subject': 'x', 'message': 'y',
        }, departments=DEPARTMENTS)
        self.assertFalse(form.is_valid())
        self.assertIn('department', form.errors)


class StatusCountTests(SimpleTestCase):

    def test_counts(self):
        counts = status_counts(COMPLAINTS + [{'status': 'PENDING'}, {'status': 'UNKNOWN'}])
        self.assertEqual(counts, {'PENDING': 2, 'IN_PROGRESS': 1, 'RESOLVED': 0, 'CLOSED': 0})


@override_settings(SECURE_SSL_REDIRECT=False)
class ComplaintViewTests(ApiTestMixin, SimpleTestCase):
    """Tests for the complaint list, submission and status changes."""

    def setUp(self):
        super().setUp()
        self.mock_api('get_departments', return_value=paged(DEPARTMENTS))

    def test_requires_login(self):
        response = self.client.get(reverse('complaints:index'))
        self.assertEqual(response.status_code, 302)

    def test_student_sees_own_complaints(self):
        self.sign_in('STUDENT')
        mine = self.mock_api('get_my_complaints', return_value=ok(COMPLAINTS))
        everyone = self.mock_api('get_complaints')

        response = self.client.get(reverse('complaints:index'), {'status': 'PENDING'})

        self.assertEqual(response.status_code, 200)
        mine.assert_called_once_with()
        everyone.assert_not_called()
        self.assertEqual(len(response.context['complaints']), 2)
        self.assertContains(response, 'Clash on Monday')
        self.assertNotContains(response, 'Mark Resolved')

    def test_admin_filters_by_status(self):
        self.sign_in('ADMIN')
        everyone = self.mock_api('get_complaints', return_value=paged(COMPLAINTS[:1]))

        response = self.client.get(reverse('complaints:index'), {'status': 'PENDING'})

        everyone.assert_called_once_with(status='PENDING', limit=50)
        self.assertEqual(response.context['counts']['PENDING'], 1)
        self.assertContains(response, 'Mark Resolved')

    @override_settings(COURSEFLOW_COMPLAINTS_PAGE_SIZE=25)
    def test_admin_page_size_setting(self):
        self.sign_in('ADMIN')
        everyone = self.mock_api('get_complaints', return_value=paged([]))
        self.client.get(reverse('complaints:index'))
        everyone.assert_called_once_with(status='', limit=25)

    def test_invalid_status_filter_ignored(self):
        self.sign_in('ADMIN')
        everyone = self.mock_api('get_complaints', return_value=paged([]))
        response = self.client.get(reverse('complaints:index'), {'status': 'BOGUS'})
        everyone.assert_called_once_with(status='', limit=50)
        self.assertEqual(response.context['status_filter'], '')

    def test_list_error(self):
        self.sign_in()
        self.mock_api('get_my_complaints', return_value=failed('', 500))
        response = self.client.get(reverse('complaints:index'))
        self.assertEqual(response.context['error'], 'Failed to load complaints')

    def test_create(self):
        self.sign_in()
        create = self.mock_api('create_complaint', return_value=ok({'id': 'c3'}))
        response = self.client.post(reverse('complaints:create'), {
            'name': 'Ada Obi', 'email': 'ada@example.com', 'department': 'Computer Science',
            'subject': 'Lab closed', 'message': 'Lab 2 was locked during CSC201.',
        })

        self.assertRedirects(response, reverse('complaints:index'), fetch_redirect_response=False)
        self.assertEqual(create.call_args[0][0]['department'], 'Computer Science')
        self.assertIn('Your complaint has been submitted successfully.', flashed(response))

    def test_create_htmx(self):
        self.sign_in()
        self.mock_api('create_complaint', return_value=ok({'id': 'c3'}))
        response = self.client.post(reverse('complaints:create'), {
            'name': 'Ada Obi', 'email': 'ada@example.com', 'department': 'Computer Science',
            'subject': 'Lab closed', 'message': 'Locked.',
        }, HTTP_HX_REQUEST='true')
        self.assertEqual(response.status_code, 204)
        self.assertEqual(response['HX-Trigger'], 'complaintsChanged')

    def test_create_invalid(self):
        self.sign_in()
        create = self.mock_api('create_complaint')
        response = self.client.post(reverse('complaints:create'), {'name': 'Ada'}, HTTP_HX_REQUEST='true')
        self.assertEqual(response.status_code, 200)
        self.assertTemplateUsed(response, 'complaints/partials/complaint_form.html')
        create.assert_not_called()

    def test_status_update(self):
        self.sign_in('ADMIN')
        update = self.mock_api('update_complaint_status', return_value=ok({'id': 'c1', 'status': 'IN_PROGRESS'}))
        response = self.client.post(reverse('complaints:status', args=['c1']), {'status': 'IN_PROGRESS'})

        self.assertRedirects(response, reverse('complaints:index'), fetch_redirect_response=False)
        update.assert_called_once_with('c1', 'IN_PROGRESS')
        self.assertIn('Complaint status updated to in progress', flashed(response))

    def test_status_update_invalid(self):
        self.sign_in('ADMIN')
        update = self.mock_api('update_complaint_status')
        response = self.client.post(reverse('complaints:status', args=['c1']), {'status': 'DONE'})
        self.assertIn('Invalid complaint status.', flashed(response))
        update.assert_not_called()

    def test_status_update_failure(self):
        self.sign_in('ADMIN')
        self.mock_api('update_complaint_status', return_value=failed('', 500))
        response = self.client.post(reverse('complaints:status', args=['c1']), {'status': 'RESOLVED'})
        self.assertIn('Failed to update status', flashed(response))

    def test_status_update_admin_only(self):
        self.sign_in('LECTURER')
        update = self.mock_api('update_complaint_status')
        response = self.client.post(reverse('complaints:status', args=['c1']), {'status': 'RESOLVED'})
        self.assertRedirects(response, reverse('core:dashboard'), fetch_redirect_response=False)
        update.assert_not_called()

    def test_status_update_requires_post(self):
        self.sign_in('ADMIN')
        response = self.client.get(reverse('complaints:status', args=['c1']))
        self.assertEqual(response.status_code, 405)
