from django.contrib.messages import get_messages
from django.test import SimpleTestCase, override_settings
from django.urls import reverse

from core.api import SESSION_TOKEN_KEY, SESSION_USER_KEY
from core.testing import USERS, ApiTestMixin, failed, ok
from .forms import RegisterForm


def flashed(response):
    return [str(message) for message in get_messages(response.wsgi_request)]


class RegisterFormTests(SimpleTestCase):
    """Tests for RegisterForm validation and payload."""

    def form_data(self, **overrides):
        data = {
            'matric_no': ' csc/2021/001 ',
            'name': 'Ada Obi',
            'email': 'ada@example.com',
            'password': 'secret1',
            'confirm_password': 'secret1',
            'role': 'STUDENT',
            'verification_code': '',
        }
        data.update(overrides)
        return data

    def test_valid_student(self):
        form = RegisterForm(data=self.form_data())
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.to_payload(), {
            'matricNO': 'CSC/2021/001',
            'email': 'ada@example.com',
            'password': 'secret1',
            'role': 'STUDENT',
            'name': 'Ada Obi',
        })

    def test_passwords_must_match(self):
        form = RegisterForm(data=self.form_data(confirm_password='other1'))
        self.assertFalse(form.is_valid())
        self.assertIn('confirm_password', form.errors)

    def test_short_password(self):
        form = RegisterForm(data=self.form_data(password='abc', confirm_password='abc'))
        self.assertFalse(form.is_valid())
        self.assertIn('password', form.errors)

    def test_staff_roles_need_code(self):
        for role in ('LECTURER', 'HOD', 'ADMIN'):
            form = RegisterForm(data=self.form_data(role=role))
            self.assertFalse(form.is_valid())
            self.assertIn('verification_code', form.errors)

    def test_code_sent_for_lecturer(self):
        form = RegisterForm(data=self.form_data(role='LECTURER', verification_code=' LECT2025 '))
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.to_payload()['verificationCode'], 'LECT2025')


@override_settings(SECURE_SSL_REDIRECT=False)
class LoginViewTests(ApiTestMixin, SimpleTestCase):
    """Tests for signing in."""

    def setUp(self):
        super().setUp()
        self.url = reverse('accounts:login')
        self.auth = {'access_token': 'abc', 'user': USERS['STUDENT']}

    def test_login_page(self):
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, 200)
        self.assertTemplateUsed(response, 'accounts/login.html')

    def test_signed_in_user_redirected(self):
        self.sign_in()
        response = self.client.get(self.url)
        self.assertRedirects(response, reverse('core:dashboard'), fetch_redirect_response=False)

    def test_successful_login(self):
        login = self.mock_api('login', return_value=ok(self.auth))
        response = self.client.post(self.url, {'email': 'ada@example.com', 'password': 'secret1'})

        self.assertRedirects(response, reverse('core:dashboard'), fetch_redirect_response=False)
        login.assert_called_once_with('ada@example.com', 'secret1')
        self.assertIn('Welcome back, Ada Obi!', flashed(response))
        self.assertEqual(self.client.session[SESSION_TOKEN_KEY], 'abc')
        self.assertEqual(self.client.session[SESSION_USER_KEY]['role'], 'STUDENT')

    def test_redirects_to_next(self):
        self.mock_api('login', return_value=ok(self.auth))
        response = self.client.post(self.url, {
            'email': 'ada@example.com', 'password': 'secret1', 'next': '/schedule/?view=grid',
        })
        self.assertRedirects(response, '/schedule/?view=grid', fetch_redirect_response=False)

    def test_ignores_external_next(self):
        self.mock_api('login', return_value=ok(self.auth))
        response = self.client.post(self.url, {
            'email': 'ada@example.com', 'password': 'secret1', 'next': 'https://evil.example.com/',
        })
        self.assertRedirects(response, reverse('core:dashboard'), fetch_redirect_response=False)

    def test_backend_rejects_credentials(self):
        self.mock_api('login', return_value=failed('Invalid email or password', 401))
        response = self.client.post(self.url, {'email': 'ada@example.com', 'password': 'wrong1'})

        self.assertEqual(response.status_code, 200)
        self.assertIn('Invalid email or password', flashed(response))
        self.assertNotIn(SESSION_TOKEN_KEY, self.client.session)

    def test_fallback_error_message(self):
        self.mock_api('login', return_value=failed('', 400))
        response = self.client.post(self.url, {'email': 'ada@example.com', 'password': 'wrong1'})
        self.assertIn('Invalid credentials', flashed(response))

    def test_response_without_token(self):
        self.mock_api('login', return_value=ok({'user': USERS['STUDENT']}))
        response = self.client.post(self.url, {'email': 'ada@example.com', 'password': 'secret1'})
        self.assertEqual(response.status_code, 200)
        self.assertNotIn(SESSION_TOKEN_KEY, self.client.session)

    def test_invalid_form_skips_backend(self):
        login = self.mock_api('login')
        response = self.client.post(self.url, {'email': 'not-an-email', 'password': ''})
        self.assertEqual(response.status_code, 200)
        login.assert_not_called()

    @override_settings(RATELIMIT_ENABLE=True)
    def test_rate_limited(self):
        self.mock_api('login', return_value=failed('Invalid email or password', 401))
        for _ in range(20):
            self.client.post(self.url, {'email': 'ada@example.com', 'password': 'wrong1'})
        response = self.client.post(self.url, {'email': 'ada@example.com', 'password': 'wrong1'})
        self.assertEqual(response.status_code, 429)


@override_settings(SECURE_SSL_REDIRECT=False)
class RegisterViewTests(ApiTestMixin, SimpleTestCase):
    """Tests for self-registration."""

    def test_register_and_sign_in(self):
        user = dict(USERS['STUDENT'], name='New Student')
        register = self.mock_api('register', return_value=ok({'access_token': 'xyz', 'user': user}))
        response = self.client.post(reverse('accounts:register'), {
            'matric_no': 'CSC/2021/009',
            'name': 'New Student',
            'email': 'new@example.com',
            'password': 'secret1',
            'confirm_password': 'secret1',
            'role': 'STUDENT',
        })

        self.assertRedirects(response, reverse('core:dashboard'), fetch_redirect_response=False)
        self.assertEqual(register.call_args[0][0]['matricNO'], 'CSC/2021/009')
        self.assertIn('Welcome to CourseFlow, New Student!', flashed(response))

    def test_backend_error(self):
        self.mock_api('register', return_value=failed('Invalid verification code', 400))
        response = self.client.post(reverse('accounts:register'), {
            'matric_no': 'STAFF/1',
            'email': 'lect@example.com',
            'password': 'secret1',
            'confirm_password': 'secret1',
            'role': 'LECTURER',
            'verification_code': 'WRONG',
        })
        self.assertEqual(response.status_code, 200)
        self.assertIn('Invalid verification code', flashed(response))


@override_settings(SECURE_SSL_REDIRECT=False)
class LogoutAndProfileTests(ApiTestMixin, SimpleTestCase):
    """Tests for logout, profile and expired sessions."""

    def test_logout(self):
        self.sign_in()
        response = self.client.post(reverse('accounts:logout'))
        self.assertRedirects(response, reverse('accounts:login'), fetch_redirect_response=False)
        self.assertNotIn(SESSION_TOKEN_KEY, self.client.session)

    def test_logout_requires_post(self):
        self.sign_in()
        response = self.client.get(reverse('accounts:logout'))
        self.assertEqual(response.status_code, 405)

    def test_profile_refreshes_user(self):
        self.sign_in()
        self.mock_api('get_current_user', return_value=ok(dict(USERS['STUDENT'], name='Ada Renamed')))
        response = self.client.get(reverse('accounts:profile'))

        self.assertEqual(response.status_code, 200)
        self.assertContains(response, 'Ada Renamed')
        self.assertEqual(self.client.session[SESSION_USER_KEY]['name'], 'Ada Renamed')

    def test_profile_falls_back_to_session_user(self):
        self.sign_in()
        self.mock_api('get_current_user', return_value=failed('Server error', 500))
        response = self.client.get(reverse('accounts:profile'))
        self.assertContains(response, 'Ada Obi')

    def test_expired_session_signs_out(self):
        self.sign_in()
        self.mock_api('get_current_user', return_value=failed('Unauthorized', 401))
        response = self.client.get(reverse('accounts:profile'))

        self.assertRedirects(response, reverse('accounts:login'), fetch_redirect_response=False)
        self.assertIn('Your session has expired. Please sign in again.', flashed(response))
        self.assertNotIn(SESSION_TOKEN_KEY, self.client.session)
