"""Signed-in user state kept in the Django session."""
import logging

from core.api import SESSION_TOKEN_KEY, SESSION_USER_KEY
from core.choices import Role

logger = logging.getLogger(__name__)


class SessionUser:
    """
    The backend user record as stored in the session.

    Role checks here only decide what to show; the backend enforces access.
    """

    def __init__(self, data):
        self.data = data or {}
        self.id = self.data.get('id')
        self.email = self.data.get('email', '')
        self.name = self.data.get('name') or ''
        self.matric_no = self.data.get('matricNO') or self.data.get('matricNo') or ''
        self.role = (self.data.get('role') or Role.STUDENT).upper()

    is_authenticated = True

    def __str__(self):
        return self.display_name

    @property
    def display_name(self):
        return self.name or self.email

    @property
    def role_display(self):
        try:
            return Role(self.role).label
        except ValueError:
            return self.role.title()

    @property
    def is_admin(self):
        return self.role == Role.ADMIN

    @property
    def is_lecturer(self):
        return self.role == Role.LECTURER

    @property
    def is_hod(self):
        return self.role == Role.HOD

    @property
    def is_student(self):
        return self.role == Role.STUDENT

    @property
    def is_staff_member(self):
        """Admins, lecturers and HODs may manage courses and schedules."""
        return self.role in (Role.ADMIN, Role.LECTURER, Role.HOD)


def get_session_user(request):
    """Return the SessionUser for this request, or None when signed out."""
    if not hasattr(request, 'session'):
        return None
    if not request.session.get(SESSION_TOKEN_KEY):
        return None
    data = request.session.get(SESSION_USER_KEY)
    if not data:
        return None
    return SessionUser(data)


def login_session(request, auth_data):
    """
    Store the backend's auth payload in the session.

    Args:
        request: Django request
        auth_data: ``{user, access_token}`` (some deployments send ``token``)

    Returns:
        SessionUser for the signed-in user
    """
    token = auth_data.get('access_token') or auth_data.get('token')
    user = auth_data.get('user') or {}
    if not token:
        raise ValueError('Authentication response did not include a token')

    request.session.cycle_key()
    request.session[SESSION_TOKEN_KEY] = token
    request.session[SESSION_USER_KEY] = user
    logger.info(f"Signed in {user.get('email', 'unknown')} ({user.get('role', 'STUDENT')})")
    return SessionUser(user)


def update_session_user(request, user_data):
    request.session[SESSION_USER_KEY] = user_data
    return SessionUser(user_data)


def logout_session(request):
    request.session.flush()
