"""
CourseFlow backend resource methods.

One method per backend operation. Filters are passed straight through as
query parameters using the backend's camelCase names.
"""

from typing import Dict
from urllib.parse import quote

from .base import ApiClient, ApiResponse


class CourseFlowClient(ApiClient):
    """Client for the CourseFlow REST API (``/api/v1``)."""

    # ----- Auth -----

    def login(self, email: str, password: str) -> ApiResponse:
        return self.request('POST', '/auth/login', json={'email': email, 'password': password})

    def register(self, data: Dict) -> ApiResponse:
        return self.request('POST', '/auth/register', json=data)

    def get_current_user(self) -> ApiResponse:
        return self.request('GET', '/auth/me')

    # ----- Verification codes -----

    def get_verification_codes(self) -> ApiResponse:
        return self.request('GET', '/auth/verification-codes')

    def create_verification_code(self, data: Dict) -> ApiResponse:
        return self.request('POST', '/auth/verification-codes', json=data)

    def update_verification_code(self, code_id: str, data: Dict) -> ApiResponse:
        return self.request('PATCH', f'/auth/verification-codes/{quote(str(code_id))}', json=data)

    def delete_verification_code(self, code_id: str) -> ApiResponse:
        return self.request('DELETE', f'/auth/verification-codes/{quote(str(code_id))}')

    # ----- Users -----

    def get_users(self, **params) -> ApiResponse:
        return self.request('GET', '/users', params=params)

    # ----- Academic sessions -----

    def get_academic_sessions(self, **params) -> ApiResponse:
        return self.request('GET', '/academic-sessions', params=params)

    def get_active_academic_session(self) -> ApiResponse:
        return self.request('GET', '/academic-sessions/active')

    def create_academic_session(self, data: Dict) -> ApiResponse:
        return self.request('POST', '/academic-sessions', json=data)

    def update_academic_session(self, session_id: str, data: Dict) -> ApiResponse:
        return self.request('PATCH', f'/academic-sessions/{quote(str(session_id))}', json=data)

    def activate_academic_session(self, session_id: str) -> ApiResponse:
        return self.request('PATCH', f'/academic-sessions/{quote(str(session_id))}/activate')

    def delete_academic_session(self, session_id: str) -> ApiResponse:
        return self.request('DELETE', f'/academic-sessions/{quote(str(session_id))}')

    # ----- Departments -----

    def get_departments(self, **params) -> ApiResponse:
        return self.request('GET', '/departments', params=params)

    def create_department(self, data: Dict) -> ApiResponse:
        return self.request('POST', '/departments', json=data)

    def get_department_full_details(self, code: str) -> ApiResponse:
        return self.request('GET', f'/departments/{quote(code)}/full-details')

    def upload_departments_bulk(self, uploaded_file) -> ApiResponse:
        return self.upload_file('/departments/bulk/upload', uploaded_file)

    def get_departments_bulk_template(self) -> ApiResponse:
        return self.download_file('/departments/bulk/template')

    # ----- Courses -----

    def get_courses(self, **params) -> ApiResponse:
        return self.request('GET', '/courses', params=params)

    def create_course(self, data: Dict) -> ApiResponse:
        return self.request('POST', '/courses', json=data)

    def upload_courses_bulk(self, uploaded_file) -> ApiResponse:
        return self.upload_file('/courses/bulk/upload', uploaded_file)

    def get_courses_bulk_template(self) -> ApiResponse:
        return self.download_file('/courses/bulk/template')

    # ----- Schedules -----

    def get_schedules(self, **params) -> ApiResponse:
        return self.request('GET', '/schedules', params=params)

    def create_schedule(self, data: Dict) -> ApiResponse:
        return self.request('POST', '/schedules', json=data)

    def upload_schedules_bulk(self, uploaded_file) -> ApiResponse:
        return self.upload_file('/schedules/bulk/upload', uploaded_file)

    def get_schedules_bulk_template(self) -> ApiResponse:
        return self.download_file('/schedules/bulk/template')

    # ----- Venues -----

    def get_venues(self, **params) -> ApiResponse:
        return self.request('GET', '/venues', params=params)

    def create_venue(self, data: Dict) -> ApiResponse:
        return self.request('POST', '/venues', json=data)

    def update_venue(self, venue_id: str, data: Dict) -> ApiResponse:
        return self.request('PATCH', f'/venues/{quote(str(venue_id))}', json=data)

    def delete_venue(self, venue_id: str) -> ApiResponse:
        return self.request('DELETE', f'/venues/{quote(str(venue_id))}')

    # ----- Complaints -----

    def get_complaints(self, **params) -> ApiResponse:
        return self.request('GET', '/complaints', params=params)

    def get_my_complaints(self) -> ApiResponse:
        return self.request('GET', '/complaints/my-complaints')

    def create_complaint(self, data: Dict) -> ApiResponse:
        return self.request('POST', '/complaints', json=data)

    def update_complaint_status(self, complaint_id: str, status: str) -> ApiResponse:
        return self.request(
            'PATCH',
            f'/complaints/{quote(str(complaint_id))}/status',
            params={'status': status},
        )

    # ----- Exams -----

    def get_exams(self, **params) -> ApiResponse:
        return self.request('GET', '/exams', params=params)

    def create_exam(self, data: Dict) -> ApiResponse:
        return self.request('POST', '/exams', json=data)

    def update_exam(self, exam_id: str, data: Dict) -> ApiResponse:
        return self.request('PATCH', f'/exams/{quote(str(exam_id))}', json=data)

    def delete_exam(self, exam_id: str) -> ApiResponse:
        return self.request('DELETE', f'/exams/{quote(str(exam_id))}')
