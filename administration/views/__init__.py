"""
Administration views package (admin-only screens).

- base: Record lookup and mutation helpers
- users: Registered users
- venues: Venue CRUD
- sessions: Academic session CRUD and activation
- exams: Exam scheduling
- verification_codes: Staff registration codes
"""

from .users import users

from .venues import (
    venues,
    venue_create,
    venue_edit,
    venue_delete,
)

from .sessions import (
    academic_sessions,
    academic_session_create,
    academic_session_edit,
    academic_session_activate,
    academic_session_delete,
)

from .exams import (
    exams,
    exam_create,
    exam_edit,
    exam_delete,
)

from .verification_codes import (
    verification_codes,
    verification_code_create,
    verification_code_toggle,
    verification_code_delete,
)
