"""
Academics views package.

This package splits the views into logical modules:
- base: Filters, pagination, file responses and the shared bulk upload flow
- courses: Course list, create, bulk upload, export
- departments: Department list, detail, create, bulk upload
- schedules: Timetable list, create, bulk upload, export
"""

# Courses
from .courses import (
    courses,
    course_create,
    courses_bulk_upload,
    courses_template,
    courses_export,
)

# Departments
from .departments import (
    departments,
    department_detail,
    department_create,
    departments_bulk_upload,
    departments_template,
)

# Schedules
from .schedules import (
    schedules,
    schedule_create,
    schedules_bulk_upload,
    schedules_template,
    schedules_export,
)
