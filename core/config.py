"""
Configuration settings for the CourseFlow web app.

These values can be overridden in Django settings by prefixing with COURSEFLOW_.
For example, to change MAX_UPLOAD_SIZE:
    COURSEFLOW_MAX_UPLOAD_SIZE = 10 * 1024 * 1024  # 10 MB

All configuration values are lazily loaded to avoid Django setup issues.
"""


def _get_setting(name, default):
    """Get a CourseFlow setting from Django settings or use default."""
    from django.conf import settings
    return getattr(settings, f'COURSEFLOW_{name}', default)


_DEFAULTS = {
    # Backend
    'API_URL': 'https://courseflow-backend-s16i.onrender.com/api/v1',
    'API_TIMEOUT': 30,  # seconds

    # List page sizes (match what the backend pages comfortably)
    'COURSES_PAGE_SIZE': 12,
    'DEPARTMENTS_PAGE_SIZE': 12,
    'SCHEDULES_PAGE_SIZE': 20,
    'USERS_PAGE_SIZE': 50,
    'EXAMS_PAGE_SIZE': 50,
    'COMPLAINTS_PAGE_SIZE': 50,
    'CHOICE_LIST_LIMIT': 200,  # dropdowns of courses/departments/venues

    # Bulk CSV upload
    'MAX_UPLOAD_SIZE': 5 * 1024 * 1024,  # 5 MB

    # Export settings
    'EXPORT_PAGE_SIZE': 100,
    'EXPORT_MAX_PAGES': 50,
    'EXPORT_HEADER_COLOR': '4F46E5',
    'EXPORT_WORKERS': 4,

    # Active academic session lookup
    'SESSION_CACHE_TIMEOUT': 300,  # seconds
}


class _ConfigProxy:
    """
    Lazy configuration proxy that loads settings only when accessed.
    This avoids Django setup issues during module import.
    """

    def __getattr__(self, name):
        if name in _DEFAULTS:
            return _get_setting(name, _DEFAULTS[name])
        raise AttributeError(f"Unknown config setting: {name}")


_config = _ConfigProxy()


def __getattr__(name):
    """Enable module-level attribute access via the config proxy."""
    return getattr(_config, name)
