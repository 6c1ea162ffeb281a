import logging

from django.shortcuts import render, redirect
from django.utils import timezone

from academics.timetable import sort_by_start, with_display_fields
from core.api import fetch_concurrently
from core.choices import DayOfWeek
from core.permissions import login_required
from core.utils import htmx_render

logger = logging.getLogger(__name__)


QUICK_ACTIONS = [
    {
        'title': 'Browse Courses',
        'description': 'Explore available courses',
        'url_name': 'academics:courses',
        'icon': 'fa-solid fa-book-open',
    },
    {
        'title': 'View Schedule',
        'description': 'Check class schedules',
        'url_name': 'academics:schedules',
        'icon': 'fa-solid fa-calendar-days',
    },
    {
        'title': 'Departments',
        'description': 'Browse departments',
        'url_name': 'academics:departments',
        'icon': 'fa-solid fa-building',
    },
    {
        'title': 'Submit Complaint',
        'description': 'File a complaint',
        'url_name': 'complaints:index',
        'icon': 'fa-solid fa-comment-dots',
    },
]

ADMIN_ACTIONS = [
    {
        'title': 'Manage Users',
        'description': 'View and manage user accounts',
        'url_name': 'administration:users',
        'icon': 'fa-solid fa-users',
    },
    {
        'title': 'Verification Codes',
        'description': 'Manage registration codes',
        'url_name': 'administration:verification_codes',
        'icon': 'fa-solid fa-key',
    },
    {
        'title': 'Exams',
        'description': 'Schedule and manage exams',
        'url_name': 'administration:exams',
        'icon': 'fa-solid fa-file-pen',
    },
    {
        'title': 'Academic Sessions',
        'description': 'Set the active session',
        'url_name': 'administration:academic_sessions',
        'icon': 'fa-solid fa-calendar',
    },
]

FEATURES = [
    {
        'title': 'Course Catalogue',
        'description': 'Browse courses by department, level and semester.',
        'icon': 'fa-solid fa-book-open',
    },
    {
        'title': 'Class Timetables',
        'description': 'See every lecture, lab and tutorial, and export the timetable.',
        'icon': 'fa-solid fa-calendar-days',
    },
    {
        'title': 'Departments',
        'description': 'Find departments, their heads and the courses they run.',
        'icon': 'fa-solid fa-building',
    },
    {
        'title': 'Complaints',
        'description': 'Raise issues and follow them through to resolution.',
        'icon': 'fa-solid fa-comment-dots',
    },
]


def home(request):
    """Public landing page."""
    if request.api_user:
        return redirect('core:dashboard')
    return render(request, 'core/home.html', {'features': FEATURES})


@login_required
def dashboard(request):
    """Dashboard with headline counts for the signed-in user."""
    api = request.api
    user = request.api_user
    today = DayOfWeek.values[timezone.localdate().weekday()]

    # limit=1: only the pagination totals are needed
    calls = {
        'courses': lambda: api.get_courses(limit=1),
        'departments': lambda: api.get_departments(limit=1),
        'today': lambda: api.get_schedules(dayOfWeek=today, limit=20),
    }
    if user.is_admin:
        calls['complaints'] = lambda: api.get_complaints(limit=1)
    else:
        calls['complaints'] = api.get_my_complaints

    results = fetch_concurrently(**calls)

    for name, response in results.items():
        if not response.success:
            logger.warning(f"Dashboard {name} lookup failed: {response.error}")

    today_classes = [with_display_fields(s) for s in sort_by_start(results['today'].items)]

    context = {
        'stats': {
            'total_courses': results['courses'].total,
            'total_departments': results['departments'].total,
            'total_complaints': results['complaints'].total,
        },
        'today_label': DayOfWeek(today).label,
        'today_classes': today_classes,
        'quick_actions': QUICK_ACTIONS,
        'admin_actions': ADMIN_ACTIONS if user.is_admin else [],
    }
    return htmx_render(request, 'core/dashboard.html', 'core/partials/dashboard_content.html', context)
