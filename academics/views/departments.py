"""Department views."""
import logging

from django.contrib import messages
from django.shortcuts import redirect, render

from core import config
from core.permissions import admin_required
from core.utils import htmx_render, mutation_response
from ..forms import DepartmentForm
from ..timetable import group_by_day
from .base import (
    DEPARTMENT_FILTERS, bulk_upload, get_filters, get_page_number,
    pagination_context, template_download, with_course_labels,
)

logger = logging.getLogger(__name__)


def departments(request):
    """List departments with search."""
    filters = get_filters(request, DEPARTMENT_FILTERS)
    page_number = get_page_number(request)

    response = request.api.get_departments(
        page=page_number, limit=config.DEPARTMENTS_PAGE_SIZE, **filters
    )
    page = response.page

    context = {
        'departments': page.items if page else [],
        'error': '' if response.success else response.error_message('Failed to load departments'),
        'filters': filters,
        'active_tab': 'departments',
        **pagination_context(page, page_number),
    }

    return htmx_render(
        request,
        'academics/departments.html',
        'academics/partials/departments_content.html',
        context
    )


def department_detail(request, code):
    """Department with its courses and their weekly schedule."""
    response = request.api.get_department_full_details(code)
    if not response.success or not isinstance(response.data, dict):
        logger.warning(f"Department {code} not available: {response.error}")
        messages.error(request, response.error_message(f'Department "{code}" could not be loaded.'))
        return redirect('academics:departments')

    department = response.data.get('department') or response.data
    department_courses = response.data.get('courses') or department.get('courses') or []

    schedules = []
    for course in department_courses:
        for schedule in course.get('schedules') or []:
            schedules.append({'course': course, 'courseCode': course.get('code'), **schedule})

    context = {
        'department': department,
        'courses': [with_course_labels(c) for c in department_courses],
        'schedule_days': group_by_day(schedules),
        'total_credits': sum(c.get('credits') or 0 for c in department_courses),
        'active_tab': 'departments',
    }
    return render(request, 'academics/department_detail.html', context)


@admin_required
def department_create(request):
    """Create a new department."""
    if request.method == 'POST':
        form = DepartmentForm(request.POST)
        if form.is_valid():
            response = request.api.create_department(form.to_payload())
            if response.success:
                messages.success(request, f'Department "{form.cleaned_data["name"]}" created successfully.')
                return mutation_response(request, 'departmentsChanged', 'academics:departments')
            messages.error(request, response.error_message('Failed to create department'))
    else:
        form = DepartmentForm()

    context = {'form': form, 'action': 'Create'}

    if request.htmx:
        return render(request, 'academics/partials/department_form.html', context)
    return render(request, 'academics/department_form.html', context)


@admin_required
def departments_bulk_upload(request):
    return bulk_upload(
        request,
        request.api.upload_departments_bulk,
        'departments',
        'academics:departments',
        'academics:departments_template',
    )


@admin_required
def departments_template(request):
    return template_download(
        request,
        request.api.get_departments_bulk_template(),
        'departments_template.csv',
        'academics:departments_bulk_upload',
    )
