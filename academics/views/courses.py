"""Course views: list, create, bulk upload and export."""
import logging

from django.contrib import messages
from django.shortcuts import redirect, render

from core import config
from core.api import ApiError, SessionExpired, fetch_all, fetch_concurrently
from core.choices import Level, Semester
from core.permissions import login_required, staff_required
from core.ratelimit import ratelimit
from core.utils import htmx_render, mutation_response
from ..exporters import COURSE_EXPORT_FORMATS, export_courses
from ..forms import CourseForm
from .base import (
    COURSE_FILTERS, bulk_upload, choice_list, dated_filename, file_response,
    get_filters, get_page_number, pagination_context, template_download,
    with_course_labels,
)

logger = logging.getLogger(__name__)


def courses(request):
    """Browse courses with search and filters."""
    filters = get_filters(request, COURSE_FILTERS)
    page_number = get_page_number(request)
    api = request.api

    results = fetch_concurrently(
        courses=lambda: api.get_courses(page=page_number, limit=config.COURSES_PAGE_SIZE, **filters),
        departments=lambda: api.get_departments(limit=config.CHOICE_LIST_LIMIT),
    )
    response = results['courses']
    page = response.page

    context = {
        'courses': [with_course_labels(c) for c in page.items] if page else [],
        'error': '' if response.success else response.error_message('Failed to load courses'),
        'filters': filters,
        'departments': choice_list(results['departments'], 'department'),
        'level_choices': Level.choices,
        'semester_choices': Semester.choices,
        'export_formats': COURSE_EXPORT_FORMATS,
        'active_tab': 'courses',
        **pagination_context(page, page_number),
    }

    return htmx_render(
        request,
        'academics/courses.html',
        'academics/partials/courses_content.html',
        context
    )


@staff_required
def course_create(request):
    """Create a new course."""
    departments = choice_list(
        request.api.get_departments(limit=config.CHOICE_LIST_LIMIT), 'department'
    )

    if request.method == 'POST':
        form = CourseForm(request.POST, departments=departments)
        if form.is_valid():
            response = request.api.create_course(form.to_payload())
            if response.success:
                messages.success(request, f'Course "{form.cleaned_data["code"]}" created successfully.')
                return mutation_response(request, 'coursesChanged', 'academics:courses')
            messages.error(request, response.error_message('Failed to create course'))
    else:
        form = CourseForm(departments=departments)

    context = {'form': form, 'action': 'Create'}

    if request.htmx:
        return render(request, 'academics/partials/course_form.html', context)
    return render(request, 'academics/course_form.html', context)


@staff_required
def courses_bulk_upload(request):
    return bulk_upload(
        request,
        request.api.upload_courses_bulk,
        'courses',
        'academics:courses',
        'academics:courses_template',
    )


@staff_required
def courses_template(request):
    return template_download(
        request,
        request.api.get_courses_bulk_template(),
        'courses_template.csv',
        'academics:courses_bulk_upload',
    )


@login_required
@ratelimit(key='user', rate='10/m')
def courses_export(request):
    """Export every course matching the current filters as XLSX or CSV."""
    fmt = request.GET.get('format', 'xlsx').lower()
    if fmt not in COURSE_EXPORT_FORMATS:
        messages.error(request, f'Unsupported export format: {fmt}')
        return redirect('academics:courses')

    filters = get_filters(request, COURSE_FILTERS)

    try:
        course_list = fetch_all(request.api.get_courses, **filters)
    except SessionExpired:
        raise
    except ApiError as e:
        logger.error(f"Course export failed while fetching courses: {e.message}")
        messages.error(request, f'Export failed: {e.message}')
        return redirect('academics:courses')

    content, content_type, extension = export_courses(course_list, fmt)
    return file_response(content, content_type, dated_filename('courses', extension))
