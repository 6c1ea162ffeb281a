"""Schedule (timetable) views: list, create, bulk upload and export."""
import logging

from django.contrib import messages
from django.shortcuts import redirect, render

from core import config
from core.api import ApiError, SessionExpired, fetch_all, fetch_concurrently
from core.choices import DayOfWeek, Level, Semester
from core.permissions import login_required, staff_required
from core.ratelimit import ratelimit
from core.utils import htmx_render, mutation_response, safe_filename
from ..exporters import EXPORT_FORMATS, render_export
from ..forms import ScheduleForm
from ..timetable import build_timetable_grid, group_by_day
from .base import (
    SCHEDULE_FILTERS, bulk_upload, choice_list, dated_filename, file_response,
    get_filters, get_page_number, pagination_context, template_download,
)

logger = logging.getLogger(__name__)


def search_schedules(schedules, query):
    """Case-insensitive match on course code, course name or venue."""
    query = (query or '').strip().lower()
    if not query:
        return list(schedules)

    def haystack(schedule):
        course = schedule.get('course') or {}
        venue = schedule.get('venue')
        if isinstance(venue, dict):
            venue = venue.get('name')
        return ' '.join(str(part or '') for part in (
            schedule.get('courseCode'), course.get('code'), course.get('name'), venue
        )).lower()

    return [s for s in schedules if query in haystack(s)]


def export_scope(filters):
    """Short filename part describing the filters, 'all' when unfiltered."""
    parts = [filters[name] for name in SCHEDULE_FILTERS if filters.get(name)]
    return safe_filename('_'.join(parts).lower(), default='all')


def export_title(filters):
    parts = ['Timetable']
    if filters.get('departmentCode'):
        parts.append(filters['departmentCode'].upper())
    for name, choices in (('level', Level), ('semester', Semester), ('dayOfWeek', DayOfWeek)):
        value = filters.get(name)
        if value in choices.values:
            parts.append(str(choices(value).label))
    return ' - '.join(parts)


def schedules(request):
    """Weekly schedule grouped by day, with filters and local search."""
    filters = get_filters(request, SCHEDULE_FILTERS)
    query = request.GET.get('q', '').strip()
    view_mode = 'grid' if request.GET.get('view') == 'grid' else 'list'
    page_number = get_page_number(request)
    api = request.api

    results = fetch_concurrently(
        schedules=lambda: api.get_schedules(page=page_number, limit=config.SCHEDULES_PAGE_SIZE, **filters),
        departments=lambda: api.get_departments(limit=config.CHOICE_LIST_LIMIT),
    )
    response = results['schedules']
    page = response.page
    schedule_list = search_schedules(page.items if page else [], query)

    context = {
        'schedule_days': group_by_day(schedule_list),
        'schedule_count': len(schedule_list),
        'grid': build_timetable_grid(schedule_list) if view_mode == 'grid' else None,
        'view_mode': view_mode,
        'error': '' if response.success else response.error_message('Failed to load schedules'),
        'filters': filters,
        'query': query,
        'departments': choice_list(results['departments'], 'department'),
        'level_choices': Level.choices,
        'semester_choices': Semester.choices,
        'day_choices': DayOfWeek.choices,
        'export_formats': EXPORT_FORMATS,
        'active_tab': 'schedules',
        **pagination_context(page, page_number),
    }

    return htmx_render(
        request,
        'academics/schedules.html',
        'academics/partials/schedules_content.html',
        context
    )


@staff_required
def schedule_create(request):
    """Add a class meeting to the timetable."""
    courses = choice_list(request.api.get_courses(limit=config.CHOICE_LIST_LIMIT), 'course')

    if request.method == 'POST':
        form = ScheduleForm(request.POST, courses=courses)
        if form.is_valid():
            response = request.api.create_schedule(form.to_payload())
            if response.success:
                messages.success(request, f'Schedule for "{form.cleaned_data["course_code"]}" created successfully.')
                return mutation_response(request, 'schedulesChanged', 'academics:schedules')
            messages.error(request, response.error_message('Failed to create schedule'))
    else:
        form = ScheduleForm(courses=courses, initial={'day_of_week': request.GET.get('day', '')})

    context = {'form': form, 'action': 'Create'}

    if request.htmx:
        return render(request, 'academics/partials/schedule_form.html', context)
    return render(request, 'academics/schedule_form.html', context)


@staff_required
def schedules_bulk_upload(request):
    return bulk_upload(
        request,
        request.api.upload_schedules_bulk,
        'schedules',
        'academics:schedules',
        'academics:schedules_template',
    )


@staff_required
def schedules_template(request):
    return template_download(
        request,
        request.api.get_schedules_bulk_template(),
        'schedules_template.csv',
        'academics:schedules_bulk_upload',
    )


@login_required
@ratelimit(key='user', rate='10/m')
def schedules_export(request):
    """
    Export the timetable as PDF, Excel, CSV or PNG.

    Every schedule matching the list filters is fetched page by page, with
    courses fetched alongside to fill in names the schedule records omit.
    """
    fmt = request.GET.get('format', 'pdf').lower()
    if fmt not in EXPORT_FORMATS:
        messages.error(request, f'Unsupported export format: {fmt}')
        return redirect('academics:schedules')

    filters = get_filters(request, SCHEDULE_FILTERS)
    course_filters = {k: v for k, v in filters.items() if k in ('departmentCode', 'level', 'semester')}
    api = request.api

    try:
        results = fetch_concurrently(
            schedules=lambda: fetch_all(api.get_schedules, **filters),
            courses=lambda: fetch_all(api.get_courses, **course_filters),
        )
    except SessionExpired:
        raise
    except ApiError as e:
        logger.error(f"Timetable export failed while fetching data: {e.message}")
        messages.error(request, f'Export failed: {e.message}')
        return redirect('academics:schedules')

    schedule_list = search_schedules(results['schedules'], request.GET.get('q'))
    grid = build_timetable_grid(schedule_list, courses=results['courses'])
    if grid.skipped:
        logger.warning(f"Timetable export skipped {grid.skipped} schedules with a bad day or time")

    try:
        content, content_type, extension = render_export(fmt, grid, export_title(filters), request)
    except ImportError:
        logger.error("WeasyPrint not installed")
        messages.error(request, 'PDF generation is not available. WeasyPrint is not installed.')
        return redirect('academics:schedules')
    except Exception as e:
        logger.error(f"Failed to generate timetable {fmt}: {str(e)}")
        messages.error(request, f'Failed to generate the {EXPORT_FORMATS[fmt]["label"]} export.')
        return redirect('academics:schedules')

    filename = dated_filename(f'timetable_{export_scope(filters)}', extension)
    return file_response(content, content_type, filename)
