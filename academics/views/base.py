"""Shared helpers for academics views."""
import logging

from django.contrib import messages
from django.http import HttpResponse
from django.shortcuts import redirect, render
from django.utils import timezone

from core import config
from core.utils import mutation_response
from ..forms import BulkUploadForm

logger = logging.getLogger(__name__)

# Query-string names are the backend's, so filters pass straight through
COURSE_FILTERS = ('search', 'departmentCode', 'level', 'semester')
DEPARTMENT_FILTERS = ('search',)
SCHEDULE_FILTERS = ('departmentCode', 'level', 'dayOfWeek', 'semester')


def get_filters(request, names):
    """Non-empty GET values for the given filter names."""
    filters = {}
    for name in names:
        value = request.GET.get(name, '').strip()
        if value:
            filters[name] = value
    return filters


def get_page_number(request):
    try:
        return max(int(request.GET.get('page', 1)), 1)
    except (TypeError, ValueError):
        return 1


def pagination_context(page, page_number):
    """Template context for prev/next links from an api Page (or None)."""
    total_pages = page.total_pages if page else 0
    return {
        'page_number': page_number,
        'total_pages': total_pages,
        'total_count': page.total if page else 0,
        'has_previous': page_number > 1,
        'has_next': page_number < total_pages,
        'previous_page': page_number - 1,
        'next_page': page_number + 1,
    }


def with_course_labels(course):
    """Copy of a course dict with flat department_label and lecturer_label keys."""
    department = course.get('department') or {}
    lecturer = course.get('lecturer') or {}
    return {
        **course,
        'department_label': department.get('name') or course.get('departmentCode') or '',
        'lecturer_label': lecturer.get('name') or lecturer.get('email') or course.get('lecturerEmail') or '',
    }


def choice_list(response, label):
    """Items of a dropdown source list, logging (not failing) on error."""
    if not response.success:
        logger.warning(f"Could not load {label} choices: {response.error}")
        return []
    return response.items


def file_response(content, content_type, filename):
    response = HttpResponse(content, content_type=content_type)
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response


def dated_filename(stem, extension):
    return f"{stem}_{timezone.now().strftime('%Y%m%d')}.{extension}"


def template_download(request, response, filename, redirect_to):
    """Stream a backend CSV template, or go back with an error."""
    if not response.success:
        messages.error(request, response.error_message('Failed to download template'))
        return redirect(redirect_to)
    return file_response(response.data or '', 'text/csv', filename)


def upload_result_message(response, noun):
    """Success text for a bulk upload, using the backend's counts when present."""
    data = response.data if isinstance(response.data, dict) else {}
    created = data.get('created', data.get('successCount'))
    failed = data.get('failed', data.get('failedCount', data.get('errorCount')))

    if created is None:
        return response.message or f'{noun.capitalize()} uploaded successfully.'

    message = f'{created} {noun} created.'
    if failed:
        message += f' {failed} rows failed.'
    return message


def upload_errors(response):
    """Row-level errors reported by a bulk upload, if any."""
    data = response.data if isinstance(response.data, dict) else {}
    errors = data.get('errors') or []
    return [str(error.get('message', error)) if isinstance(error, dict) else str(error) for error in errors]


def max_upload_mb():
    return config.MAX_UPLOAD_SIZE // (1024 * 1024)


def bulk_upload(request, upload, noun, list_url, template_url):
    """
    Shared bulk CSV upload flow for courses, departments and schedules.

    Args:
        upload: client method taking the uploaded file
        noun: plural resource name for messages, e.g. 'courses'
        list_url: url name to return to after a successful upload
        template_url: url name of the CSV template download
    """
    if request.method == 'POST':
        form = BulkUploadForm(request.POST, request.FILES)
        if form.is_valid():
            response = upload(form.cleaned_data['file'])
            if response.success:
                messages.success(request, upload_result_message(response, noun))
                for error in upload_errors(response)[:10]:
                    messages.warning(request, error)
                return mutation_response(request, f'{noun}Changed', list_url)
            logger.warning(f"Bulk {noun} upload failed: {response.error}")
            messages.error(request, response.error_message('Upload failed'))
    else:
        form = BulkUploadForm()

    context = {
        'form': form,
        'noun': noun,
        'list_url': list_url,
        'template_url': template_url,
        'max_upload_mb': max_upload_mb(),
    }
    if request.htmx:
        return render(request, 'academics/partials/bulk_upload_form.html', context)
    return render(request, 'academics/bulk_upload.html', context)
