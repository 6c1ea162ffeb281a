"""Exam scheduling views."""
import logging

from django.contrib import messages
from django.shortcuts import render
from django.views.decorators.http import require_POST

from core import config
from core.api import fetch_concurrently
from core.choices import Semester
from core.permissions import admin_required
from core.utils import htmx_render, mutation_response
from ..forms import ExamForm
from .base import find_record, finish_mutation, missing_record

logger = logging.getLogger(__name__)

EXAM_CONFLICT_ERROR = 'Failed to schedule exam. Check conflicts like capacity or ICT venue.'


def _form_sources(api):
    """Courses and venues for the exam form dropdowns, fetched together."""
    results = fetch_concurrently(
        courses=lambda: api.get_courses(limit=config.CHOICE_LIST_LIMIT),
        venues=lambda: api.get_venues(page=1, limit=100),
    )
    for name, response in results.items():
        if not response.success:
            logger.warning(f"Could not load {name} for exam form: {response.error}")
    return results['courses'].items, results['venues'].items


@admin_required
def exams(request):
    """Scheduled exams, optionally filtered by semester, with course and venue names resolved."""
    semester = request.GET.get('semester', '')
    if semester not in Semester.values:
        semester = ''
    api = request.api

    results = fetch_concurrently(
        exams=lambda: api.get_exams(semester=semester, limit=config.EXAMS_PAGE_SIZE),
        courses=lambda: api.get_courses(limit=config.CHOICE_LIST_LIMIT),
        venues=lambda: api.get_venues(page=1, limit=100),
    )
    response = results['exams']
    course_names = {c.get('code'): c.get('name', '') for c in results['courses'].items}
    venue_names = {str(v.get('id')): v.get('name', '') for v in results['venues'].items}

    exam_list = sorted(
        response.items,
        key=lambda e: ((e.get('date') or '')[:10], e.get('startTime') or '')
    )
    for exam in exam_list:
        course = exam.get('course') or {}
        venue = exam.get('venue') or {}
        exam['course_name'] = course.get('name') or course_names.get(exam.get('courseCode'), '')
        exam['venue_name'] = venue.get('name') or venue_names.get(str(exam.get('venueId')), '')

    context = {
        'exams': exam_list,
        'error': '' if response.success else response.error_message('Failed to load exams'),
        'semester': semester,
        'semester_choices': Semester.choices,
        'active_tab': 'exams',
    }

    return htmx_render(
        request,
        'administration/exams.html',
        'administration/partials/exams_content.html',
        context
    )


def _exam_form_page(request, form, action, exam=None):
    context = {'form': form, 'action': action, 'exam': exam}

    if request.htmx:
        return render(request, 'administration/partials/exam_form.html', context)
    return render(request, 'administration/exam_form.html', context)


@admin_required
def exam_create(request):
    """Schedule an exam. Capacity and venue conflicts are checked by the backend."""
    courses, venues = _form_sources(request.api)

    if request.method == 'POST':
        form = ExamForm(request.POST, courses=courses, venues=venues)
        if form.is_valid():
            response = request.api.create_exam(form.to_payload())
            if response.success:
                messages.success(request, 'Exam scheduled successfully.')
                return mutation_response(request, 'examsChanged', 'administration:exams')
            messages.error(request, response.error_message(EXAM_CONFLICT_ERROR))
    else:
        form = ExamForm(courses=courses, venues=venues)

    return _exam_form_page(request, form, 'Schedule')


@admin_required
def exam_edit(request, exam_id):
    """Reschedule an exam."""
    api = request.api
    results = fetch_concurrently(
        exams=lambda: api.get_exams(limit=config.EXAMS_PAGE_SIZE),
        sources=lambda: _form_sources(api),
    )
    exam = find_record(results['exams'].items, exam_id)
    if exam is None:
        return missing_record(request, 'Exam', 'administration:exams')
    courses, venues = results['sources']

    if request.method == 'POST':
        form = ExamForm(request.POST, courses=courses, venues=venues)
        if form.is_valid():
            response = api.update_exam(exam_id, form.to_payload())
            if response.success:
                messages.success(request, 'Exam updated successfully.')
                return mutation_response(request, 'examsChanged', 'administration:exams')
            messages.error(request, response.error_message(EXAM_CONFLICT_ERROR))
    else:
        form = ExamForm(initial=ExamForm.initial_from(exam), courses=courses, venues=venues)

    return _exam_form_page(request, form, 'Edit', exam)


@admin_required
@require_POST
def exam_delete(request, exam_id):
    """Cancel an exam."""
    response = request.api.delete_exam(exam_id)
    return finish_mutation(
        request, response,
        'Exam deleted successfully.', 'Failed to cancel exam',
        'examsChanged', 'administration:exams',
    )
