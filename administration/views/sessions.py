"""Academic session management views."""
from django.contrib import messages
from django.shortcuts import render
from django.views.decorators.http import require_POST

from core.api import fetch_concurrently
from core.context_processors import clear_academic_session_cache
from core.permissions import admin_required
from core.utils import htmx_render, mutation_response
from ..forms import AcademicSessionForm
from .base import find_record, finish_mutation, missing_record


@admin_required
def academic_sessions(request):
    """List academic sessions with the active one highlighted."""
    api = request.api
    results = fetch_concurrently(
        sessions=lambda: api.get_academic_sessions(),
        active=api.get_active_academic_session,
    )
    response = results['sessions']
    active = results['active'].data if results['active'].success else None
    active_id = active.get('id') if isinstance(active, dict) else None

    session_list = sorted(response.items, key=lambda s: s.get('startDate') or '', reverse=True)
    for session in session_list:
        session['is_current'] = bool(session.get('isActive')) or session.get('id') == active_id

    context = {
        'sessions': session_list,
        'active_session': active,
        'error': '' if response.success else response.error_message('Failed to load academic sessions'),
        'active_tab': 'academic_sessions',
    }

    return htmx_render(
        request,
        'administration/academic_sessions.html',
        'administration/partials/academic_sessions_content.html',
        context
    )


def _session_form_page(request, form, action, session=None):
    context = {'form': form, 'action': action, 'session': session}

    if request.htmx:
        return render(request, 'administration/partials/academic_session_form.html', context)
    return render(request, 'administration/academic_session_form.html', context)


@admin_required
def academic_session_create(request):
    """Create an academic session."""
    if request.method == 'POST':
        form = AcademicSessionForm(request.POST)
        if form.is_valid():
            response = request.api.create_academic_session(form.to_payload())
            if response.success:
                messages.success(request, 'Academic session created successfully.')
                return mutation_response(request, 'sessionsChanged', 'administration:academic_sessions')
            messages.error(request, response.error_message('Failed to create session'))
    else:
        form = AcademicSessionForm()

    return _session_form_page(request, form, 'Create')


@admin_required
def academic_session_edit(request, session_id):
    """Rename or re-date an academic session."""
    session = find_record(request.api.get_academic_sessions().items, session_id)
    if session is None:
        return missing_record(request, 'Academic session', 'administration:academic_sessions')

    if request.method == 'POST':
        form = AcademicSessionForm(request.POST)
        if form.is_valid():
            response = request.api.update_academic_session(session_id, form.to_payload())
            if response.success:
                clear_academic_session_cache(request)
                messages.success(request, 'Academic session updated successfully.')
                return mutation_response(request, 'sessionsChanged', 'administration:academic_sessions')
            messages.error(request, response.error_message('Failed to update session'))
    else:
        form = AcademicSessionForm(initial=AcademicSessionForm.initial_from(session))

    return _session_form_page(request, form, 'Edit', session)


@admin_required
@require_POST
def academic_session_activate(request, session_id):
    """Make a session the active one."""
    response = request.api.activate_academic_session(session_id)
    clear_academic_session_cache(request)
    return finish_mutation(
        request, response,
        'Active academic session updated.', 'Failed to activate session',
        'sessionsChanged', 'administration:academic_sessions',
    )


@admin_required
@require_POST
def academic_session_delete(request, session_id):
    response = request.api.delete_academic_session(session_id)
    clear_academic_session_cache(request)
    return finish_mutation(
        request, response,
        'Academic session deleted.', 'Failed to delete session',
        'sessionsChanged', 'administration:academic_sessions',
    )
