"""Complaint views: submit, track and (for admins) triage complaints."""
import logging

from django.contrib import messages
from django.shortcuts import render
from django.views.decorators.http import require_POST

from core import config
from core.api import fetch_concurrently
from core.choices import ComplaintStatus
from core.permissions import admin_required, login_required
from core.utils import htmx_render, mutation_response
from .forms import ComplaintForm

logger = logging.getLogger(__name__)


def _departments(api):
    response = api.get_departments(limit=config.CHOICE_LIST_LIMIT)
    if not response.success:
        logger.warning(f"Could not load departments for complaint form: {response.error}")
    return response.items


def status_counts(complaints):
    counts = {status: 0 for status in ComplaintStatus.values}
    for complaint in complaints:
        status = complaint.get('status')
        if status in counts:
            counts[status] += 1
    return counts


@login_required
def index(request):
    """
    Complaint list and submission form.

    Admins see every complaint and can filter by status; everyone else
    sees the complaints they submitted.
    """
    user = request.api_user
    api = request.api
    status_filter = request.GET.get('status', '')
    if status_filter not in ComplaintStatus.values:
        status_filter = ''

    def load_complaints():
        if user.is_admin:
            return api.get_complaints(status=status_filter, limit=config.COMPLAINTS_PAGE_SIZE)
        return api.get_my_complaints()

    results = fetch_concurrently(complaints=load_complaints, departments=lambda: _departments(api))
    response = results['complaints']
    complaints = response.items

    context = {
        'complaints': complaints,
        'error': '' if response.success else response.error_message('Failed to load complaints'),
        'counts': status_counts(complaints),
        'status_filter': status_filter,
        'status_choices': ComplaintStatus.choices,
        'form': ComplaintForm(departments=results['departments'], user=user),
        'active_tab': 'complaints',
    }

    return htmx_render(
        request,
        'complaints/index.html',
        'complaints/partials/complaints_content.html',
        context
    )


@login_required
def complaint_create(request):
    """Submit a complaint."""
    departments = _departments(request.api)

    if request.method == 'POST':
        form = ComplaintForm(request.POST, departments=departments)
        if form.is_valid():
            response = request.api.create_complaint(form.to_payload())
            if response.success:
                messages.success(request, 'Your complaint has been submitted successfully.')
                return mutation_response(request, 'complaintsChanged', 'complaints:index')
            messages.error(request, response.error_message('Failed to submit complaint'))
    else:
        form = ComplaintForm(departments=departments, user=request.api_user)

    context = {'form': form}

    if request.htmx:
        return render(request, 'complaints/partials/complaint_form.html', context)
    return render(request, 'complaints/complaint_form.html', context)


@admin_required
@require_POST
def complaint_status(request, complaint_id):
    """Move a complaint to another status."""
    status = request.POST.get('status', '')
    if status not in ComplaintStatus.values:
        messages.error(request, 'Invalid complaint status.')
        return mutation_response(request, 'complaintsChanged', 'complaints:index')

    response = request.api.update_complaint_status(complaint_id, status)
    if response.success:
        label = status.lower().replace('_', ' ')
        messages.success(request, f'Complaint status updated to {label}')
    else:
        messages.error(request, response.error_message('Failed to update status'))

    return mutation_response(request, 'complaintsChanged', 'complaints:index')
