"""Venue management views."""
from django.contrib import messages
from django.shortcuts import render
from django.views.decorators.http import require_POST

from core.permissions import admin_required
from core.utils import htmx_render, mutation_response
from ..forms import VenueForm
from .base import find_record, finish_mutation, missing_record


@admin_required
def venues(request):
    """List all venues."""
    response = request.api.get_venues(page=1, limit=100)
    venue_list = response.items

    context = {
        'venues': venue_list,
        'error': '' if response.success else response.error_message('Failed to load venues'),
        'total_venues': len(venue_list),
        'ict_venues': sum(1 for v in venue_list if v.get('isIct')),
        'total_capacity': sum(v.get('capacity') or 0 for v in venue_list),
        'active_tab': 'venues',
    }

    return htmx_render(
        request,
        'administration/venues.html',
        'administration/partials/venues_content.html',
        context
    )


def _venue_form_page(request, form, action, venue=None):
    context = {'form': form, 'action': action, 'venue': venue}

    if request.htmx:
        return render(request, 'administration/partials/venue_form.html', context)
    return render(request, 'administration/venue_form.html', context)


@admin_required
def venue_create(request):
    """Create a new venue."""
    if request.method == 'POST':
        form = VenueForm(request.POST)
        if form.is_valid():
            response = request.api.create_venue(form.to_payload())
            if response.success:
                messages.success(request, 'Venue created successfully')
                return mutation_response(request, 'venuesChanged', 'administration:venues')
            messages.error(request, response.error_message('Failed to create venue'))
    else:
        form = VenueForm()

    return _venue_form_page(request, form, 'Create')


@admin_required
def venue_edit(request, venue_id):
    """Edit an existing venue."""
    venue = find_record(request.api.get_venues(page=1, limit=100).items, venue_id)
    if venue is None:
        return missing_record(request, 'Venue', 'administration:venues')

    if request.method == 'POST':
        form = VenueForm(request.POST)
        if form.is_valid():
            response = request.api.update_venue(venue_id, form.to_payload())
            if response.success:
                messages.success(request, 'Venue updated successfully')
                return mutation_response(request, 'venuesChanged', 'administration:venues')
            messages.error(request, response.error_message('Failed to update venue'))
    else:
        form = VenueForm(initial=VenueForm.initial_from(venue))

    return _venue_form_page(request, form, 'Edit', venue)


@admin_required
@require_POST
def venue_delete(request, venue_id):
    """Delete a venue."""
    response = request.api.delete_venue(venue_id)
    return finish_mutation(
        request, response,
        'Venue deleted successfully', 'Failed to delete venue',
        'venuesChanged', 'administration:venues',
    )
