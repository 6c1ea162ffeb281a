"""Shared helpers for administration views."""
from django.contrib import messages
from django.shortcuts import redirect

from core.utils import mutation_response


def find_record(items, record_id):
    """Record with the given id from a list response, or None."""
    for item in items:
        if str(item.get('id')) == str(record_id):
            return item
    return None


def missing_record(request, noun, list_url):
    messages.error(request, f'{noun} not found. It may have been deleted.')
    return redirect(list_url)


def finish_mutation(request, response, success_message, fallback_error, trigger, list_url):
    """Flash the outcome of a delete/toggle style action and return to the list."""
    if response.success:
        messages.success(request, success_message)
    else:
        messages.error(request, response.error_message(fallback_error))
    return mutation_response(request, trigger, list_url)
