import logging
import re

from django.contrib import messages
from django.http import HttpResponse
from django.shortcuts import redirect, render

logger = logging.getLogger(__name__)

TIME_PATTERN = re.compile(r'^\s*(\d{1,2}):(\d{2})(?::(\d{2}))?')


def htmx_render(request, full_template, partial_template, context=None):
    """
    Render full template for regular requests, partial for HTMX requests.
    Progressive enhancement: works with or without JavaScript.
    """
    context = context or {}
    template = partial_template if request.htmx else full_template
    return render(request, template, context)


def mutation_response(request, trigger, redirect_to, *args, **kwargs):
    """
    Finish a successful POST.

    HTMX requests get an empty 204 with an HX-Trigger so the page can
    refresh the affected list; plain requests are redirected.
    """
    if request.htmx:
        response = HttpResponse(status=204)
        response['HX-Trigger'] = trigger
        return response
    return redirect(redirect_to, *args, **kwargs)


def flash_api_result(request, response, success_message, fallback_error):
    """Report an ApiResponse to the user. Returns response.success."""
    if response.success:
        messages.success(request, success_message)
    else:
        logger.warning(f"Backend call failed ({response.status_code}): {response.error}")
        messages.error(request, response.error_message(fallback_error))
    return response.success


def format_time(value):
    """
    Format a 24h "HH:MM" or "HH:MM:SS" string as "h:MM AM/PM".

    Unparseable input is returned unchanged.
    """
    if not value:
        return ''
    match = TIME_PATTERN.match(str(value))
    if not match:
        return value
    hour, minutes = int(match.group(1)), match.group(2)
    if hour > 23:
        return value
    suffix = 'PM' if hour >= 12 else 'AM'
    display_hour = hour % 12 or 12
    return f"{display_hour}:{minutes} {suffix}"


def humanize_choice(value):
    """Turn an enum value like IN_PROGRESS into 'In Progress'."""
    if not value:
        return ''
    return str(value).replace('_', ' ').title()


def safe_filename(value, default='export'):
    """Make a string safe for use in a Content-Disposition filename."""
    cleaned = re.sub(r'[^A-Za-z0-9._-]+', '_', str(value or '')).strip('_')
    return cleaned or default
