"""Verification codes gate staff self-registration."""
from datetime import timezone as dt_timezone

from django.contrib import messages
from django.shortcuts import render
from django.utils import timezone
from django.utils.dateparse import parse_datetime
from django.views.decorators.http import require_POST

from core.permissions import admin_required
from core.utils import htmx_render, mutation_response
from ..forms import VerificationCodeForm
from .base import finish_mutation


def is_expired(code, now=None):
    expires_at = parse_datetime(code.get('expiresAt') or '')
    if expires_at is None:
        return False
    if timezone.is_naive(expires_at):
        expires_at = timezone.make_aware(expires_at, dt_timezone.utc)
    return expires_at < (now or timezone.now())


def code_status(code, now=None):
    """'inactive', 'expired', 'used_up' or 'active'."""
    if not code.get('isActive'):
        return 'inactive'
    if is_expired(code, now):
        return 'expired'
    max_uses = code.get('maxUses')
    if max_uses and (code.get('currentUses') or 0) >= max_uses:
        return 'used_up'
    return 'active'


@admin_required
def verification_codes(request):
    """List verification codes with their usage."""
    response = request.api.get_verification_codes()
    now = timezone.now()

    codes = response.items
    for code in codes:
        code['status'] = code_status(code, now)

    context = {
        'codes': codes,
        'error': '' if response.success else response.error_message('Failed to load verification codes'),
        'active_count': sum(1 for c in codes if c['status'] == 'active'),
        'expired_count': sum(1 for c in codes if c['status'] == 'expired'),
        'active_tab': 'verification_codes',
    }

    return htmx_render(
        request,
        'administration/verification_codes.html',
        'administration/partials/verification_codes_content.html',
        context
    )


@admin_required
def verification_code_create(request):
    """Issue a new verification code."""
    if request.method == 'POST':
        form = VerificationCodeForm(request.POST)
        if form.is_valid():
            response = request.api.create_verification_code(form.to_payload())
            if response.success:
                messages.success(request, 'Verification code created successfully')
                return mutation_response(request, 'codesChanged', 'administration:verification_codes')
            messages.error(request, response.error_message('Failed to create verification code'))
    else:
        form = VerificationCodeForm()

    context = {'form': form}

    if request.htmx:
        return render(request, 'administration/partials/verification_code_form.html', context)
    return render(request, 'administration/verification_code_form.html', context)


@admin_required
@require_POST
def verification_code_toggle(request, code_id):
    """Activate or deactivate a code; the form posts the code's current state."""
    is_active = request.POST.get('is_active', '').lower() in ('1', 'true', 'on')
    response = request.api.update_verification_code(code_id, {'isActive': not is_active})
    return finish_mutation(
        request, response,
        f"Verification code {'deactivated' if is_active else 'activated'}",
        'Failed to update verification code',
        'codesChanged', 'administration:verification_codes',
    )


@admin_required
@require_POST
def verification_code_delete(request, code_id):
    response = request.api.delete_verification_code(code_id)
    return finish_mutation(
        request, response,
        'Verification code deleted successfully', 'Failed to delete verification code',
        'codesChanged', 'administration:verification_codes',
    )
