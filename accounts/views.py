import logging

from django.contrib import messages
from django.shortcuts import render, redirect
from django.utils.http import url_has_allowed_host_and_scheme
from django.views.decorators.http import require_POST

from core.permissions import login_required
from core.ratelimit import ratelimit
from core.session import login_session, logout_session, update_session_user
from .forms import LoginForm, RegisterForm

logger = logging.getLogger(__name__)


def _safe_next(request):
    next_url = request.POST.get('next') or request.GET.get('next')
    if next_url and url_has_allowed_host_and_scheme(
        next_url, allowed_hosts={request.get_host()}, require_https=request.is_secure()
    ):
        return next_url
    return None


def _sign_in(request, response):
    """Store the auth payload; returns the SessionUser or None on a bad payload."""
    try:
        return login_session(request, response.data or {})
    except ValueError:
        logger.error("Backend auth response had no token")
        messages.error(request, 'Sign in failed: the server returned an incomplete response.')
        return None


@ratelimit(key='ip', rate='20/m', method='POST')
def login(request):
    """Sign in with email and password."""
    if request.api_user:
        return redirect('core:dashboard')

    if request.method == 'POST':
        form = LoginForm(request.POST)
        if form.is_valid():
            response = request.api.login(form.cleaned_data['email'], form.cleaned_data['password'])
            if response.success:
                user = _sign_in(request, response)
                if user:
                    messages.success(request, f'Welcome back, {user.display_name}!')
                    return redirect(_safe_next(request) or 'core:dashboard')
            else:
                messages.error(request, response.error_message('Invalid credentials'))
    else:
        form = LoginForm()

    return render(request, 'accounts/login.html', {
        'form': form,
        'next': _safe_next(request) or '',
    })


@ratelimit(key='ip', rate='10/m', method='POST')
def register(request):
    """Create an account and sign in."""
    if request.api_user:
        return redirect('core:dashboard')

    if request.method == 'POST':
        form = RegisterForm(request.POST)
        if form.is_valid():
            response = request.api.register(form.to_payload())
            if response.success:
                user = _sign_in(request, response)
                if user:
                    messages.success(request, f'Welcome to CourseFlow, {user.display_name}!')
                    return redirect('core:dashboard')
            else:
                messages.error(request, response.error_message('Registration failed'))
    else:
        form = RegisterForm()

    return render(request, 'accounts/register.html', {'form': form})


@require_POST
def logout(request):
    logout_session(request)
    messages.success(request, 'You have been successfully logged out')
    return redirect('accounts:login')


@login_required
def profile(request):
    """Show the signed-in user, refreshed from the backend."""
    response = request.api.get_current_user()
    if response.status_code == 401:
        # SessionExpired is handled by ApiSessionMiddleware
        response.raise_for_error()

    user = request.api_user
    if response.success and isinstance(response.data, dict):
        user = update_session_user(request, response.data.get('user') or response.data)
    else:
        messages.warning(request, response.error_message('Could not refresh your profile.'))

    return render(request, 'accounts/profile.html', {'profile': user})
