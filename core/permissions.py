"""Access decorators for views that act on behalf of a signed-in user."""
from functools import wraps
from urllib.parse import urlencode

from django.contrib import messages
from django.shortcuts import redirect
from django.urls import reverse


def _redirect_to_login(request):
    login_url = reverse('accounts:login')
    return redirect(f"{login_url}?{urlencode({'next': request.get_full_path()})}")


def is_admin(user):
    """Check if user is a CourseFlow admin."""
    return bool(user) and user.is_admin


def is_staff_member(user):
    """Check if user is an admin, lecturer or head of department."""
    return bool(user) and user.is_staff_member


def login_required(view_func):
    """Decorator to require a signed-in CourseFlow user."""
    @wraps(view_func)
    def _wrapped_view(request, *args, **kwargs):
        if not request.api_user:
            return _redirect_to_login(request)
        return view_func(request, *args, **kwargs)
    return _wrapped_view


def admin_required(view_func):
    """Decorator to require admin access."""
    @wraps(view_func)
    def _wrapped_view(request, *args, **kwargs):
        if not request.api_user:
            return _redirect_to_login(request)
        if not is_admin(request.api_user):
            messages.error(request, "You need admin privileges to access this page.")
            return redirect('core:dashboard')
        return view_func(request, *args, **kwargs)
    return _wrapped_view


def staff_required(view_func):
    """Decorator to require admin, lecturer or HOD access."""
    @wraps(view_func)
    def _wrapped_view(request, *args, **kwargs):
        if not request.api_user:
            return _redirect_to_login(request)
        if not is_staff_member(request.api_user):
            messages.error(request, "You don't have permission to access this page.")
            return redirect('core:dashboard')
        return view_func(request, *args, **kwargs)
    return _wrapped_view
