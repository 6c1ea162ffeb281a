from django import template
from django.urls import reverse, NoReverseMatch

from core.choices import Level
from core.utils import format_time as _format_time, humanize_choice as _humanize_choice

register = template.Library()


# Navigation config with role-based access
# roles: 'all', 'admin', 'staff' (admin, lecturer, HOD), 'authenticated'
NAVIGATION_CONFIG = [
    {
        'label': 'Dashboard',
        'icon': 'fa-solid fa-gauge',
        'url_name': 'core:dashboard',
        'roles': ['authenticated'],
    },
    {
        'label': 'Courses',
        'icon': 'fa-solid fa-book-open',
        'url_name': 'academics:courses',
        'roles': ['all'],
    },
    {
        'label': 'Schedule',
        'icon': 'fa-solid fa-calendar-days',
        'url_name': 'academics:schedules',
        'roles': ['all'],
    },
    {
        'label': 'Departments',
        'icon': 'fa-solid fa-building',
        'url_name': 'academics:departments',
        'roles': ['all'],
    },
    {
        'label': 'Complaints',
        'icon': 'fa-solid fa-comment-dots',
        'url_name': 'complaints:index',
        'roles': ['authenticated'],
    },
    {
        'label': 'Admin',
        'icon': 'fa-solid fa-shield-halved',
        'url_name': 'administration:users',
        'roles': ['admin'],
        'children': [
            {'label': 'Users', 'icon': 'fa-solid fa-users', 'url_name': 'administration:users'},
            {'label': 'Verification Codes', 'icon': 'fa-solid fa-key', 'url_name': 'administration:verification_codes'},
            {'label': 'Academic Sessions', 'icon': 'fa-solid fa-calendar', 'url_name': 'administration:academic_sessions'},
            {'label': 'Venues', 'icon': 'fa-solid fa-location-dot', 'url_name': 'administration:venues'},
            {'label': 'Exams', 'icon': 'fa-solid fa-file-pen', 'url_name': 'administration:exams'},
        ],
    },
]


def get_user_roles(user):
    """Get list of roles for the current user."""
    if not user:
        return []

    roles = ['authenticated']
    if user.is_admin:
        roles.append('admin')
    if user.is_staff_member:
        roles.append('staff')
    return roles


def user_has_access(user_roles, item_roles):
    """Check if user has access to a navigation item."""
    if 'all' in item_roles:
        return True
    return any(role in item_roles for role in user_roles)


def resolve_url(url_name):
    """Safely resolve URL name to URL path."""
    try:
        return reverse(url_name)
    except NoReverseMatch:
        return '#'


def is_url_active(request, url):
    """Check if the current request path matches the nav item."""
    if url == '#':
        return False
    current_path = request.path
    # Exact match when either URL or current path is root
    if url == '/' or current_path == '/':
        return current_path == url
    return current_path == url or current_path.startswith(url.rstrip('/') + '/')


def process_nav_item(item, request):
    """Process a navigation item and its children."""
    url = resolve_url(item['url_name'])

    processed = {
        'label': item['label'],
        'icon': item['icon'],
        'url': url,
        'is_active': is_url_active(request, url),
    }

    if 'children' in item:
        children = []
        for child in item['children']:
            child_url = resolve_url(child['url_name'])
            child_is_active = is_url_active(request, child_url)
            children.append({
                'label': child['label'],
                'icon': child['icon'],
                'url': child_url,
                'is_active': child_is_active,
            })
            if child_is_active:
                processed['is_active'] = True
        processed['children'] = children

    return processed


@register.simple_tag(takes_context=True)
def get_navigation_items(context):
    """
    Returns the navigation items for the top bar based on user role.
    Marks the current page as active based on the request path.
    """
    request = context.get('request')
    if not request:
        return []

    user_roles = get_user_roles(getattr(request, 'api_user', None))

    nav_items = []
    for item in NAVIGATION_CONFIG:
        item_roles = item.get('roles', ['all'])
        if user_has_access(user_roles, item_roles):
            nav_items.append(process_nav_item(item, request))

    return nav_items


@register.inclusion_tag('core/partials/stat_card.html')
def stat_card(title, value, icon, color='primary'):
    """
    Render a stat card component.
    Usage: {% stat_card "Courses" total_courses "fa-solid fa-book-open" "primary" %}
    """
    return {
        'title': title,
        'value': value,
        'icon': icon,
        'color': color,
    }


@register.filter
def format_time(value):
    """Usage: {{ schedule.startTime|format_time }} -> 8:00 AM"""
    return _format_time(value)


@register.filter
def humanize_choice(value):
    """Usage: {{ complaint.status|humanize_choice }} -> In Progress"""
    return _humanize_choice(value)


@register.filter
def level_label(value):
    """Usage: {{ course.level|level_label }} -> 100 Level"""
    try:
        return Level(value).label
    except ValueError:
        return value or ''


BADGE_CLASSES = {
    # Levels
    'LEVEL_100': 'badge-success',
    'LEVEL_200': 'badge-info',
    'LEVEL_300': 'badge-warning',
    'LEVEL_400': 'badge-accent',
    'LEVEL_500': 'badge-error',
    # Class types
    'LECTURE': 'badge-info',
    'SEMINAR': 'badge-success',
    'LAB': 'badge-secondary',
    'TUTORIAL': 'badge-warning',
    # Complaint status
    'PENDING': 'badge-warning',
    'IN_PROGRESS': 'badge-info',
    'RESOLVED': 'badge-success',
    'CLOSED': 'badge-ghost',
    # Roles
    'ADMIN': 'badge-error',
    'HOD': 'badge-accent',
    'LECTURER': 'badge-info',
    'STUDENT': 'badge-success',
}


@register.filter
def badge_class(value):
    """Usage: <span class="badge {{ course.level|badge_class }}">"""
    return BADGE_CLASSES.get(str(value or ''), 'badge-ghost')


@register.simple_tag(takes_context=True)
def query_transform(context, **kwargs):
    """
    Rebuild the current query string with some keys replaced.
    Usage: <a href="?{% query_transform page=3 %}">
    """
    request = context.get('request')
    params = request.GET.copy() if request else {}
    for key, value in kwargs.items():
        if value is None or value == '':
            params.pop(key, None)
        else:
            params[key] = value
    return params.urlencode() if hasattr(params, 'urlencode') else ''


@register.filter
def get_item(mapping, key):
    """Usage: {{ schedules_by_day|get_item:day }}"""
    if not mapping:
        return None
    return mapping.get(key)
