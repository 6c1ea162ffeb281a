"""Registered user listing."""
from core import config
from core.choices import Role
from core.permissions import admin_required
from core.utils import htmx_render


def search_users(users, query):
    query = (query or '').strip().lower()
    if not query:
        return list(users)
    return [
        u for u in users
        if query in ' '.join(str(u.get(key) or '') for key in ('name', 'email', 'matricNO')).lower()
    ]


@admin_required
def users(request):
    """All registered users, with role filter and search over name, email and matric number."""
    role = request.GET.get('role', '')
    if role not in Role.values:
        role = ''
    query = request.GET.get('search', '').strip()

    response = request.api.get_users(page=1, limit=config.USERS_PAGE_SIZE)
    all_users = response.items

    user_list = search_users(all_users, query)
    if role:
        user_list = [u for u in user_list if u.get('role') == role]

    context = {
        'users': user_list,
        'error': '' if response.success else response.error_message('Failed to load users'),
        'total_users': response.total,
        'student_count': sum(1 for u in all_users if u.get('role') == Role.STUDENT),
        'staff_count': sum(1 for u in all_users if u.get('role') in (Role.LECTURER, Role.HOD, Role.ADMIN)),
        'role': role,
        'query': query,
        'role_choices': Role.choices,
        'active_tab': 'users',
    }

    return htmx_render(
        request,
        'administration/users.html',
        'administration/partials/users_content.html',
        context
    )
