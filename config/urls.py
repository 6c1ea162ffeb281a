from django.conf import settings
from django.urls import path, include


urlpatterns = [
    path('', include('core.urls')),
    path('', include('accounts.urls')),
    path('', include('academics.urls')),
    path('complaints/', include('complaints.urls')),
    path('admin/', include('administration.urls')),
]

if settings.DEBUG:
    urlpatterns += [
        path("__reload__/", include("django_browser_reload.urls")),
    ]
