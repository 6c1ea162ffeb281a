from django.urls import path
from . import views

app_name = 'administration'

urlpatterns = [
    # Users
    path('users/', views.users, name='users'),

    # Venues
    path('venues/', views.venues, name='venues'),
    path('venues/create/', views.venue_create, name='venue_create'),
    path('venues/<str:venue_id>/edit/', views.venue_edit, name='venue_edit'),
    path('venues/<str:venue_id>/delete/', views.venue_delete, name='venue_delete'),

    # Academic sessions
    path('academic-sessions/', views.academic_sessions, name='academic_sessions'),
    path('academic-sessions/create/', views.academic_session_create, name='academic_session_create'),
    path('academic-sessions/<str:session_id>/edit/', views.academic_session_edit, name='academic_session_edit'),
    path('academic-sessions/<str:session_id>/activate/', views.academic_session_activate, name='academic_session_activate'),
    path('academic-sessions/<str:session_id>/delete/', views.academic_session_delete, name='academic_session_delete'),

    # Exams
    path('exams/', views.exams, name='exams'),
    path('exams/create/', views.exam_create, name='exam_create'),
    path('exams/<str:exam_id>/edit/', views.exam_edit, name='exam_edit'),
    path('exams/<str:exam_id>/delete/', views.exam_delete, name='exam_delete'),

    # Verification codes
    path('verification-codes/', views.verification_codes, name='verification_codes'),
    path('verification-codes/create/', views.verification_code_create, name='verification_code_create'),
    path('verification-codes/<str:code_id>/toggle/', views.verification_code_toggle, name='verification_code_toggle'),
    path('verification-codes/<str:code_id>/delete/', views.verification_code_delete, name='verification_code_delete'),
]
