from django.urls import path
from . import views

app_name = 'academics'

urlpatterns = [
    # Courses
    path('courses/', views.courses, name='courses'),
    path('courses/create/', views.course_create, name='course_create'),
    path('courses/bulk-upload/', views.courses_bulk_upload, name='courses_bulk_upload'),
    path('courses/bulk-upload/template/', views.courses_template, name='courses_template'),
    path('courses/export/', views.courses_export, name='courses_export'),

    # Departments
    path('departments/', views.departments, name='departments'),
    path('departments/create/', views.department_create, name='department_create'),
    path('departments/bulk-upload/', views.departments_bulk_upload, name='departments_bulk_upload'),
    path('departments/bulk-upload/template/', views.departments_template, name='departments_template'),
    path('departments/<str:code>/', views.department_detail, name='department_detail'),

    # Schedules
    path('schedule/', views.schedules, name='schedules'),
    path('schedule/create/', views.schedule_create, name='schedule_create'),
    path('schedule/bulk-upload/', views.schedules_bulk_upload, name='schedules_bulk_upload'),
    path('schedule/bulk-upload/template/', views.schedules_template, name='schedules_template'),
    path('schedule/export/', views.schedules_export, name='schedules_export'),
]
