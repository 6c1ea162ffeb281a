from django.urls import path
from . import views

app_name = 'complaints'

urlpatterns = [
    path('', views.index, name='index'),
    path('create/', views.complaint_create, name='create'),
    path('<str:complaint_id>/status/', views.complaint_status, name='status'),
]
