from django.urls import path
from . import views

app_name = 'security'

urlpatterns = [
    path('events/', views.event_list, name='event-list'),
    path('events/<int:event_id>/resolve/', views.resolve, name='event-resolve'),
    path('metrics/', views.metrics, name='metrics'),
    path('blocked-ips/', views.blocked_ips, name='blocked-ips'),
    path('blocked-ips/unblock/', views.unblock, name='unblock-ip'),
]
