from django.urls import path
from . import views

app_name = 'inventory'

urlpatterns = [
    path('units/', views.units, name='units'),
    path('reserve/', views.reserve, name='reserve'),
    path('release/', views.release, name='release'),
    path('process-expired/', views.process_expired, name='process-expired'),
    path('stats/', views.stats, name='stats'),
    path('transactions/', views.transactions, name='transactions'),
    path('alerts/', views.inventory_alerts, name='alerts'),
]
