from django.urls import path
from . import views

app_name = 'donors'

urlpatterns = [
    path('me/', views.my_profile, name='my-profile'),
    path('nearby/', views.nearby_donors, name='nearby'),
]
