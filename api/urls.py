# api/urls.py
from django.urls import include, path

from inventory import views as inventory_views
from . import views

app_name = 'api'

urlpatterns = [
    path('auth/', include('accounts.urls')),
    path('blood-requests/', include('blood_requests.urls')),
    path('donors/', include('donors.urls')),
    path('inventory/', include('inventory.urls')),
    path('location/blood-banks/', inventory_views.nearby_blood_banks, name='nearby-blood-banks'),
    path('notifications/', include('notifications.urls')),
    path('admin/security/', include('security.urls')),

    path('health/', views.health, name='health'),
    path('stats/', views.dashboard_stats, name='dashboard-stats'),
]

# GET  /api/health/                              - health check
# POST /api/auth/register/ , login/ , token/refresh/
# GET/POST /api/blood-requests/                  - priority list / create
# GET  /api/blood-requests/{id}/                 - detail (?include_history=true)
# POST /api/blood-requests/{id}/status/          - workflow transition
# POST /api/blood-requests/{id}/respond/         - donor response
# GET  /api/blood-requests/{id}/responses/ , matches/
# GET  /api/donors/nearby/ ; GET/PATCH /api/donors/me/
# /api/inventory/units/ , reserve/ , release/ , process-expired/ , stats/
# GET  /api/location/blood-banks/
# /api/notifications/ , send/ , preferences/ , process/ , {id}/read/
# /api/admin/security/events/ , metrics/ , events/{id}/resolve/
