from rest_framework.routers import SimpleRouter

from blood_requests.views import BloodRequestViewSet

app_name = 'blood_requests'

router = SimpleRouter()
router.register('', BloodRequestViewSet, basename='blood-request')

urlpatterns = router.urls
