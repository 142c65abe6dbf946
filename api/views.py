# api/views.py
import logging

from django.conf import settings
from django.db import DatabaseError, connection
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from accounts.decorators import policy_required
from blood_requests.models import BloodRequest
from donors.models import DonorProfile
from institutions.models import Institution
from inventory.reservation import inventory_stats

logger = logging.getLogger(__name__)


@api_view(['GET'])
@permission_classes([AllowAny])
def health(request):
    """Liveness plus a database round trip"""
    try:
        with connection.cursor() as cursor:
            cursor.execute('SELECT 1')
        database = 'ok'
    except DatabaseError as e:
        logger.error(f"Health check database failure: {e}")
        database = 'unavailable'

    healthy = database == 'ok'
    return Response({
        'status': 'healthy' if healthy else 'degraded',
        'database': database,
        'version': getattr(settings, 'API_VERSION', '1.0.0'),
        'time': timezone.now().isoformat(),
    }, status=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@policy_required('dashboard.view')
def dashboard_stats(request):
    """Platform-wide counts for the admin dashboard"""
    eligible = [donor for donor in DonorProfile.objects.filter(is_available=True) if donor.can_donate]

    return Response({
        'total_donors': DonorProfile.objects.count(),
        'available_donors': len(eligible),
        'institutions': Institution.objects.count(),
        'active_requests': BloodRequest.objects.exclude(status__in=BloodRequest.TERMINAL_STATUSES).count(),
        'completed_requests': BloodRequest.objects.filter(status='completed').count(),
        'inventory': inventory_stats(),
    })
