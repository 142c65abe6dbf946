# inventory/views.py
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounts.decorators import check_policy, policy_required
from blood_requests.models import BloodRequest
from institutions.models import Institution
from inventory import alerts, reservation
from inventory.locator import find_blood_banks
from inventory.models import BloodUnit, InventoryAlert, InventoryTransaction
from inventory.reservation import resolve_blood_bank
from inventory.serializers import (
    AddUnitsSerializer,
    AlertActionSerializer,
    AlertQuerySerializer,
    BloodBankQuerySerializer,
    BloodUnitCreateSerializer,
    BloodUnitSerializer,
    InventoryAlertSerializer,
    InventoryTransactionSerializer,
    NearbyBloodBankSerializer,
    ReleaseSerializer,
    ReserveSerializer,
)
from security.events import log_security_event


# ============================================
# UNITS
# ============================================
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def units(request):
    """
    GET: list units (filters: blood_type, status, blood_bank)
    POST: add units; each unit is validated on its own and errors are
    reported per index without creating anything
    """
    if request.method == 'POST':
        return add_units(request)

    check_policy(request.user, None, 'inventory.view')

    queryset = BloodUnit.objects.select_related('blood_bank')
    if not request.user.is_admin_role:
        queryset = queryset.filter(blood_bank_id=request.user.institution_id)
    elif request.query_params.get('blood_bank'):
        queryset = queryset.filter(blood_bank_id=request.query_params['blood_bank'])

    for field in ('blood_type', 'status'):
        value = request.query_params.get(field)
        if value:
            queryset = queryset.filter(**{field: value})

    return Response(BloodUnitSerializer(queryset[:500], many=True).data)


def add_units(request):
    payload = AddUnitsSerializer(data=request.data)
    payload.is_valid(raise_exception=True)

    blood_bank = resolve_blood_bank(request.user, payload.validated_data.get('blood_bank'))
    if blood_bank is None:
        raise ValidationError({'blood_bank': 'A blood bank is required'})
    check_policy(request.user, blood_bank, 'inventory.manage')

    cleaned = []
    errors = {}
    for index, unit_data in enumerate(payload.validated_data['units']):
        serializer = BloodUnitCreateSerializer(data=unit_data)
        if serializer.is_valid():
            cleaned.append(serializer.validated_data)
        else:
            errors[str(index)] = serializer.errors
    if errors:
        raise ValidationError({'units': errors})

    created = reservation.add_units(cleaned, blood_bank, performed_by=request.user)
    log_security_event('inventory_change', user=request.user, request=request,
                       details={'action': 'add_units', 'count': len(created), 'blood_bank': blood_bank.id})

    return Response({
        'created_count': len(created),
        'quarantined_count': sum(1 for unit in created if unit.status == 'quarantine'),
        'units': BloodUnitSerializer(created, many=True).data,
    }, status=status.HTTP_201_CREATED)


# ============================================
# RESERVATION
# ============================================
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def reserve(request):
    """
    Reserve units for a request. A shortfall is a successful response
    with success=false and the missing count.
    """
    serializer = ReserveSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    blood_bank = resolve_blood_bank(request.user, data.get('blood_bank'))
    check_policy(request.user, blood_bank, 'inventory.manage')

    blood_request = None
    if data.get('request_id'):
        blood_request = get_object_or_404(BloodRequest, pk=data['request_id'])
        if blood_request.is_terminal:
            raise ValidationError({'request_id': f"Request is {blood_request.status}"})

    result = reservation.reserve(
        data['blood_type'],
        data['units_needed'],
        blood_request=blood_request,
        expiry_preference=data['expiry_preference'],
        blood_bank=blood_bank,
        performed_by=request.user,
    )
    if result['success']:
        log_security_event('inventory_change', user=request.user, request=request,
                           details={'action': 'reserve', 'units': result['reserved_unit_ids']})
    return Response(result)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def release(request):
    """Return a request's reserved units; the caller must manage every institution holding them"""
    serializer = ReleaseSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    blood_request = get_object_or_404(BloodRequest, pk=serializer.validated_data['request_id'])

    holders = list(Institution.objects.filter(
        blood_units__reserved_for_request=blood_request,
        blood_units__status='reserved',
    ).distinct())
    for holder in holders or [resolve_blood_bank(request.user)]:
        check_policy(request.user, holder, 'inventory.manage')

    released = reservation.release(blood_request, reason=serializer.validated_data['reason'], performed_by=request.user)
    return Response({'released_count': released, 'request_id': str(blood_request.pk)})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@policy_required('inventory.sweep')
def process_expired(request):
    return Response(reservation.process_expired(performed_by=request.user))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@policy_required('inventory.view')
def stats(request):
    blood_bank = None if request.user.is_admin_role else request.user.institution
    return Response(reservation.inventory_stats(blood_bank))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@policy_required('inventory.view')
def transactions(request):
    """Inventory audit trail, newest first (filters: transaction_type, request_id)"""
    queryset = InventoryTransaction.objects.all()
    if not request.user.is_admin_role:
        queryset = queryset.filter(performed_by__institution_id=request.user.institution_id)

    transaction_type = request.query_params.get('transaction_type')
    if transaction_type:
        queryset = queryset.filter(transaction_type=transaction_type)
    request_id = request.query_params.get('request_id')
    if request_id:
        queryset = queryset.filter(blood_request_id=request_id)

    return Response(InventoryTransactionSerializer(queryset.order_by('-created_at', '-id')[:200], many=True).data)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def inventory_alerts(request):
    """
    GET: open alerts (resolved=true for history), newest first
    POST {action: check}: run the alert check now
    POST {action: resolve, alert_id, resolution}: close an alert
    """
    if request.method == 'GET':
        check_policy(request.user, None, 'inventory.view')
        query = AlertQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data

        queryset = InventoryAlert.objects.select_related('blood_bank').filter(resolved=params['resolved'])
        if not request.user.is_admin_role:
            queryset = queryset.filter(blood_bank_id=request.user.institution_id)
        if params.get('alert_type'):
            queryset = queryset.filter(alert_type=params['alert_type'])

        results = InventoryAlertSerializer(queryset[:params['limit']], many=True).data
        return Response({'count': len(results), 'resolved': params['resolved'], 'results': results})

    serializer = AlertActionSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    if data['action'] == 'check':
        blood_bank = resolve_blood_bank(request.user, data.get('blood_bank'))
        check_policy(request.user, blood_bank, 'inventory.manage')
        raised = alerts.check_alerts(blood_bank)
        return Response({
            'count': len(raised),
            'new_alerts': InventoryAlertSerializer(raised, many=True).data,
        })

    alert = get_object_or_404(InventoryAlert.objects.select_related('blood_bank'), pk=data['alert_id'])
    check_policy(request.user, alert.blood_bank, 'inventory.manage')
    if alert.resolved:
        raise ValidationError({'alert_id': 'Alert is already resolved'})

    alerts.resolve_alert(alert, request.user, data['resolution'])
    log_security_event('inventory_change', user=request.user, request=request,
                       details={'action': 'resolve_alert', 'alert_id': alert.id})
    return Response(InventoryAlertSerializer(alert).data)


# ============================================
# LOCATION
# ============================================
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def nearby_blood_banks(request):
    query = BloodBankQuerySerializer(data=request.query_params)
    query.is_valid(raise_exception=True)
    params = query.validated_data

    results = find_blood_banks(
        params['latitude'],
        params['longitude'],
        blood_type=params.get('blood_type'),
        units_needed=params['units_needed'],
        radius_km=params['radius'],
        max_results=params['max_results'],
    )
    return Response({'count': len(results), 'results': NearbyBloodBankSerializer(results, many=True).data})
