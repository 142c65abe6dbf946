# security/views.py
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounts.decorators import policy_required
from security.events import active_blocks, block_ip, get_security_metrics, resolve_event, unblock_ips
from security.models import SecurityEvent
from security.serializers import (
    BlockedIPSerializer,
    BlockIPSerializer,
    EventFilterSerializer,
    MetricsQuerySerializer,
    ResolveEventSerializer,
    SecurityEventSerializer,
    UnblockIPSerializer,
)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@policy_required('security.view')
def event_list(request):
    """List security events, newest first, with optional filters"""
    filters = EventFilterSerializer(data=request.query_params)
    filters.is_valid(raise_exception=True)
    params = filters.validated_data

    events = SecurityEvent.objects.select_related('user')
    if params.get('event_type'):
        events = events.filter(event_type=params['event_type'])
    if params.get('risk_level'):
        events = events.filter(risk_level=params['risk_level'])
    if params.get('resolved') is not None:
        events = events.filter(resolved=params['resolved'])

    return Response(SecurityEventSerializer(events[:params['limit']], many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@policy_required('security.view')
def metrics(request):
    query = MetricsQuerySerializer(data=request.query_params)
    query.is_valid(raise_exception=True)
    return Response(get_security_metrics(query.validated_data['time_range']))


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@policy_required('security.view')
def resolve(request, event_id):
    event = get_object_or_404(SecurityEvent, pk=event_id)
    serializer = ResolveEventSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    resolve_event(event, request.user, serializer.validated_data.get('notes', ''))
    return Response(SecurityEventSerializer(event).data)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@policy_required('security.view')
def blocked_ips(request):
    """
    GET: addresses currently refused by the API
    POST: block an address, optionally for duration_hours
    """
    if request.method == 'GET':
        blocks = active_blocks().select_related('blocked_by')
        return Response({'count': blocks.count(), 'results': BlockedIPSerializer(blocks, many=True).data})

    serializer = BlockIPSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    blocked = block_ip(
        data['ip_address'],
        blocked_by=request.user,
        reason=data['reason'],
        duration_hours=data.get('duration_hours'),
        request=request,
    )
    return Response(BlockedIPSerializer(blocked).data, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@policy_required('security.view')
def unblock(request):
    serializer = UnblockIPSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    unblocked = unblock_ips(serializer.validated_data['ip_addresses'], unblocked_by=request.user, request=request)
    return Response({'unblocked': unblocked, 'count': len(unblocked)})
