# notifications/views.py
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import UserRateThrottle

from accounts.decorators import policy_required
from notifications import dispatch
from notifications.models import Notification
from notifications.serializers import (
    NotificationPreferenceSerializer,
    NotificationSerializer,
    SendAlertSerializer,
    StatisticsQuerySerializer,
)


class NotificationSendThrottle(UserRateThrottle):
    scope = 'notifications'


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@throttle_classes([NotificationSendThrottle])
def send(request):
    """
    POST: send an alert, returns sent / failed / suppressed counts
    GET: delivery statistics (admins see everything, others their own sends)
    """
    if request.method == 'GET':
        query = StatisticsQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        sender = None if request.user.is_admin_role else request.user
        return Response(dispatch.get_statistics(query.validated_data['days'], sender=sender))

    serializer = SendAlertSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    result = dispatch.send_alert(
        request.user,
        data['type'],
        data['title'],
        data['message'],
        data['recipients'],
        priority=data['priority'],
        channels=data['channels'],
        data=data.get('data'),
        scheduled_at=data.get('scheduled_at'),
        expires_at=data.get('expires_at'),
    )
    return Response(result, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'POST'])
@permission_classes([IsAuthenticated])
def preferences(request):
    """
    GET: current preferences (defaults if never saved)
    PUT: update preferences
    POST: reset to defaults
    """
    if request.method == 'POST':
        preference = dispatch.reset_preferences(request.user)
        return Response(NotificationPreferenceSerializer(preference).data)

    preference = dispatch.get_preferences(request.user)

    if request.method == 'PUT':
        serializer = NotificationPreferenceSerializer(preference, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save(user=request.user)
        return Response(serializer.data)

    return Response(NotificationPreferenceSerializer(preference).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@policy_required('notification.process')
def process(request):
    return Response(dispatch.process_pending())


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def inbox(request):
    notifications = Notification.objects.filter(recipient=request.user).exclude(status='suppressed')
    if request.query_params.get('unread') in ('1', 'true'):
        notifications = notifications.filter(read_at__isnull=True)
    return Response(NotificationSerializer(notifications[:100], many=True).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def mark_read(request, notification_id):
    notification = get_object_or_404(Notification, pk=notification_id, recipient=request.user)
    dispatch.mark_read(notification)
    return Response(NotificationSerializer(notification).data)
