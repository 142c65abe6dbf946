# blood_requests/views.py
from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounts.decorators import check_policy
from algorithms.priority import run_priority_algorithm
from blood_requests import services, workflow
from blood_requests.models import BloodRequest
from blood_requests.serializers import (
    BloodRequestCreateSerializer,
    BloodRequestSerializer,
    DonorResponseSerializer,
    RespondSerializer,
    StatusHistorySerializer,
    StatusUpdateSerializer,
)
from donors.matching import find_matches
from donors.serializers import DonorMatchSerializer
from inventory import reservation
from security.events import log_security_event

PROCESSING_OPTIONS = ('reserve_inventory', 'expiry_preference')


def visible_requests(user):
    """Requests the user may list: everything for admins, otherwise own, institution or responded-to"""
    queryset = BloodRequest.objects.select_related('requester', 'institution')
    if user.is_admin_role:
        return queryset

    visible = Q(requester=user) | Q(responses__donor__user=user)
    if user.is_institution_staff and user.institution_id is not None:
        visible |= Q(institution_id=user.institution_id)
    return queryset.filter(visible).distinct()


class BloodRequestViewSet(viewsets.ViewSet):
    """
    Blood requests

    list        GET    /blood-requests/              priority ordered
    create      POST   /blood-requests/
    retrieve    GET    /blood-requests/{id}/         ?include_history=true
    status      PATCH  /blood-requests/{id}/status/
    respond     POST   /blood-requests/{id}/respond/
    responses   GET    /blood-requests/{id}/responses/
    matches     GET    /blood-requests/{id}/matches/
    """
    permission_classes = [IsAuthenticated]
    lookup_value_regex = '[0-9a-f-]{36}'

    def get_request(self, pk):
        return get_object_or_404(BloodRequest.objects.select_related('requester', 'institution'), pk=pk)

    def list(self, request):
        queryset = visible_requests(request.user)

        for field in ('status', 'blood_type', 'urgency'):
            value = request.query_params.get(field)
            if value and value != 'all':
                queryset = queryset.filter(**{field: value})
        if request.query_params.get('open') in ('1', 'true'):
            queryset = queryset.exclude(status__in=BloodRequest.TERMINAL_STATUSES)

        ranked = run_priority_algorithm(queryset[:500])
        results = []
        for entry in ranked:
            data = BloodRequestSerializer(entry['request']).data
            data['priority_score'] = entry['priority_score']
            data['priority_level'] = entry['priority_level']
            results.append(data)

        return Response({'count': len(results), 'results': results})

    def create(self, request):
        check_policy(request.user, None, 'request.create')

        serializer = BloodRequestCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        options = {key: data.pop(key) for key in PROCESSING_OPTIONS}

        blood_bank = None
        if options['reserve_inventory']:
            blood_bank = reservation.resolve_blood_bank(request.user)
            check_policy(request.user, blood_bank, 'inventory.manage')

        blood_request = services.create_blood_request(data, request.user)

        matches = find_matches(blood_request)

        reservation_result = None
        if options['reserve_inventory']:
            reservation_result = reservation.reserve(
                blood_request.blood_type,
                blood_request.units_needed,
                blood_request=blood_request,
                expiry_preference=options['expiry_preference'],
                blood_bank=blood_bank,
                performed_by=request.user,
            )

        return Response({
            'request': BloodRequestSerializer(blood_request).data,
            'matches_found': len(matches),
            'reservation': reservation_result,
        }, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        blood_request = self.get_request(pk)
        check_policy(request.user, blood_request, 'request.view')

        data = BloodRequestSerializer(blood_request).data
        data['response_summary'] = blood_request.response_summary()
        data['allowed_transitions'] = workflow.allowed_transitions(blood_request.status)
        data['reserved_units'] = blood_request.reserved_units.filter(status='reserved').count()

        if request.query_params.get('include_history') in ('1', 'true'):
            data['status_history'] = StatusHistorySerializer(blood_request.status_history.all(), many=True).data

        log_security_event('data_access', user=request.user, request=request,
                           details={'resource': 'blood_request', 'id': str(blood_request.pk)})
        return Response(data)

    @action(detail=True, methods=['patch', 'post'], url_path='status')
    def update_status(self, request, pk=None):
        blood_request = self.get_request(pk)

        serializer = StatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        entry = workflow.transition(
            blood_request,
            serializer.validated_data['status'],
            actor=request.user,
            note=serializer.validated_data['notes'],
        )

        return Response({
            'request': BloodRequestSerializer(blood_request).data,
            'transition': StatusHistorySerializer(entry).data,
        })

    @action(detail=True, methods=['post'])
    def respond(self, request, pk=None):
        blood_request = self.get_request(pk)
        check_policy(request.user, blood_request, 'request.respond')

        serializer = RespondSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        response, created = services.record_response(
            blood_request,
            request.user.donor_profile,
            serializer.validated_data,
        )
        blood_request.refresh_from_db(fields=['status'])

        return Response({
            'response': DonorResponseSerializer(response).data,
            'request_status': blood_request.status,
        }, status=status.HTTP_201_CREATED if created else status.HTTP_200_OK)

    @action(detail=True, methods=['get'])
    def responses(self, request, pk=None):
        blood_request = self.get_request(pk)
        check_policy(request.user, blood_request, 'request.view_matches')

        responses = blood_request.responses.select_related('donor')
        response_type = request.query_params.get('response_type')
        if response_type:
            responses = responses.filter(response_type=response_type)

        return Response({
            'summary': blood_request.response_summary(),
            'results': DonorResponseSerializer(responses, many=True).data,
        })

    @action(detail=True, methods=['get'])
    def matches(self, request, pk=None):
        blood_request = self.get_request(pk)
        check_policy(request.user, blood_request, 'request.view_matches')

        matches = find_matches(blood_request)
        return Response({
            'count': len(matches),
            'results': DonorMatchSerializer(matches, many=True).data,
        })
