# donors/views.py
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounts.decorators import policy_required
from donors.matching import find_nearby_donors
from donors.serializers import DonorSerializer, NearbyDonorQuerySerializer, NearbyDonorSerializer


def get_own_profile(user):
    profile = getattr(user, 'donor_profile', None)
    if profile is None:
        raise NotFound("Donor profile not found")
    return profile


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
def my_profile(request):
    """
    GET: own donor profile
    PATCH: update availability, location and location sharing
    """
    profile = get_own_profile(request.user)

    if request.method == 'PATCH':
        serializer = DonorSerializer(profile, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)

    return Response(DonorSerializer(profile).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@policy_required('donor.search')
def nearby_donors(request):
    """Location search for available donors around a point"""
    query = NearbyDonorQuerySerializer(data=request.query_params)
    query.is_valid(raise_exception=True)
    params = query.validated_data

    results = find_nearby_donors(
        params['latitude'],
        params['longitude'],
        radius_km=params['radius'],
        blood_type=params.get('blood_type'),
        max_results=params['max_results'],
    )

    return Response({
        'count': len(results),
        'radius': params['radius'],
        'results': NearbyDonorSerializer(results, many=True).data,
    })
