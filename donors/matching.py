# donors/matching.py
"""
Donor matching for blood requests

find_matches() is a read-only query: it filters donors by compatibility,
availability, location sharing, cooldown and distance, then ranks the
survivors with the weighted scoring in algorithms.scoring. Notifying the
matched donors is left to the caller.
"""
import logging
from datetime import date, timedelta

from django.conf import settings
from rest_framework.exceptions import ValidationError

from algorithms.blood_compatibility import compatibility_score, get_compatible_donors, is_valid_blood_type
from algorithms.haversine import estimate_travel_minutes, find_nearby, haversine_distance
from algorithms.scoring import rank_candidates, success_probability
from donors.models import DONATION_COOLDOWN_DAYS, DonorProfile

logger = logging.getLogger(__name__)

# Higher urgency searches further and accepts lower-rated donors
DEFAULT_RADIUS_KM = {
    'normal': 10,
    'urgent': 25,
    'critical': 50,
    'emergency': 100,
}

DEFAULT_MIN_RATING = {
    'normal': 3.0,
    'urgent': 2.5,
    'critical': 2.0,
    'emergency': 0.0,
}

MAX_NEARBY_RADIUS_KM = 100
MAX_NEARBY_RESULTS = 50


def matching_config():
    config = getattr(settings, 'BLOOD_MATCHING', {})
    return {
        'radius_km': {**DEFAULT_RADIUS_KM, **config.get('RADIUS_KM', {})},
        'min_rating': {**DEFAULT_MIN_RATING, **config.get('MIN_RATING', {})},
        'weights': config.get('WEIGHTS'),
        'max_results': config.get('MAX_RESULTS', 50),
    }


def search_radius(urgency):
    return matching_config()['radius_km'].get(urgency, DEFAULT_RADIUS_KM['normal'])


def minimum_rating(urgency):
    return matching_config()['min_rating'].get(urgency, DEFAULT_MIN_RATING['normal'])


def eligible_donors(blood_type, exclude_donor_ids=()):
    """
    Donors who could give to blood_type right now, ignoring distance:
    compatible, available, sharing location, with coordinates and out of cooldown
    """
    cooldown_start = date.today() - timedelta(days=DONATION_COOLDOWN_DAYS)

    donors = DonorProfile.objects.select_related('user').filter(
        blood_type__in=get_compatible_donors(blood_type),
        is_available=True,
        location_sharing=True,
        latitude__isnull=False,
        longitude__isnull=False,
        user__is_active=True,
    )
    donors = donors.exclude(last_donation_date__gt=cooldown_start)
    if exclude_donor_ids:
        donors = donors.exclude(id__in=exclude_donor_ids)
    return donors


def find_matches(blood_request, limit=None):
    """
    Rank donors for a blood request.

    Args:
        blood_request: BloodRequest with blood_type, urgency, latitude and longitude
        limit: Optional cap on the number of matches

    Returns:
        List of dicts, best first:
        {donor, compatibility_score, distance, match_score,
         success_probability, estimated_arrival_minutes}
        An empty list when nobody qualifies.
    """
    if not is_valid_blood_type(blood_request.blood_type):
        raise ValidationError({'blood_type': f"Invalid blood type: {blood_request.blood_type}"})
    if blood_request.latitude is None or blood_request.longitude is None:
        raise ValidationError({'location': 'Request coordinates are required for matching'})

    config = matching_config()
    radius = search_radius(blood_request.urgency)
    rating_floor = minimum_rating(blood_request.urgency)

    declined = []
    if blood_request.pk is not None:
        declined = list(
            blood_request.responses.filter(response_type='decline').values_list('donor_id', flat=True)
        )

    candidates = []
    for donor in eligible_donors(blood_request.blood_type, exclude_donor_ids=declined):
        if donor.rating < rating_floor:
            continue

        distance = haversine_distance(
            blood_request.latitude,
            blood_request.longitude,
            donor.latitude,
            donor.longitude
        )
        if distance > radius:
            continue

        candidates.append({
            'donor': donor,
            'donor_id': donor.id,
            'distance': distance,
            'response_rate': donor.response_rate,
            'avg_response_minutes': donor.avg_response_minutes,
            'rating': donor.rating,
            'compatibility': compatibility_score(donor.blood_type, blood_request.blood_type),
        })

    ranked = rank_candidates(candidates, radius, config['weights'])

    limit = limit or config['max_results']
    matches = [
        {
            'donor': candidate['donor'],
            'compatibility_score': candidate['compatibility'],
            'distance': round(candidate['distance'], 2),
            'match_score': score,
            'success_probability': success_probability(
                candidate['donor'].response_rate,
                candidate['donor'].successful_donations,
                candidate['donor'].total_responses,
            ),
            'estimated_arrival_minutes': estimate_travel_minutes(candidate['distance']),
        }
        for candidate, score in ranked[:limit]
    ]

    logger.info(
        f"{len(matches)} donors matched for request {blood_request.pk} "
        f"({blood_request.blood_type}, {blood_request.urgency}, radius {radius}km)"
    )
    return matches


def location_score(donor, distance):
    """Ranking score for location search results"""
    score = 100 - distance * 2
    score += (donor.response_rate or 0) * 50
    score += (donor.rating or 0) * 10
    if donor.is_verified:
        score += 20
    if donor.is_available:
        score += 30
    return round(max(score, 0), 1)


def find_nearby_donors(latitude, longitude, radius_km=25, blood_type=None, max_results=20):
    """
    Location search for donors around a point.
    When blood_type is given only donors who can give to it are returned.
    """
    radius_km = min(radius_km, MAX_NEARBY_RADIUS_KM)
    max_results = min(max_results, MAX_NEARBY_RESULTS)

    donors = DonorProfile.objects.select_related('user').filter(
        is_available=True,
        location_sharing=True,
        user__is_active=True,
        latitude__isnull=False,
        longitude__isnull=False,
    )
    if blood_type:
        donors = donors.filter(blood_type__in=get_compatible_donors(blood_type))

    results = [
        {
            'donor': donor,
            'distance': round(distance, 2),
            'estimated_travel_minutes': estimate_travel_minutes(distance),
            'score': location_score(donor, distance),
        }
        for donor, distance in find_nearby(latitude, longitude, donors, max_distance=radius_km)
    ]
    return results[:max_results]
