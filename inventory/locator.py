# inventory/locator.py
"""Nearby blood bank search ranked by stock and distance"""
from django.db.models import Count, Q
from django.utils import timezone

from algorithms.haversine import estimate_travel_minutes, find_nearby
from institutions.models import Institution

MAX_RADIUS_KM = 200
MAX_RESULTS = 20


def availability_status(available, units_needed):
    if available >= units_needed:
        return 'available'
    if available > 0:
        return 'limited'
    return 'critical'


def blood_bank_score(available, units_needed, distance, radius_km, reliability):
    """
    0-100 style score: up to +50 for stock covering the need, up to -30
    for distance across the search radius, up to +15 for reliability
    """
    coverage = min(available / units_needed, 1.0) if units_needed else 1.0
    score = 50 + coverage * 50
    score -= min(distance / radius_km, 1.0) * 30 if radius_km else 0
    score += (reliability or 0) * 15
    return round(score, 1)


def find_blood_banks(latitude, longitude, blood_type=None, units_needed=1, radius_km=50, max_results=10):
    """
    Blood banks within radius_km, each with its count of available unexpired
    units (of blood_type when given), best score first
    """
    radius_km = min(radius_km, MAX_RADIUS_KM)
    max_results = min(max_results, MAX_RESULTS)

    unit_filter = Q(blood_units__status='available', blood_units__expiry_date__gt=timezone.now())
    if blood_type:
        unit_filter &= Q(blood_units__blood_type=blood_type)

    banks = Institution.objects.filter(institution_type='blood_bank').annotate(
        available_units=Count('blood_units', filter=unit_filter)
    )

    results = []
    for bank, distance in find_nearby(latitude, longitude, banks, max_distance=radius_km):
        results.append({
            'institution': bank,
            'distance': round(distance, 2),
            'available_units': bank.available_units,
            'status': availability_status(bank.available_units, units_needed),
            'estimated_travel_minutes': estimate_travel_minutes(distance),
            'score': blood_bank_score(bank.available_units, units_needed, distance, radius_km, bank.reliability),
        })

    results.sort(key=lambda x: (-x['score'], x['distance']))
    return results[:max_results]
