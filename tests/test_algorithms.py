from datetime import timedelta
from types import SimpleNamespace

import pytest
from django.utils import timezone

from algorithms.blood_compatibility import (
    BLOOD_TYPES,
    COMPATIBLE_SCORE,
    EXACT_MATCH_SCORE,
    compatibility_score,
    get_compatible_donors,
    get_compatible_recipients,
    is_compatible,
)
from algorithms.haversine import estimate_travel_minutes, find_nearby, haversine_distance
from algorithms.priority import priority_level, run_priority_algorithm
from algorithms.scoring import build_criteria_matrix, rank_candidates, success_probability, weight_vector

NAIROBI = (-1.2921, 36.8219)
MOMBASA = (-4.0435, 39.6682)


# ============================================
# HAVERSINE
# ============================================
def test_distance_to_same_point_is_zero():
    assert haversine_distance(*NAIROBI, *NAIROBI) == 0.0


def test_nairobi_to_mombasa_distance():
    assert haversine_distance(*NAIROBI, *MOMBASA) == pytest.approx(440, abs=5)


def test_distance_is_symmetric():
    assert haversine_distance(*NAIROBI, *MOMBASA) == pytest.approx(haversine_distance(*MOMBASA, *NAIROBI))


def test_find_nearby_skips_far_and_unlocated_items():
    near = SimpleNamespace(latitude=NAIROBI[0] + 0.05, longitude=NAIROBI[1])
    nearer = SimpleNamespace(latitude=NAIROBI[0] + 0.01, longitude=NAIROBI[1])
    far = SimpleNamespace(latitude=MOMBASA[0], longitude=MOMBASA[1])
    unknown = SimpleNamespace(latitude=None, longitude=None)

    result = find_nearby(*NAIROBI, [near, far, unknown, nearer], max_distance=50)

    assert [item for item, _ in result] == [nearer, near]


def test_travel_estimate():
    assert estimate_travel_minutes(0) == 0
    assert estimate_travel_minutes(15) == 30
    assert estimate_travel_minutes(0.1) == 1


# ============================================
# COMPATIBILITY
# ============================================
def test_o_negative_is_universal_donor():
    assert all(is_compatible('O-', recipient) for recipient in BLOOD_TYPES)


def test_ab_positive_is_universal_recipient():
    assert set(get_compatible_donors('AB+')) == set(BLOOD_TYPES)


@pytest.mark.parametrize('recipient, donors', [
    ('AB-', {'AB-', 'A-', 'B-', 'O-'}),
    ('O+', {'O+', 'O-'}),
    ('O-', {'O-'}),
    ('A+', {'A+', 'A-', 'O+', 'O-'}),
])
def test_compatible_donor_sets(recipient, donors):
    assert set(get_compatible_donors(recipient)) == donors


def test_rh_positive_cannot_give_to_rh_negative():
    assert not is_compatible('O+', 'O-')
    assert not is_compatible('A+', 'AB-')


def test_unknown_types_are_incompatible():
    assert not is_compatible('C+', 'A+')
    assert get_compatible_donors('Z') == []
    assert get_compatible_recipients('Z') == []


def test_compatibility_scores():
    assert compatibility_score('A+', 'A+') == EXACT_MATCH_SCORE
    assert compatibility_score('O-', 'A+') == COMPATIBLE_SCORE
    assert compatibility_score('B+', 'A+') == 0


# ============================================
# SCORING
# ============================================
def candidate(donor_id, distance, response_rate=0.5, minutes=30, compatibility=EXACT_MATCH_SCORE, rating=4.0):
    return {
        'donor_id': donor_id,
        'distance': distance,
        'response_rate': response_rate,
        'avg_response_minutes': minutes,
        'compatibility': compatibility,
        'rating': rating,
    }


def test_weights_are_normalized():
    assert weight_vector({'distance': 4, 'response_rate': 3, 'response_time': 2, 'exact_match': 1}).sum() == pytest.approx(1.0)


def test_criteria_matrix_is_clipped():
    matrix = build_criteria_matrix([candidate(1, distance=30, minutes=500)], radius_km=25)
    assert matrix.shape == (1, 4)
    assert matrix[0][0] == 0.0
    assert matrix[0][2] == 0.0


def test_closer_donor_ranks_first():
    ranked = rank_candidates([candidate(1, distance=20), candidate(2, distance=2)], radius_km=25)
    assert [c['donor_id'] for c, _ in ranked] == [2, 1]
    assert all(0 <= score <= 100 for _, score in ranked)


def test_ties_break_on_rating_then_id():
    ranked = rank_candidates(
        [candidate(3, 5, rating=3.0), candidate(2, 5, rating=4.5), candidate(1, 5, rating=3.0)],
        radius_km=25,
    )
    assert [c['donor_id'] for c, _ in ranked] == [2, 1, 3]


def test_perfect_candidate_scores_100():
    ranked = rank_candidates([candidate(1, distance=0, response_rate=1.0, minutes=0)], radius_km=10)
    assert ranked[0][1] == 100.0


def test_rank_empty():
    assert rank_candidates([], radius_km=10) == []


def test_success_probability():
    assert success_probability(0.8, 0, 0) == pytest.approx(0.6)
    assert success_probability(1.0, 10, 10) == 0.95
    assert success_probability(0, 5, 5) == 0


# ============================================
# PRIORITY
# ============================================
def test_emergency_outranks_normal():
    now = timezone.now()
    normal = SimpleNamespace(urgency='normal', created_at=now, units_needed=1, blood_type='O+')
    emergency = SimpleNamespace(urgency='emergency', created_at=now, units_needed=1, blood_type='O+')

    ranked = run_priority_algorithm([normal, emergency])

    assert ranked[0]['request'] is emergency
    assert ranked[0]['priority_score'] > ranked[1]['priority_score']


def test_long_waiting_request_gains_priority():
    now = timezone.now()
    fresh = SimpleNamespace(urgency='urgent', created_at=now, units_needed=2, blood_type='A+')
    waiting = SimpleNamespace(urgency='urgent', created_at=now - timedelta(hours=30), units_needed=2, blood_type='A+')

    ranked = run_priority_algorithm([fresh, waiting])

    assert ranked[0]['request'] is waiting


def test_priority_levels():
    assert priority_level(95) == 'critical'
    assert priority_level(10) == 'low'
    assert run_priority_algorithm([]) == []
