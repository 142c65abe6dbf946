# algorithms/scoring.py
"""
Weighted multi-criteria scoring of donor candidates

Criteria (all normalized to 0-1, higher is better):
1. Closeness      - 1 - distance / search radius
2. Response rate  - share of past requests the donor answered
3. Response speed - 1 - average response minutes / MAX_RESPONSE_MINUTES
4. Exact match    - 1 when the donor has exactly the requested type
"""
import numpy as np

from algorithms.blood_compatibility import EXACT_MATCH_SCORE

DEFAULT_WEIGHTS = {
    'distance': 0.4,
    'response_rate': 0.3,
    'response_time': 0.2,
    'exact_match': 0.1,
}

MAX_RESPONSE_MINUTES = 120
DEFAULT_RESPONSE_MINUTES = 30

CRITERIA = ['distance', 'response_rate', 'response_time', 'exact_match']


def build_criteria_matrix(candidates, radius_km):
    """
    Build the (n x 4) decision matrix for a list of candidate dicts

    Each candidate needs: distance, response_rate, avg_response_minutes, compatibility
    """
    rows = []
    for candidate in candidates:
        closeness = 1 - (candidate['distance'] / radius_km) if radius_km > 0 else 0

        minutes = candidate.get('avg_response_minutes')
        if minutes is None:
            minutes = DEFAULT_RESPONSE_MINUTES
        speed = 1 - min(minutes, MAX_RESPONSE_MINUTES) / MAX_RESPONSE_MINUTES

        exact = 1.0 if candidate['compatibility'] == EXACT_MATCH_SCORE else 0.0

        rows.append([closeness, candidate.get('response_rate') or 0, speed, exact])

    matrix = np.array(rows, dtype=float).reshape(len(rows), len(CRITERIA))
    return np.clip(matrix, 0.0, 1.0)


def weight_vector(weights=None):
    weights = {**DEFAULT_WEIGHTS, **(weights or {})}
    vector = np.array([weights[name] for name in CRITERIA], dtype=float)
    total = vector.sum()
    # Normalize so custom weights still produce a 0-100 score
    return vector / total if total > 0 else np.full(len(CRITERIA), 1 / len(CRITERIA))


def rank_candidates(candidates, radius_km, weights=None):
    """
    Score and sort candidates, best first

    Ties on score are broken by higher rating, then lower donor id,
    so the ordering is deterministic.

    Returns:
        List of (candidate, score) with score in 0-100
    """
    candidates = list(candidates)
    if not candidates:
        return []

    matrix = build_criteria_matrix(candidates, radius_km)
    scores = matrix @ weight_vector(weights) * 100

    ranked = [(candidate, round(float(score), 2)) for candidate, score in zip(candidates, scores)]
    ranked.sort(key=lambda x: (-x[1], -(x[0].get('rating') or 0), x[0]['donor_id']))

    return ranked


def success_probability(response_rate, successful_donations, total_responses, cap=0.95):
    """
    Chance that a donor actually shows up: response rate times historical
    reliability, where donors without history get a neutral 0.5 reliability
    """
    reliability = 0.5
    if total_responses:
        reliability = min(successful_donations / total_responses, 1.0)
    probability = (response_rate or 0) * (0.5 + reliability / 2)
    return round(min(probability, cap), 3)
