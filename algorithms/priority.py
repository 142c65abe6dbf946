# algorithms/priority.py
from django.utils import timezone

URGENCY_SCORES = {
    'emergency': 100,
    'critical': 90,
    'urgent': 70,
    'normal': 40,
}

# Rarer blood types get higher scores
RARITY_SCORES = {
    'AB-': 100,
    'B-': 90,
    'AB+': 80,
    'A-': 70,
    'O-': 60,
    'B+': 50,
    'A+': 40,
    'O+': 30,
}


def run_priority_algorithm(blood_requests):
    """
    Priority Algorithm: Ranks blood requests by urgency, time waiting, units needed and blood rarity
    Returns a list of dicts with the request and its priority breakdown
    """
    requests_list = list(blood_requests) if blood_requests is not None else []
    if not requests_list:
        return []

    ranked_list = []

    for request in requests_list:
        urgency_score = calculate_urgency_score(request.urgency)
        time_score = calculate_time_score(request.created_at)
        units_score = calculate_units_score(request.units_needed)
        blood_rarity_score = calculate_blood_rarity_score(request.blood_type)

        priority_score = (
            urgency_score * 0.40 +
            time_score * 0.30 +
            units_score * 0.20 +
            blood_rarity_score * 0.10
        )

        ranked_list.append({
            'request': request,
            'priority_score': round(priority_score, 1),
            'priority_level': priority_level(priority_score),
            'urgency_score': urgency_score,
            'time_score': time_score,
            'units_score': units_score,
            'blood_rarity_score': blood_rarity_score,
        })

    ranked_list.sort(key=lambda x: x['priority_score'], reverse=True)

    return ranked_list


def priority_level(priority_score):
    if priority_score >= 80:
        return 'critical'
    elif priority_score >= 60:
        return 'high'
    elif priority_score >= 40:
        return 'medium'
    return 'low'


def calculate_urgency_score(urgency):
    return URGENCY_SCORES.get(urgency, 40)


def calculate_time_score(created_at):
    """
    Longer wait = higher score (0-100)
    """
    if timezone.is_naive(created_at):
        created_at = timezone.make_aware(created_at)

    hours_waiting = (timezone.now() - created_at).total_seconds() / 3600

    if hours_waiting >= 24:
        return 100
    elif hours_waiting >= 12:
        return 80
    elif hours_waiting >= 6:
        return 60
    elif hours_waiting >= 3:
        return 40
    elif hours_waiting >= 1:
        return 20
    return 0


def calculate_units_score(units_needed):
    """More units = higher score (0-100)"""
    if units_needed >= 5:
        return 100
    elif units_needed >= 4:
        return 80
    elif units_needed >= 3:
        return 60
    elif units_needed >= 2:
        return 40
    return 20


def calculate_blood_rarity_score(blood_type):
    return RARITY_SCORES.get(blood_type, 50)
