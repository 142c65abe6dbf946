"""
Haversine Algorithm - great-circle distance between two coordinates
Used to find donors and blood banks near the location of a blood request
"""

import math

# Mean Earth radius in kilometers
EARTH_RADIUS_KM = 6371

# Average city driving speed used for arrival estimates
AVERAGE_SPEED_KMH = 30


def haversine_distance(lat1, lon1, lat2, lon2):
    """
    Calculate straight-line distance between two points.
    Note: This is "as the crow flies" distance, not road distance.

    Args:
        lat1, lon1: Latitude and longitude of point 1 (request location)
        lat2, lon2: Latitude and longitude of point 2 (donor / blood bank)

    Returns:
        Distance in kilometers
    """
    lat1, lon1, lat2, lon2 = map(math.radians, [lat1, lon1, lat2, lon2])

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    c = 2 * math.asin(math.sqrt(a))

    return c * EARTH_RADIUS_KM


def has_coordinates(item):
    return getattr(item, 'latitude', None) is not None and getattr(item, 'longitude', None) is not None


def find_nearby(lat, lon, items, max_distance=50):
    """
    Find all items (donors, institutions) within max_distance km of a point

    Args:
        lat, lon: Origin coordinates
        items: QuerySet or list of objects with latitude/longitude
        max_distance: Maximum distance in km

    Returns:
        List of tuples: (item, distance) sorted by distance
    """
    nearby = []

    for item in items:
        if not has_coordinates(item):
            continue
        distance = haversine_distance(lat, lon, item.latitude, item.longitude)
        if distance <= max_distance:
            nearby.append((item, distance))

    # Closest first
    nearby.sort(key=lambda x: x[1])

    return nearby


def estimate_travel_minutes(distance_km, speed_kmh=AVERAGE_SPEED_KMH):
    """Rough arrival estimate in whole minutes for a distance in km"""
    if distance_km <= 0:
        return 0
    return int(math.ceil(distance_km / speed_kmh * 60))
