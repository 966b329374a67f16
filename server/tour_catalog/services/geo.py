"""Spherical geometry helpers for proximity queries on tour start locations."""

import math

from ..schemas.tour import DistanceUnit

# Sphere radii used to turn a distance into an angular radius
EARTH_RADIUS_MILES = 3963.2
EARTH_RADIUS_KM = 6378.1
EARTH_RADIUS_METERS = 6378100.0

# Metres to the requested unit
METERS_TO_UNIT = {
    DistanceUnit.MILES: 0.000621371,
    DistanceUnit.KILOMETERS: 0.001,
}


def radius_in_radians(distance: float, unit: DistanceUnit) -> float:
    """Angular radius on the sphere for a distance in the given unit."""
    earth_radius = EARTH_RADIUS_MILES if unit == DistanceUnit.MILES else EARTH_RADIUS_KM
    return distance / earth_radius


def central_angle(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle angle in radians between two points (haversine formula)."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * math.asin(min(1.0, math.sqrt(a)))


def distance_in_unit(lat1: float, lng1: float, lat2: float, lng2: float, unit: DistanceUnit) -> float:
    """Great-circle distance between two points in the given unit."""
    meters = central_angle(lat1, lng1, lat2, lng2) * EARTH_RADIUS_METERS
    return meters * METERS_TO_UNIT[unit]


def bounding_box(lat: float, lng: float, radius: float) -> tuple[float, float, float | None, float | None]:
    """
    Latitude/longitude box enclosing a spherical cap.

    Args:
        lat: Latitude of the centre in degrees
        lng: Longitude of the centre in degrees
        radius: Angular radius in radians

    Returns:
        (lat_min, lat_max, lng_min, lng_max). The longitude bounds are None
        when the cap reaches a pole or wraps the antimeridian, in which case
        only the latitude band can be used as a prefilter.
    """
    d_lat = math.degrees(radius)
    lat_min = max(-90.0, lat - d_lat)
    lat_max = min(90.0, lat + d_lat)

    if lat_min <= -90.0 or lat_max >= 90.0:
        return lat_min, lat_max, None, None

    d_lng = math.degrees(math.asin(min(1.0, math.sin(radius) / math.cos(math.radians(lat)))))
    lng_min = lng - d_lng
    lng_max = lng + d_lng
    if lng_min < -180.0 or lng_max > 180.0:
        return lat_min, lat_max, None, None

    return lat_min, lat_max, lng_min, lng_max
