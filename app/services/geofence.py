"""
Geofence validation against a company's registered office locations
"""
import logging
import math
from typing import Iterable, Optional, Tuple

from app.core.errors import LocationRequired, OutsideGeofence
from app.models.attendance import AttendanceType
from app.models.office_location import OfficeLocation

logger = logging.getLogger(__name__)

EARTH_RADIUS_M = 6371000  # Earth's radius in meters


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate distance between two coordinates using Haversine formula

    Returns:
        float: Distance in meters
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (math.sin(delta_lat / 2) ** 2 +
         math.cos(lat1_rad) * math.cos(lat2_rad) *
         math.sin(delta_lon / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_M * c


def nearest_office(
    lat: float,
    lng: float,
    locations: Iterable[OfficeLocation],
) -> Tuple[Optional[OfficeLocation], Optional[float], bool]:
    """
    Find the office containing the point, or the nearest one if none does.

    Returns:
        (office, distance_m, inside). inside is True when the point lies within
        the radius of at least one office (distance == radius counts as inside).
    """
    best = None
    best_distance = None
    for location in locations:
        distance = haversine_distance(location.latitude, location.longitude, lat, lng)
        if distance <= location.radius:
            return location, distance, True
        if best_distance is None or distance < best_distance:
            best, best_distance = location, distance
    return best, best_distance, False


def validate_check_in_location(
    attendance_type: str,
    location: Optional[dict],
    locations: list,
    require_gps: bool,
) -> None:
    """
    Validate an OFFICE check-in against the registered office locations

    Args:
        attendance_type: Requested type (OFFICE / REMOTE / FIELD)
        location: {"lat", "lng", ...} reported by the device, or None
        locations: Active office locations of the company
        require_gps: Company's require_gps_tracking flag

    Raises:
        LocationRequired: OFFICE check-in without a location while GPS tracking is required
        OutsideGeofence: reported location is outside every office radius
    """
    if attendance_type != AttendanceType.OFFICE.value or not locations:
        return

    if location is None:
        if require_gps:
            raise LocationRequired()
        return

    office, distance, inside = nearest_office(location["lat"], location["lng"], locations)
    if not inside:
        logger.warning(
            "Check-in outside geofence: nearest office=%s distance=%.0fm radius=%sm",
            office.id if office else None,
            distance or 0,
            office.radius if office else None,
        )
        raise OutsideGeofence()
