"""
PawSafe - Geospatial Utilities
Distance calculations used by proximity detection and area queries.
"""

import math
from typing import Tuple
from dataclasses import dataclass

# Earth's radius in kilometers
EARTH_RADIUS_KM = 6371.0


@dataclass
class Point:
    """Geographic point with latitude and longitude."""
    latitude: float
    longitude: float

    def to_tuple(self) -> Tuple[float, float]:
        return (self.latitude, self.longitude)


@dataclass
class BoundingBox:
    """Geographic bounding box."""
    west: float   # min longitude
    south: float  # min latitude
    east: float   # max longitude
    north: float  # max latitude

    def contains(self, point: Point) -> bool:
        """Check if a point is within the bounding box."""
        return (
            self.west <= point.longitude <= self.east and
            self.south <= point.latitude <= self.north
        )


def is_valid_coordinate(latitude: float, longitude: float) -> bool:
    """Check that a latitude/longitude pair is on the globe."""
    return -90.0 <= latitude <= 90.0 and -180.0 <= longitude <= 180.0


def haversine_distance(
    lat1: float, lon1: float,
    lat2: float, lon2: float
) -> float:
    """
    Calculate the great-circle distance between two points on Earth.

    Args:
        lat1, lon1: First point coordinates in decimal degrees
        lat2, lon2: Second point coordinates in decimal degrees

    Returns:
        Distance in kilometers
    """
    # Convert to radians
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    # Haversine formula
    a = (
        math.sin(delta_lat / 2) ** 2 +
        math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def distance_meters(
    lat1: float, lon1: float,
    lat2: float, lon2: float
) -> float:
    """Great-circle distance between two points in meters."""
    return haversine_distance(lat1, lon1, lat2, lon2) * 1000.0


def destination_point(
    lat: float, lon: float,
    distance_km: float,
    bearing_degrees: float
) -> Tuple[float, float]:
    """
    Calculate destination point given start, distance, and bearing.

    Args:
        lat, lon: Start point coordinates in decimal degrees
        distance_km: Distance to travel in kilometers
        bearing_degrees: Bearing in degrees (0=North, 90=East)

    Returns:
        Tuple of (latitude, longitude) of destination point
    """
    lat_rad = math.radians(lat)
    lon_rad = math.radians(lon)
    bearing_rad = math.radians(bearing_degrees)
    angular_distance = distance_km / EARTH_RADIUS_KM

    dest_lat = math.asin(
        math.sin(lat_rad) * math.cos(angular_distance) +
        math.cos(lat_rad) * math.sin(angular_distance) * math.cos(bearing_rad)
    )

    dest_lon = lon_rad + math.atan2(
        math.sin(bearing_rad) * math.sin(angular_distance) * math.cos(lat_rad),
        math.cos(angular_distance) - math.sin(lat_rad) * math.sin(dest_lat)
    )

    return (math.degrees(dest_lat), math.degrees(dest_lon))
