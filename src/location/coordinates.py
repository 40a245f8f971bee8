"""
Coordinate value types shared by the positioning, geocoding and soil modules.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

COORDINATE_LABEL_FORMAT = "Lat: {lat:.6f}, Lng: {lng:.6f}"

_COORDINATE_PATTERN = re.compile(r"^-?\d+\.?\d*\s*,\s*-?\d+\.?\d*$")


class LocationSource(str, Enum):
    """Where a resolved location came from."""
    USER_TEXT = "UserText"
    DEVICE_LOCATION = "DeviceLocation"


@dataclass(frozen=True)
class Coordinates:
    """A WGS84 point. Raises ValueError when out of range."""
    lat: float
    lng: float

    def __post_init__(self):
        if not (-90 <= self.lat <= 90):
            raise ValueError(f"Latitude {self.lat} out of range [-90, 90]")
        if not (-180 <= self.lng <= 180):
            raise ValueError(f"Longitude {self.lng} out of range [-180, 180]")


def format_coordinates(coordinates: Coordinates) -> str:
    """Generic label used when no geocoder produced a name."""
    return COORDINATE_LABEL_FORMAT.format(lat=coordinates.lat, lng=coordinates.lng)


@dataclass(frozen=True)
class ResolvedLocation:
    """Canonical result of a resolution: a point plus a non-empty name."""
    coordinates: Coordinates
    display_name: str
    source: LocationSource

    def __post_init__(self):
        if not self.display_name or not self.display_name.strip():
            raise ValueError("display_name must not be empty")

    @classmethod
    def create(
        cls,
        coordinates: Coordinates,
        display_name: Optional[str],
        source: LocationSource,
    ) -> "ResolvedLocation":
        """Build a ResolvedLocation, falling back to the coordinate label."""
        name = (display_name or "").strip() or format_coordinates(coordinates)
        return cls(coordinates=coordinates, display_name=name, source=source)

    def to_dict(self) -> dict:
        return {
            "coordinates": {"lat": self.coordinates.lat, "lng": self.coordinates.lng},
            "displayName": self.display_name,
            "source": self.source.value,
        }


def is_coordinates(text: str) -> bool:
    """Check if the text looks like 'lat,lng' coordinates."""
    return bool(_COORDINATE_PATTERN.match(text.strip()))


def parse_coordinates(text: str) -> Tuple[float, float]:
    """
    Parse a 'lat,lng' string into (lat, lng).

    Raises:
        ValueError: If the text is not two numbers or they are out of range.
    """
    parts = text.strip().split(",")
    if len(parts) != 2:
        raise ValueError(f"Expected 'lat,lng', got '{text}'")
    point = Coordinates(lat=float(parts[0].strip()), lng=float(parts[1].strip()))
    return point.lat, point.lng
