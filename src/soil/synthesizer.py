"""
Deterministic soil profile synthesis.

A single scalar seed in [0, 10] is derived from the coordinates and every
profile value is a fixed function of it, so the same point always yields
the same profile. sin/cos take the raw coordinate values (not converted
to radians).

    lat_seed = |sin(lat)| * 10
    lng_seed = |cos(lng)| * 10
    seed     = (lat_seed + lng_seed) / 2
"""

import logging
import math

from src.location.coordinates import Coordinates
from src.soil.profile import SOIL_TYPES, Nutrients, SoilProfile, Texture

logger = logging.getLogger(__name__)


def compute_seed(coordinates: Coordinates) -> float:
    """Seed in [0, 10] that drives every synthesized value."""
    lat_seed = abs(math.sin(coordinates.lat)) * 10
    lng_seed = abs(math.cos(coordinates.lng)) * 10
    return (lat_seed + lng_seed) / 2


def _texture(seed: float) -> Texture:
    return Texture(
        sand=30 + math.floor(seed * 2) % 20,
        silt=30 + math.floor(seed * 3) % 20,
        clay=20 + math.floor(seed * 4) % 10,
    )


def _nutrients(seed: float) -> Nutrients:
    return Nutrients(
        nitrogen=25 + math.floor(seed * 20),
        phosphorus=30 + math.floor(seed * 25),
        potassium=20 + math.floor(seed * 15),
        calcium=900 + math.floor(seed * 500),
        magnesium=180 + math.floor(seed * 100),
        sulfur=10 + math.floor(seed * 10),
    )


def synthesize(coordinates: Coordinates, display_name: str) -> SoilProfile:
    """
    Derive the soil profile for a point.

    Args:
        coordinates: Resolved point.
        display_name: Name of the resolved location, copied to profile.location.

    Returns:
        SoilProfile; identical coordinates always give an identical profile.
    """
    seed = compute_seed(coordinates)
    soil_type = SOIL_TYPES[math.floor(seed) % len(SOIL_TYPES)]
    logger.debug(
        "Seed %.4f for %.6f, %.6f -> %s",
        seed, coordinates.lat, coordinates.lng, soil_type.value,
    )

    return SoilProfile(
        location=display_name,
        soil_type=soil_type,
        ph=6.0 + seed % 2,
        texture=_texture(seed),
        organic_matter=2.5 + seed % 2,
        nutrients=_nutrients(seed),
        cec=10 + seed % 5,
    )
