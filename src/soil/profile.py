"""
Soil profile data types.

Values are placeholders seeded from coordinates, not measurements. Units:
texture and organic matter in %, nutrients in ppm, CEC in meq/100g.
"""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Dict, List

# pH classification bounds
ACIDIC_BELOW = 6.5
ALKALINE_ABOVE = 7.5


class SoilType(str, Enum):
    CLAY = "Clay"
    SANDY = "Sandy"
    SILT = "Silt"
    LOAM = "Loam"
    CLAY_LOAM = "Clay Loam"
    SANDY_LOAM = "Sandy Loam"
    PEAT = "Peat"


# Indexing order is part of the derivation; do not reorder.
SOIL_TYPES: List[SoilType] = [
    SoilType.CLAY,
    SoilType.SANDY,
    SoilType.SILT,
    SoilType.LOAM,
    SoilType.CLAY_LOAM,
    SoilType.SANDY_LOAM,
    SoilType.PEAT,
]


@dataclass(frozen=True)
class Texture:
    """Sand/silt/clay percentages. Derived independently; total may differ from 100."""
    sand: int
    silt: int
    clay: int

    @property
    def total(self) -> int:
        return self.sand + self.silt + self.clay


@dataclass(frozen=True)
class Nutrients:
    nitrogen: float
    phosphorus: float
    potassium: float
    calcium: float
    magnesium: float
    sulfur: float


@dataclass(frozen=True)
class SoilProfile:
    location: str
    soil_type: SoilType
    ph: float
    texture: Texture
    organic_matter: float
    nutrients: Nutrients
    cec: float

    @property
    def ph_class(self) -> str:
        """Acidic / Neutral / Alkaline label for the pH value."""
        if self.ph < ACIDIC_BELOW:
            return "Acidic"
        if self.ph > ALKALINE_ABOVE:
            return "Alkaline"
        return "Neutral"

    def to_dict(self) -> Dict:
        """Render-ready dict with the camelCase keys the UI consumes."""
        return {
            "location": self.location,
            "soilType": self.soil_type.value,
            "ph": self.ph,
            "phClass": self.ph_class,
            "texture": asdict(self.texture),
            "organicMatter": self.organic_matter,
            "nutrients": asdict(self.nutrients),
            "cec": self.cec,
        }
