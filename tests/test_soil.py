"""Tests for the coordinate-seeded soil profile synthesizer."""

import math
import sys
import pytest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.location.coordinates import Coordinates
from src.soil.profile import SOIL_TYPES, SoilType
from src.soil.synthesizer import compute_seed, synthesize


class TestSeed:
    @pytest.mark.parametrize("lat,lng", [
        (0.0, 0.0), (35.0, -100.0), (-89.9, 179.9), (12.9716, 77.5946), (90.0, -180.0),
    ])
    def test_seed_in_range(self, lat, lng):
        """The seed stays within [0, 10]."""
        seed = compute_seed(Coordinates(lat, lng))
        assert 0.0 <= seed <= 10.0

    def test_seed_formula(self):
        """The seed averages |sin(lat)| and |cos(lng)| scaled to 10."""
        c = Coordinates(35.0, -100.0)
        expected = (abs(math.sin(35.0)) * 10 + abs(math.cos(-100.0)) * 10) / 2
        assert compute_seed(c) == expected


class TestSynthesize:
    def test_deterministic(self):
        """Equal coordinates give equal profiles."""
        c = Coordinates(18.5204, 73.8567)
        assert synthesize(c, "Pune") == synthesize(Coordinates(18.5204, 73.8567), "Pune")

    def test_soil_type_order_is_fixed(self):
        """Soil types are indexed in a fixed order."""
        assert [t.value for t in SOIL_TYPES] == [
            "Clay", "Sandy", "Silt", "Loam", "Clay Loam", "Sandy Loam", "Peat",
        ]

    def test_zero_seed_is_clay(self):
        """A seed of zero selects Clay."""
        # sin(0) = 0 and cos(pi/2) ~ 0, so the seed is ~0 -> index 0
        profile = synthesize(Coordinates(0.0, math.pi / 2), "x")
        assert profile.soil_type == SoilType.CLAY

    def test_origin_profile(self):
        """Every value at 0,0 matches the derivation."""
        # sin(0)=0, cos(0)=1 -> seed = 5.0
        profile = synthesize(Coordinates(0.0, 0.0), "Null Island")

        assert profile.location == "Null Island"
        assert profile.soil_type == SoilType.SANDY_LOAM
        assert profile.ph == 7.0
        assert profile.ph_class == "Neutral"
        assert (profile.texture.sand, profile.texture.silt, profile.texture.clay) == (40, 45, 20)
        assert profile.texture.total == 105
        assert profile.organic_matter == 3.5
        assert profile.cec == 10.0
        n = profile.nutrients
        assert (n.nitrogen, n.phosphorus, n.potassium) == (125, 155, 95)
        assert (n.calcium, n.magnesium, n.sulfur) == (3400, 680, 60)

    def test_max_seed_profile(self):
        """A seed of 10 wraps to Loam with acidic pH."""
        # sin(pi/2)=1, cos(0)=1 -> seed = 10.0 -> index 10 % 7 = 3
        profile = synthesize(Coordinates(math.pi / 2, 0.0), "x")

        assert profile.soil_type == SoilType.LOAM
        assert profile.ph == 6.0
        assert profile.ph_class == "Acidic"
        assert profile.nutrients.nitrogen == 225
        assert profile.texture.sand == 30

    def test_high_ph_is_alkaline(self):
        """A seed of 1.8 gives pH 7.8, above the alkaline threshold."""
        # sin(0)=0, |cos(lng)|=0.36 -> seed = 1.8
        profile = synthesize(Coordinates(0.0, math.acos(0.36)), "x")

        assert profile.ph == pytest.approx(7.8)
        assert profile.ph_class == "Alkaline"
        assert profile.soil_type == SoilType.SANDY
        assert profile.to_dict()["phClass"] == "Alkaline"

    def test_derivation_chain(self):
        """Type, pH, nitrogen and CEC follow from the seed."""
        c = Coordinates(35.0, -100.0)
        seed = (abs(math.sin(35.0)) * 10 + abs(math.cos(-100.0)) * 10) / 2
        profile = synthesize(c, "Texas Panhandle")

        assert profile.soil_type == SOIL_TYPES[math.floor(seed) % 7]
        assert profile.soil_type == SoilType.PEAT
        assert profile.ph == pytest.approx(6.0 + seed % 2)
        assert profile.nutrients.nitrogen == 25 + math.floor(seed * 20) == 154
        assert profile.cec == pytest.approx(10 + seed % 5)

    def test_values_non_negative(self):
        """Nutrients are non-negative and pH stays in [6, 8) on a global grid."""
        for lat in range(-90, 91, 15):
            for lng in range(-180, 181, 30):
                profile = synthesize(Coordinates(lat, lng), "grid")
                assert all(v >= 0 for v in vars(profile.nutrients).values())
                assert 6.0 <= profile.ph < 8.0

    def test_to_dict_uses_ui_keys(self):
        """to_dict renders the camelCase keys the UI reads."""
        data = synthesize(Coordinates(0.0, 0.0), "Null Island").to_dict()

        assert data["soilType"] == "Sandy Loam"
        assert data["organicMatter"] == 3.5
        assert data["phClass"] == "Neutral"
        assert data["texture"] == {"sand": 40, "silt": 45, "clay": 20}
        assert set(data["nutrients"]) == {
            "nitrogen", "phosphorus", "potassium", "calcium", "magnesium", "sulfur",
        }
