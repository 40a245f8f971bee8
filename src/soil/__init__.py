"""
Soil profile types and the coordinate-seeded profile synthesizer.

Modules:
    profile     — SoilProfile, Texture, Nutrients, SoilType
    synthesizer — Deterministic coordinates -> SoilProfile derivation
"""
