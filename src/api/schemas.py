"""
Pydantic request/response schemas for the soil profile API.
"""

from typing import List, Optional
from pydantic import BaseModel, Field, model_validator


class TextSearchRequest(BaseModel):
    """Input schema for POST /soil-profile."""
    query: str = Field(..., description="Place name, address, postal code or 'lat,lng'")
    region_bias: Optional[str] = Field(
        None, min_length=2, max_length=2,
        description="ISO 3166-1 alpha-2 country code to narrow results (e.g., 'in')",
    )

    model_config = {"json_schema_extra": {
        "examples": [{"query": "Nashik, Maharashtra", "region_bias": "in"}]
    }}


class CurrentLocationRequest(BaseModel):
    """
    Input schema for POST /soil-profile/current.

    Carries either the fix the browser obtained or the positioning error
    code it reported (1 permission denied, 2 unavailable, 3 timeout).
    An empty body defers to the server-side coordinate source.
    """
    lat: Optional[float] = Field(None, ge=-90, le=90, description="Latitude")
    lng: Optional[float] = Field(None, ge=-180, le=180, description="Longitude")
    error_code: Optional[int] = Field(None, ge=1, le=3, description="Geolocation error code")

    @model_validator(mode="after")
    def check_complete_fix(self):
        if (self.lat is None) != (self.lng is None):
            raise ValueError("Provide both lat and lng, or neither")
        return self

    model_config = {"json_schema_extra": {
        "examples": [{"lat": 19.9975, "lng": 73.7898}]
    }}


class CoordinatesModel(BaseModel):
    lat: float
    lng: float


class ResolvedLocationModel(BaseModel):
    coordinates: CoordinatesModel
    displayName: str
    source: str


class TextureModel(BaseModel):
    sand: int
    silt: int
    clay: int


class NutrientsModel(BaseModel):
    """Nutrient levels in ppm."""
    nitrogen: float
    phosphorus: float
    potassium: float
    calcium: float
    magnesium: float
    sulfur: float


class SoilProfileModel(BaseModel):
    location: str
    soilType: str
    ph: float
    phClass: str
    texture: TextureModel
    organicMatter: float
    nutrients: NutrientsModel
    cec: float


class SoilProfileResponse(BaseModel):
    """Output schema for both soil profile endpoints."""
    sessionId: int
    status: str
    source: str
    progressText: Optional[str] = Field(None, description="Progress label; null once Ready")
    resolvedLocation: ResolvedLocationModel
    soilProfile: SoilProfileModel


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    forward_geocoders: List[str]
    reverse_geocoders: List[str]
    positioning: bool
