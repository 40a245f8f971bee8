"""
Geocoding providers behind two capabilities:

    ForwardGeocoder.search(query, region_bias)  -> ResolvedLocation or None
    ReverseGeocoder.resolve(coordinates)        -> "Region, Country" or None

None means NotFound. Transport and parse failures raise ProviderError so the
resolver can tell them apart from an empty answer.

Providers:
    NominatimGeocoder      — OpenStreetMap Nominatim (forward + reverse)
    GoogleGeocoder         — Google Geocoding API (forward + reverse, API key)
    PostalCodeGeocoder     — offline postal code lookup via pgeocode (forward)
    CoordinateTextGeocoder — 'lat,lng' typed as text (forward)
"""

import asyncio
import logging
import math
import re
from typing import Dict, Iterable, List, Optional, Protocol

import pgeocode
import requests

from src.location.coordinates import (
    Coordinates,
    LocationSource,
    ResolvedLocation,
    is_coordinates,
    parse_coordinates,
)
from src.location.errors import ProviderError

logger = logging.getLogger(__name__)

NOMINATIM_BASE = "https://nominatim.openstreetmap.org"
GOOGLE_GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"

DEFAULT_TIMEOUT = 10.0
DEFAULT_USER_AGENT = "soil-profile-locator"

# Address keys Nominatim uses for the first-level region, most specific last
NOMINATIM_REGION_KEYS = ["state", "region", "province", "state_district", "county"]

# Ways a well-formed JSON document can still have the wrong shape
_PAYLOAD_ERRORS = (AttributeError, KeyError, IndexError, TypeError, ValueError)

COUNTRY_NAMES = {
    "IN": "India",
    "US": "United States",
    "GB": "United Kingdom",
    "CA": "Canada",
    "AU": "Australia",
    "DE": "Germany",
    "FR": "France",
}


class ForwardGeocoder(Protocol):
    name: str

    async def search(
        self, query: str, region_bias: Optional[str] = None
    ) -> Optional[ResolvedLocation]:
        ...


class ReverseGeocoder(Protocol):
    name: str

    async def resolve(self, coordinates: Coordinates) -> Optional[str]:
        ...


def _optional_text(value) -> Optional[str]:
    """Pass through a string or None; any other JSON value is a malformed field."""
    if value is None or isinstance(value, str):
        return value
    raise TypeError(f"expected a string, got {type(value).__name__}")


def format_region_country(region: Optional[str], country: Optional[str]) -> Optional[str]:
    """'{region}, {country}' when both parts are present, else None."""
    region = (region or "").strip()
    country = (country or "").strip()
    if region and country:
        return f"{region}, {country}"
    return None


class _HTTPGeocoder:
    """Shared request handling for the HTTP-backed providers."""

    name = "http"

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, headers: Optional[Dict] = None):
        self.timeout = timeout
        self.headers = {"Accept": "application/json"}
        if headers:
            self.headers.update(headers)

    def _get_json(self, url: str, params: Dict):
        try:
            resp = requests.get(url, params=params, timeout=self.timeout, headers=self.headers)
            resp.raise_for_status()
            return resp.json()
        except requests.exceptions.RequestException as e:
            raise ProviderError(f"{self.name} request failed: {e}") from e
        except ValueError as e:
            raise ProviderError(f"{self.name} returned malformed JSON: {e}") from e


class NominatimGeocoder(_HTTPGeocoder):
    """OpenStreetMap Nominatim. Requires an identifying User-Agent."""

    name = "nominatim"

    def __init__(
        self,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = DEFAULT_TIMEOUT,
        base_url: str = NOMINATIM_BASE,
    ):
        super().__init__(timeout=timeout, headers={"User-Agent": user_agent})
        self.base_url = base_url.rstrip("/")

    def _search(self, query: str, region_bias: Optional[str]) -> Optional[ResolvedLocation]:
        params = {"q": query, "format": "jsonv2", "limit": 1, "addressdetails": 1}
        if region_bias:
            params["countrycodes"] = region_bias.lower()

        data = self._get_json(f"{self.base_url}/search", params)
        if not isinstance(data, list):
            raise ProviderError(f"nominatim search returned {type(data).__name__}, expected list")
        if not data:
            return None

        try:
            hit = data[0]
            coords = Coordinates(lat=float(hit["lat"]), lng=float(hit["lon"]))
            name = _optional_text(hit.get("display_name"))
        except _PAYLOAD_ERRORS as e:
            raise ProviderError(f"nominatim returned a malformed result: {e!r}") from e

        return ResolvedLocation.create(coords, name, LocationSource.USER_TEXT)

    def _resolve(self, coordinates: Coordinates) -> Optional[str]:
        params = {
            "lat": coordinates.lat,
            "lon": coordinates.lng,
            "format": "jsonv2",
            "addressdetails": 1,
            "zoom": 10,
        }
        data = self._get_json(f"{self.base_url}/reverse", params)
        if not isinstance(data, dict):
            raise ProviderError("nominatim reverse returned a non-object payload")

        # Nominatim answers open ocean etc. with {"error": "Unable to geocode"}
        try:
            address = data.get("address") or {}
            region = next((address[k] for k in NOMINATIM_REGION_KEYS if address.get(k)), None)
            return format_region_country(
                _optional_text(region), _optional_text(address.get("country"))
            )
        except _PAYLOAD_ERRORS as e:
            raise ProviderError(f"nominatim returned a malformed address: {e!r}") from e

    async def search(
        self, query: str, region_bias: Optional[str] = None
    ) -> Optional[ResolvedLocation]:
        return await asyncio.to_thread(self._search, query, region_bias)

    async def resolve(self, coordinates: Coordinates) -> Optional[str]:
        return await asyncio.to_thread(self._resolve, coordinates)


class GoogleGeocoder(_HTTPGeocoder):
    """Google Maps Geocoding API."""

    name = "google"

    def __init__(self, api_key: str, timeout: float = DEFAULT_TIMEOUT, url: str = GOOGLE_GEOCODE_URL):
        if not api_key:
            raise ValueError("GoogleGeocoder requires an API key")
        super().__init__(timeout=timeout)
        self.api_key = api_key
        self.url = url

    def _results(self, params: Dict) -> List[Dict]:
        params = dict(params, key=self.api_key)
        data = self._get_json(self.url, params)
        status = data.get("status") if isinstance(data, dict) else None
        if status == "ZERO_RESULTS":
            return []
        if status != "OK":
            message = data.get("error_message", "") if isinstance(data, dict) else ""
            raise ProviderError(f"google geocoding status {status}: {message}")
        results = data.get("results") or []
        if not isinstance(results, list):
            raise ProviderError(f"google results were {type(results).__name__}, expected list")
        return results

    def _search(self, query: str, region_bias: Optional[str]) -> Optional[ResolvedLocation]:
        params = {"address": query}
        if region_bias:
            params["components"] = f"country:{region_bias.upper()}"
            params["region"] = region_bias.lower()

        results = self._results(params)
        if not results:
            return None

        try:
            hit = results[0]
            loc = hit["geometry"]["location"]
            coords = Coordinates(lat=float(loc["lat"]), lng=float(loc["lng"]))
            name = _optional_text(hit.get("formatted_address") or hit.get("name"))
        except _PAYLOAD_ERRORS as e:
            raise ProviderError(f"google returned a malformed result: {e!r}") from e

        return ResolvedLocation.create(coords, name, LocationSource.USER_TEXT)

    def _resolve(self, coordinates: Coordinates) -> Optional[str]:
        results = self._results({"latlng": f"{coordinates.lat},{coordinates.lng}"})
        if not results:
            return None

        region = country = None
        try:
            for component in results[0].get("address_components", []):
                types = component.get("types", [])
                if "administrative_area_level_1" in types:
                    region = _optional_text(component.get("long_name"))
                if "country" in types:
                    country = _optional_text(component.get("long_name"))
        except _PAYLOAD_ERRORS as e:
            raise ProviderError(f"google returned malformed address components: {e!r}") from e
        return format_region_country(region, country)

    async def search(
        self, query: str, region_bias: Optional[str] = None
    ) -> Optional[ResolvedLocation]:
        return await asyncio.to_thread(self._search, query, region_bias)

    async def resolve(self, coordinates: Coordinates) -> Optional[str]:
        return await asyncio.to_thread(self._resolve, coordinates)


_POSTAL_PATTERN = re.compile(r"^(?=.*\d)[A-Za-z0-9][A-Za-z0-9 \-]{2,8}$")


def _is_postal_code(text: str) -> bool:
    return bool(_POSTAL_PATTERN.match(text.strip()))


def _clean(value) -> Optional[str]:
    """pgeocode returns NaN for missing fields."""
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    text = str(value).strip()
    return None if not text or text == "nan" else text


class PostalCodeGeocoder:
    """
    Offline postal code lookup using the pgeocode GeoNames dataset.

    Only queries shaped like a postal code are answered; everything else is
    NotFound so the next provider in the chain gets a turn. The dataset for a
    country is downloaded on first use and cached by pgeocode.
    """

    name = "postal"

    def __init__(self, default_country: str = "IN"):
        self.default_country = default_country.upper()
        self._lookups: Dict[str, pgeocode.Nominatim] = {}

    def _lookup(self, country: str) -> pgeocode.Nominatim:
        if country not in self._lookups:
            self._lookups[country] = pgeocode.Nominatim(country)
        return self._lookups[country]

    def _search(self, query: str, region_bias: Optional[str]) -> Optional[ResolvedLocation]:
        country = (region_bias or self.default_country).upper()
        try:
            result = self._lookup(country).query_postal_code(query.strip())
        except (ValueError, OSError) as e:
            raise ProviderError(f"postal lookup for {country} failed: {e}") from e

        if result is None or _clean(getattr(result, "latitude", None)) is None:
            return None

        coords = Coordinates(lat=float(result.latitude), lng=float(result.longitude))
        parts = [
            _clean(getattr(result, "place_name", None)),
            _clean(getattr(result, "county_name", None)),
            _clean(getattr(result, "state_name", None)),
            COUNTRY_NAMES.get(country, country),
        ]
        # place_name can list several localities separated by commas
        if parts[0] and "," in parts[0]:
            parts[0] = parts[0].split(",")[0].strip()
        display = ", ".join(dict.fromkeys(p for p in parts if p))
        return ResolvedLocation.create(coords, display, LocationSource.USER_TEXT)

    async def search(
        self, query: str, region_bias: Optional[str] = None
    ) -> Optional[ResolvedLocation]:
        if not _is_postal_code(query):
            return None
        return await asyncio.to_thread(self._search, query, region_bias)


class CoordinateTextGeocoder:
    """Answers queries that are already 'lat,lng' coordinates."""

    name = "coordinates"

    async def search(
        self, query: str, region_bias: Optional[str] = None
    ) -> Optional[ResolvedLocation]:
        if not is_coordinates(query):
            return None
        try:
            lat, lng = parse_coordinates(query)
        except ValueError as e:
            logger.debug("Coordinate-like query rejected: %s", e)
            return None
        return ResolvedLocation.create(
            Coordinates(lat=lat, lng=lng), None, LocationSource.USER_TEXT
        )


def provider_names(providers: Iterable) -> List[str]:
    return [getattr(p, "name", type(p).__name__) for p in providers]
