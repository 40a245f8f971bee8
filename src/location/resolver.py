"""
Location resolver: turns a text query or the device position into a
ResolvedLocation by walking ordered chains of geocoding providers.

Forward failures are fatal to the operation (LocationNotFound); reverse
failures only cost the nice name and fall back to "Current Location".
"""

import logging
from enum import Enum
from typing import List, Optional, Sequence

from src.location.coordinates import Coordinates, LocationSource, ResolvedLocation
from src.location.errors import (
    ErrorKind,
    LocationError,
    PositioningError,
    ProviderError,
)
from src.location.geocoders import ForwardGeocoder, ReverseGeocoder, provider_names
from src.location.positioning import CoordinateSource

logger = logging.getLogger(__name__)

CURRENT_LOCATION_LABEL = "Current Location"


class ResolverState(str, Enum):
    IDLE = "Idle"
    RESOLVING = "Resolving"
    RESOLVED = "Resolved"
    FAILED = "Failed"


class LocationResolver:
    """
    Resolve user intent to a ResolvedLocation with provider fallback.

    Only the most recently started resolution may change the resolver's
    observable state. A call that completes after a newer one was started
    returns None and its outcome, success or error, is dropped.

    Usage:
        resolver = LocationResolver([NominatimGeocoder()], [NominatimGeocoder()])
        location = await resolver.resolve_from_text("Pune")
    """

    def __init__(
        self,
        forward_geocoders: Sequence[ForwardGeocoder],
        reverse_geocoders: Sequence[ReverseGeocoder],
        coordinate_source: Optional[CoordinateSource] = None,
        region_bias: Optional[str] = None,
    ):
        if not forward_geocoders:
            raise ValueError("At least one forward geocoder is required")
        if not reverse_geocoders:
            raise ValueError("At least one reverse geocoder is required")
        self.forward_geocoders: List[ForwardGeocoder] = list(forward_geocoders)
        self.reverse_geocoders: List[ReverseGeocoder] = list(reverse_geocoders)
        self.coordinate_source = coordinate_source
        self.region_bias = region_bias

        self.state = ResolverState.IDLE
        self.result: Optional[ResolvedLocation] = None
        self.error: Optional[LocationError] = None
        self._generation = 0

    def _begin(self) -> int:
        self._generation += 1
        self.state = ResolverState.RESOLVING
        self.error = None
        return self._generation

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _finish(self, generation: int, result: ResolvedLocation) -> Optional[ResolvedLocation]:
        if not self._is_current(generation):
            logger.info("Dropping superseded resolution #%d", generation)
            return None
        self.state = ResolverState.RESOLVED
        self.result = result
        return result

    def _fail(self, generation: int, error: LocationError) -> None:
        if not self._is_current(generation):
            logger.info("Dropping superseded failure #%d (%s)", generation, error.kind.value)
            return
        self.state = ResolverState.FAILED
        self.result = None
        self.error = error
        raise error

    async def _search_chain(self, query: str, region_bias: Optional[str]) -> Optional[ResolvedLocation]:
        for provider in self.forward_geocoders:
            try:
                found = await provider.search(query, region_bias)
            except ProviderError as e:
                logger.warning("Forward geocoder %s failed: %s", provider.name, e)
                continue
            if found is not None:
                logger.info("Forward geocoder %s resolved '%s'", provider.name, query)
                return found
            logger.debug("Forward geocoder %s found nothing for '%s'", provider.name, query)
        return None

    async def _reverse_chain(self, coordinates: Coordinates) -> Optional[str]:
        for provider in self.reverse_geocoders:
            try:
                name = await provider.resolve(coordinates)
            except ProviderError as e:
                logger.warning("Reverse geocoder %s failed: %s", provider.name, e)
                continue
            if name:
                return name
            logger.debug("Reverse geocoder %s found nothing", provider.name)
        return None

    async def resolve_from_text(
        self, query: str, region_bias: Optional[str] = None
    ) -> Optional[ResolvedLocation]:
        """
        Resolve a free-text query through the forward chain.

        Args:
            query: Place name, address, postal code or 'lat,lng'.
            region_bias: ISO country code; defaults to the resolver's own.

        Returns:
            The ResolvedLocation, or None if a newer resolution superseded this one.

        Raises:
            LocationError: EmptyInput for a blank query (no provider is called),
                LocationNotFound when every provider came up empty.
        """
        if query is None or not query.strip():
            raise LocationError(ErrorKind.EMPTY_INPUT, "Location query is empty")

        query = query.strip()
        bias = region_bias or self.region_bias
        generation = self._begin()
        logger.info(
            "Resolving '%s' (bias=%s) via %s",
            query, bias, ", ".join(provider_names(self.forward_geocoders)),
        )

        found = await self._search_chain(query, bias)
        if found is None:
            return self._fail(
                generation,
                LocationError(ErrorKind.LOCATION_NOT_FOUND, f"No geocoder could resolve '{query}'"),
            )

        if found.source is not LocationSource.USER_TEXT:
            found = ResolvedLocation.create(found.coordinates, found.display_name, LocationSource.USER_TEXT)
        return self._finish(generation, found)

    async def resolve_from_device(self) -> Optional[ResolvedLocation]:
        """
        Resolve the device position, naming it through the reverse chain.

        Returns:
            The ResolvedLocation, or None if a newer resolution superseded this one.

        Raises:
            LocationError: UnsupportedCapability without a coordinate source,
                or the positioning error kind reported by the source.
        """
        generation = self._begin()

        if self.coordinate_source is None:
            return self._fail(
                generation,
                LocationError(ErrorKind.UNSUPPORTED_CAPABILITY, "No coordinate source configured"),
            )

        try:
            coordinates = await self.coordinate_source.get_current_coordinates()
        except PositioningError as e:
            logger.warning("Positioning failed: %s", e)
            return self._fail(generation, e.to_location_error())
        except LocationError as e:
            return self._fail(generation, e)

        if not self._is_current(generation):
            logger.info("Skipping reverse geocoding for superseded resolution #%d", generation)
            return None

        name = await self._reverse_chain(coordinates)
        if name is None:
            logger.warning(
                "Reverse geocoding gave no name for %.4f, %.4f; using '%s'",
                coordinates.lat, coordinates.lng, CURRENT_LOCATION_LABEL,
            )
            name = CURRENT_LOCATION_LABEL

        return self._finish(
            generation,
            ResolvedLocation.create(coordinates, name, LocationSource.DEVICE_LOCATION),
        )
