"""
Coordinate sources: obtain the device's current position.

Python has no browser geolocation API, so two sources are provided:
    StaticCoordinateSource — a fix (or a platform error) handed in by the client
    IPCoordinateSource     — network positioning from the public IP address

Each call is a single attempt; retrying is the caller's decision.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Optional, Protocol

import requests

from src.location.coordinates import Coordinates
from src.location.errors import PositionErrorCode, PositioningError

logger = logging.getLogger(__name__)

IP_API_URL = "http://ip-api.com/json/"


@dataclass(frozen=True)
class PositioningConfig:
    """Options passed to the positioning backend."""
    high_accuracy: bool = True
    timeout_ms: int = 10000
    max_cached_age_ms: int = 0  # 0 = never reuse a cached fix


class CoordinateSource(Protocol):
    async def get_current_coordinates(self) -> Coordinates:
        ...


class StaticCoordinateSource:
    """
    Source for a fix obtained elsewhere, e.g. reported by a browser.

    When the client reported a positioning failure instead of a fix, pass
    its error code and every call raises the matching PositioningError.
    """

    def __init__(
        self,
        coordinates: Optional[Coordinates] = None,
        error_code: Optional[PositionErrorCode] = None,
    ):
        if coordinates is None and error_code is None:
            raise ValueError("Either coordinates or error_code is required")
        self.coordinates = coordinates
        self.error_code = error_code

    async def get_current_coordinates(self) -> Coordinates:
        if self.error_code is not None:
            raise PositioningError(self.error_code)
        return self.coordinates


class IPCoordinateSource:
    """
    Approximate position from the caller's public IP (ip-api.com JSON).

    high_accuracy has no effect for IP positioning; it is kept so all
    sources accept the same PositioningConfig.
    """

    def __init__(self, config: Optional[PositioningConfig] = None, url: str = IP_API_URL):
        self.config = config or PositioningConfig()
        self.url = url
        self._last_fix: Optional[Coordinates] = None
        self._last_fix_at: float = 0.0

    def _cached_fix(self) -> Optional[Coordinates]:
        if self._last_fix is None or self.config.max_cached_age_ms <= 0:
            return None
        age_ms = (time.monotonic() - self._last_fix_at) * 1000
        if age_ms <= self.config.max_cached_age_ms:
            logger.debug("Reusing cached fix (%.0f ms old)", age_ms)
            return self._last_fix
        return None

    def _fetch(self) -> Coordinates:
        try:
            resp = requests.get(
                self.url,
                params={"fields": "status,message,lat,lon"},
                timeout=self.config.timeout_ms / 1000.0,
            )
        except requests.exceptions.Timeout as e:
            raise PositioningError(PositionErrorCode.TIMEOUT, str(e))
        except requests.exceptions.RequestException as e:
            raise PositioningError(PositionErrorCode.POSITION_UNAVAILABLE, str(e))

        if resp.status_code in (401, 403):
            raise PositioningError(
                PositionErrorCode.PERMISSION_DENIED,
                f"Positioning service refused the request (HTTP {resp.status_code})",
            )
        try:
            resp.raise_for_status()
            data = resp.json()
            if data.get("status") != "success":
                raise ValueError(data.get("message", "lookup failed"))
            return Coordinates(lat=float(data["lat"]), lng=float(data["lon"]))
        except (requests.exceptions.RequestException, ValueError, KeyError, TypeError) as e:
            raise PositioningError(PositionErrorCode.POSITION_UNAVAILABLE, str(e))

    async def get_current_coordinates(self) -> Coordinates:
        cached = self._cached_fix()
        if cached is not None:
            return cached

        logger.info("Requesting IP position from %s", self.url)
        fix = await asyncio.to_thread(self._fetch)
        self._last_fix = fix
        self._last_fix_at = time.monotonic()
        return fix
