"""
Resolver configuration from environment variables and provider registry.

Chains are comma-separated provider names in the order they are tried, e.g.
SOIL_GEOCODERS="coordinates,postal,google,nominatim".
"""

import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional

from src.location.geocoders import (
    DEFAULT_USER_AGENT,
    CoordinateTextGeocoder,
    GoogleGeocoder,
    NominatimGeocoder,
    PostalCodeGeocoder,
)
from src.location.positioning import IPCoordinateSource, PositioningConfig
from src.location.resolver import LocationResolver

logger = logging.getLogger(__name__)

DEFAULT_FORWARD_CHAIN = ["coordinates", "postal", "nominatim"]
DEFAULT_REVERSE_CHAIN = ["nominatim"]

FORWARD_PROVIDERS = {"coordinates", "postal", "nominatim", "google"}
REVERSE_PROVIDERS = {"nominatim", "google"}


def _split(value: Optional[str], default: List[str]) -> List[str]:
    if not value:
        return list(default)
    return [name.strip().lower() for name in value.split(",") if name.strip()]


def _flag(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ResolverConfig:
    """Provider chains and positioning settings for a LocationResolver."""
    forward_chain: List[str] = field(default_factory=lambda: list(DEFAULT_FORWARD_CHAIN))
    reverse_chain: List[str] = field(default_factory=lambda: list(DEFAULT_REVERSE_CHAIN))
    region_bias: Optional[str] = None
    postal_country: str = "IN"
    google_api_key: Optional[str] = None
    nominatim_user_agent: str = DEFAULT_USER_AGENT
    geocoding_timeout: float = 10.0
    positioning: Optional[str] = None  # "ip" or None
    positioning_config: PositioningConfig = field(default_factory=PositioningConfig)

    @classmethod
    def from_env(cls) -> "ResolverConfig":
        env = os.environ
        positioning = (env.get("SOIL_POSITIONING") or "none").strip().lower()
        return cls(
            forward_chain=_split(env.get("SOIL_GEOCODERS"), DEFAULT_FORWARD_CHAIN),
            reverse_chain=_split(env.get("SOIL_REVERSE_GEOCODERS"), DEFAULT_REVERSE_CHAIN),
            region_bias=env.get("SOIL_REGION_BIAS") or None,
            postal_country=env.get("SOIL_POSTAL_COUNTRY", "IN"),
            google_api_key=env.get("GOOGLE_MAPS_API_KEY") or None,
            nominatim_user_agent=env.get("NOMINATIM_USER_AGENT", DEFAULT_USER_AGENT),
            geocoding_timeout=float(env.get("GEOCODING_TIMEOUT", "10")),
            positioning=None if positioning == "none" else positioning,
            positioning_config=PositioningConfig(
                high_accuracy=_flag(env.get("POSITIONING_HIGH_ACCURACY"), True),
                timeout_ms=int(env.get("POSITIONING_TIMEOUT_MS", "10000")),
                max_cached_age_ms=int(env.get("POSITIONING_MAX_AGE_MS", "0")),
            ),
        )


def _build_provider(name: str, config: ResolverConfig, shared: dict):
    """Instantiate a provider by name; one instance per name is shared by both chains."""
    if name in shared:
        return shared[name]

    if name == "coordinates":
        provider = CoordinateTextGeocoder()
    elif name == "postal":
        provider = PostalCodeGeocoder(default_country=config.postal_country)
    elif name == "nominatim":
        provider = NominatimGeocoder(
            user_agent=config.nominatim_user_agent, timeout=config.geocoding_timeout
        )
    elif name == "google":
        if not config.google_api_key:
            logger.warning("Skipping 'google' geocoder: GOOGLE_MAPS_API_KEY is not set")
            provider = None
        else:
            provider = GoogleGeocoder(config.google_api_key, timeout=config.geocoding_timeout)
    else:
        raise ValueError(f"Unknown geocoding provider: '{name}'")

    shared[name] = provider
    return provider


def _build_chain(names: List[str], allowed: set, capability: str, config: ResolverConfig, shared: dict) -> list:
    chain = []
    for name in names:
        if name not in FORWARD_PROVIDERS | REVERSE_PROVIDERS:
            raise ValueError(f"Unknown geocoding provider: '{name}'")
        if name not in allowed:
            raise ValueError(f"Provider '{name}' cannot be used for {capability} geocoding")
        provider = _build_provider(name, config, shared)
        if provider is not None:
            chain.append(provider)
    if not chain:
        raise ValueError(f"No usable {capability} geocoder configured")
    return chain


def build_resolver(config: Optional[ResolverConfig] = None, coordinate_source=None) -> LocationResolver:
    """
    Build a LocationResolver from configuration.

    Args:
        config: ResolverConfig (default: from environment).
        coordinate_source: Overrides the configured positioning source.

    Raises:
        ValueError: On unknown provider names, a provider placed in a chain it
            cannot serve, or a chain left empty.
    """
    if config is None:
        config = ResolverConfig.from_env()

    shared = {}
    forward = _build_chain(config.forward_chain, FORWARD_PROVIDERS, "forward", config, shared)
    reverse = _build_chain(config.reverse_chain, REVERSE_PROVIDERS, "reverse", config, shared)

    if coordinate_source is None and config.positioning == "ip":
        coordinate_source = IPCoordinateSource(config.positioning_config)
    elif coordinate_source is None and config.positioning:
        raise ValueError(f"Unknown positioning source: '{config.positioning}'")

    logger.info(
        "Resolver chains: forward=%s reverse=%s bias=%s positioning=%s",
        [p.name for p in forward], [p.name for p in reverse],
        config.region_bias, type(coordinate_source).__name__ if coordinate_source else None,
    )
    return LocationResolver(
        forward,
        reverse,
        coordinate_source=coordinate_source,
        region_bias=config.region_bias,
    )
