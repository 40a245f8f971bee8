"""
Location resolution for the soil profile service.

Modules:
    coordinates — Coordinates / ResolvedLocation value types
    errors      — Error kinds and user-facing messages
    positioning — Current-position sources (client-reported fix, IP lookup)
    geocoders   — Forward/reverse geocoding providers (Nominatim, Google, pgeocode)
    resolver    — Provider fallback chains and superseding resolution
    session     — Request state machine feeding the soil synthesizer
    config      — Environment configuration and provider registry
"""
