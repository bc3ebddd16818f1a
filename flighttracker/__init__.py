"""
FlightTracker Core Package.

Live flight-tracking engine built on asyncio and aiohttp, polling the
OpenSky Network REST API.

Modules:
    ingestion/     OAuth2 session, telemetry source and state-vector decoder
    models/        Flight and Track value types
    registry.py    Latest snapshot of decoded flights, keyed by identity
    continents.py  Country to continent classification for the filter UI
    filters.py     Visibility predicate and debounced recompute
    selection.py   Selection state that survives snapshot replacement
    rendering.py   Presenter boundary (colours, categories, track vertices)
    tracker.py     Refresh cycle orchestration
    config.py      Centralized configuration from config.json and environment
"""

__version__ = '1.0.0'
