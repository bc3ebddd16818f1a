"""
Data ingestion module for FlightTracker.

Handles OpenSky authentication, polling the states and tracks endpoints,
and decoding positional state vectors into Flight values.
"""

from flighttracker.ingestion.auth import AuthSession
from flighttracker.ingestion.decoder import decode_record, decode_states, decode_track
from flighttracker.ingestion.telemetry import TelemetrySource

__all__ = [
    'AuthSession',
    'TelemetrySource',
    'decode_record',
    'decode_states',
    'decode_track',
]
