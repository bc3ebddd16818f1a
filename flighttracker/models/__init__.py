"""
Value types for FlightTracker.

Flights are immutable snapshots of one aircraft; a new snapshot replaces
them wholesale rather than mutating them.
"""

from flighttracker.models.flight import Flight, is_known, METERS_TO_FEET, MPS_TO_KNOTS
from flighttracker.models.track import Track, Waypoint

__all__ = [
    'Flight',
    'Track',
    'Waypoint',
    'is_known',
    'METERS_TO_FEET',
    'MPS_TO_KNOTS',
]
