"""
Flight - one aircraft's state at snapshot time.

Immutable value decoded from an OpenSky state vector. Numeric telemetry that
the aircraft did not report is carried as NaN rather than 0 so that
"unknown" is never mistaken for "zero knots" or "sea level" downstream.

Design notes:
- Identity is kept exactly as received; `key` is the case-insensitive form
  used for every lookup (registry, visibility, selection).
- A Flight without a usable position is never stored; see `valid`.
"""

import math
from dataclasses import dataclass
from typing import Optional

METERS_TO_FEET = 3.28084
MPS_TO_KNOTS = 1.94384


def is_known(value: float) -> bool:
    """True if a telemetry value was reported (not NaN)."""
    return not math.isnan(value)


@dataclass(frozen=True)
class Flight:
    """
    Decoded aircraft state.

    longitude/latitude of 0.0 mean "no position"; altitude, velocity,
    heading and vertical_rate are NaN when not reported.
    """
    identity: str
    callsign: str = ''
    country: str = ''
    longitude: float = 0.0
    latitude: float = 0.0
    altitude: float = math.nan
    on_ground: bool = False
    velocity: float = math.nan
    heading: float = math.nan
    vertical_rate: float = math.nan
    squawk: str = ''

    def __repr__(self) -> str:
        return f'<Flight {self.identity} {self.callsign or "?"} @ {self.display_altitude:.0f}m>'

    @property
    def key(self) -> str:
        """Case-insensitive identity used as the stable lookup key."""
        return self.identity.strip().lower()

    @property
    def has_position(self) -> bool:
        """Position is present and inside WGS84 bounds."""
        lon, lat = self.longitude, self.latitude
        if math.isnan(lon) or math.isnan(lat):
            return False
        if lon == 0.0 and lat == 0.0:
            return False
        return -180.0 <= lon <= 180.0 and -90.0 <= lat <= 90.0

    @property
    def valid(self) -> bool:
        return bool(self.key) and self.has_position

    # -------------------------------------------------------------------------
    # Display helpers - convert to human-friendly units
    # -------------------------------------------------------------------------

    @property
    def altitude_ft(self) -> Optional[float]:
        """Barometric altitude in feet."""
        if not is_known(self.altitude):
            return None
        return self.altitude * METERS_TO_FEET

    @property
    def speed_kts(self) -> Optional[float]:
        """Ground speed in knots."""
        if not is_known(self.velocity):
            return None
        return self.velocity * MPS_TO_KNOTS

    @property
    def heading_known(self) -> bool:
        return is_known(self.heading)

    @property
    def display_heading(self) -> float:
        """Heading for symbol rotation; unknown headings point north."""
        if not self.heading_known:
            return 0.0
        return self.heading % 360.0

    @property
    def display_altitude(self) -> float:
        """Altitude in metres with unknown treated as ground level."""
        return self.altitude if is_known(self.altitude) else 0.0

    @property
    def display_callsign(self) -> str:
        """Callsign for display, with fallback."""
        return self.callsign or self.identity[:6].upper()
