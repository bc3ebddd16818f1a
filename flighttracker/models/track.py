"""
Track - historical path of one aircraft, fetched on demand.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple


@dataclass(frozen=True)
class Waypoint:
    """One point of a track. Altitude is in metres."""
    latitude: float
    longitude: float
    altitude: float
    on_ground: bool
    time: Optional[int] = None
    heading: Optional[float] = None


@dataclass(frozen=True)
class Track:
    """Ordered waypoints for a single identity."""
    identity: str
    waypoints: Tuple[Waypoint, ...] = field(default_factory=tuple)
    callsign: str = ''
    start_time: Optional[int] = None
    end_time: Optional[int] = None

    def __len__(self) -> int:
        return len(self.waypoints)

    @property
    def key(self) -> str:
        return self.identity.strip().lower()

    @property
    def drawable(self) -> bool:
        """A line needs at least two points."""
        return len(self.waypoints) >= 2
