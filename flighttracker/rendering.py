"""
Presenter boundary.

The core never draws; it hands a Presenter plain values:
- per flight: position, heading, category code, altitude colour, visibility
- for the selection: popup title and rows
- for a track: (lon, lat, altitude, colour) vertices

`Presenter` is the interface a map front end implements. `LoggingPresenter`
is the headless implementation used by the command-line entry point.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from flighttracker.models import Flight, Track, is_known, METERS_TO_FEET, MPS_TO_KNOTS

logger = logging.getLogger(__name__)

Color = Tuple[int, int, int]

# (upper bound in feet, colour); low altitudes warm, high altitudes cool
ALTITUDE_COLOR_BANDS: Tuple[Tuple[float, Color], ...] = (
    (500, (255, 69, 0)),
    (1000, (255, 140, 0)),
    (2000, (255, 215, 0)),
    (4000, (255, 255, 0)),
    (6000, (173, 255, 47)),
    (8000, (0, 255, 0)),
    (10000, (0, 255, 127)),
    (20000, (0, 191, 255)),
    (30000, (0, 100, 255)),
    (40000, (138, 43, 226)),
)
ABOVE_BANDS_COLOR: Color = (128, 0, 128)

# Symbol categories understood by the presenter
CATEGORY_UNKNOWN = 1
CATEGORY_LIGHT = 2
CATEGORY_SMALL = 3
CATEGORY_LARGE = 4
CATEGORY_CARGO = 6
CATEGORY_ROTORCRAFT = 8

CARGO_MARKERS = ('FDX', 'UPS', 'CARGO', 'ABX')
ROTORCRAFT_MARKERS = ('MED', 'RESCUE', 'LIFE', 'HELI')


def altitude_color(altitude_m: float) -> Color:
    """Colour for an altitude in metres; unknown counts as ground level."""
    feet = altitude_m * METERS_TO_FEET if is_known(altitude_m) else 0.0
    for upper, color in ALTITUDE_COLOR_BANDS:
        if feet <= upper:
            return color
    return ABOVE_BANDS_COLOR


def category_for_callsign(callsign: str) -> int:
    """
    Best-effort symbol category from the callsign.

    US N-numbers are light aircraft, cargo and medical operators are
    recognised by name, otherwise the callsign length separates airline
    flights from short general-aviation registrations.
    """
    callsign = (callsign or '').strip().upper()
    if not callsign:
        return CATEGORY_UNKNOWN

    if callsign.startswith('N') and sum(c.isdigit() for c in callsign) >= 2:
        return CATEGORY_LIGHT
    if any(marker in callsign for marker in CARGO_MARKERS):
        return CATEGORY_CARGO
    if any(marker in callsign for marker in ROTORCRAFT_MARKERS):
        return CATEGORY_ROTORCRAFT
    if len(callsign) <= 5:
        return CATEGORY_SMALL
    if len(callsign) <= 7:
        return CATEGORY_LARGE
    return CATEGORY_SMALL


@dataclass(frozen=True)
class FlightGraphic:
    """Render-ready values for one flight symbol."""
    identity: str
    longitude: float
    latitude: float
    altitude: float
    heading: float
    category: int
    color: Color
    visible: bool = True

    @classmethod
    def from_flight(cls, flight: Flight, visible: bool = True) -> 'FlightGraphic':
        return cls(
            identity=flight.identity,
            longitude=flight.longitude,
            latitude=flight.latitude,
            altitude=flight.display_altitude,
            heading=flight.display_heading,
            category=category_for_callsign(flight.callsign),
            color=altitude_color(flight.altitude),
            visible=visible,
        )


def build_graphics(
    flights: Iterable[Flight],
    visibility: Optional[Dict[str, bool]] = None,
) -> List[FlightGraphic]:
    """Graphics for a snapshot; flights missing from `visibility` are shown."""
    visibility = visibility or {}
    return [FlightGraphic.from_flight(f, visibility.get(f.key, True)) for f in flights]


@dataclass(frozen=True)
class FlightDetails:
    """Popup content: a title and ordered (label, value) rows."""
    identity: str
    title: str
    rows: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    def as_dict(self) -> Dict[str, str]:
        return dict(self.rows)


def flight_details(flight: Flight) -> FlightDetails:
    """Build popup content for a flight."""
    rows = [
        ('ICAO24', flight.identity),
        ('Callsign', flight.callsign or 'Unknown'),
        ('Country', flight.country),
        ('Status', 'On Ground' if flight.on_ground else 'Airborne'),
        ('Position', f'{flight.latitude:.6f}, {flight.longitude:.6f}'),
    ]
    if is_known(flight.altitude) and flight.altitude > 0:
        rows.append(('Altitude', f'{flight.altitude:.0f} m ({flight.altitude * METERS_TO_FEET:.0f} ft)'))
    if is_known(flight.velocity) and flight.velocity > 0:
        rows.append(('Speed', f'{flight.velocity:.1f} m/s ({flight.velocity * MPS_TO_KNOTS:.0f} knots)'))

    title = flight.callsign or f'Flight {flight.identity[:6]}'
    return FlightDetails(identity=flight.identity, title=title, rows=tuple(rows))


def track_vertices(track: Track) -> List[Tuple[float, float, float, Color]]:
    """
    Line vertices for a track, coloured per waypoint altitude.

    On-ground waypoints are drawn at altitude 0. Returns an empty list when
    fewer than two waypoints survive.
    """
    vertices = []
    for waypoint in track.waypoints:
        if waypoint.latitude == 0.0 and waypoint.longitude == 0.0:
            continue
        altitude = 0.0 if waypoint.on_ground else waypoint.altitude
        vertices.append((waypoint.longitude, waypoint.latitude, altitude, altitude_color(altitude)))
    if len(vertices) < 2:
        return []
    return vertices


class Presenter:
    """
    Interface between the tracker and whatever draws the map.

    Every method is a no-op here so front ends override only what they
    render.
    """

    def show_flights(self, graphics: Sequence[FlightGraphic]) -> None:
        """Replace all flight symbols."""

    def set_visibility(self, visibility: Dict[str, bool]) -> None:
        """Show/hide symbols by flight key."""

    def show_selection(self, flight: Flight, details: FlightDetails) -> None:
        """Draw the selection ring and popup."""

    def clear_selection(self) -> None:
        """Remove the selection ring and close the popup."""

    def release_details(self, details: FlightDetails) -> None:
        """Dispose of a popup that has been closed."""

    def draw_track(self, identity: str, vertices: Sequence[Tuple[float, float, float, Color]]) -> None:
        """Draw a track polyline."""

    def clear_track(self) -> None:
        """Remove the track polyline."""

    def location_to_screen(self, longitude: float, latitude: float) -> Optional[Tuple[float, float]]:
        """Project a position to screen pixels, or None when off screen."""
        return None


class LoggingPresenter(Presenter):
    """Headless presenter that reports what would be drawn."""

    def __init__(self):
        self.graphics: List[FlightGraphic] = []
        self.visible_count = 0

    def show_flights(self, graphics: Sequence[FlightGraphic]) -> None:
        self.graphics = list(graphics)
        logger.debug(f'Presenter received {len(self.graphics)} flight graphics')

    def set_visibility(self, visibility: Dict[str, bool]) -> None:
        self.visible_count = sum(1 for v in visibility.values() if v)
        logger.info(f'Showing {self.visible_count}/{len(visibility)} flights')

    def show_selection(self, flight: Flight, details: FlightDetails) -> None:
        summary = ', '.join(f'{label}: {value}' for label, value in details.rows)
        logger.info(f'{details.title} - {summary}')

    def clear_selection(self) -> None:
        logger.debug('Selection cleared')

    def draw_track(self, identity: str, vertices: Sequence[Tuple[float, float, float, Color]]) -> None:
        logger.info(f'Track for {identity}: {len(vertices)} points')

    def clear_track(self) -> None:
        logger.debug('Track cleared')
