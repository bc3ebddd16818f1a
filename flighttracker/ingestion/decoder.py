"""
Decoder for the OpenSky positional wire format.

State vectors arrive as arrays with no field names; the index IS the
schema. Everything downstream works on `Flight` and `Track` values, so raw
arrays never leave this module.

OpenSky state vector format (array indices):
0: icao24          - ICAO24 hex address
1: callsign        - Callsign (8 chars max, space padded)
2: origin_country  - Country of registration
3: time_position   - Unix timestamp of last position update
4: last_contact    - Unix timestamp of last message
5: longitude       - WGS84 longitude
6: latitude        - WGS84 latitude
7: baro_altitude   - Barometric altitude (meters)
8: on_ground       - Boolean
9: velocity        - Ground speed (m/s)
10: true_track     - Track angle (degrees, 0=north)
11: vertical_rate  - Vertical rate (m/s)
12: sensors        - Sensor IDs (array)
13: geo_altitude   - Geometric altitude (meters)
14: squawk         - Transponder code
15: spi            - Special position indicator
16: position_source - 0=ADS-B, 1=ASTERIX, 2=MLAT, 3=FLARM

Track path waypoint format:
0: time, 1: latitude, 2: longitude, 3: baro_altitude, 4: true_track, 5: on_ground
"""

import logging
import math
from typing import Any, Iterable, List, Optional

from flighttracker.models import Flight, Track, Waypoint

logger = logging.getLogger(__name__)

MIN_RECORD_LENGTH = 17
MIN_WAYPOINT_LENGTH = 6

IDX_ICAO24 = 0
IDX_CALLSIGN = 1
IDX_COUNTRY = 2
IDX_LONGITUDE = 5
IDX_LATITUDE = 6
IDX_ALTITUDE = 7
IDX_ON_GROUND = 8
IDX_VELOCITY = 9
IDX_HEADING = 10
IDX_VERTICAL_RATE = 11
IDX_SQUAWK = 14

INVALID_FLIGHT = Flight(identity='')


def _to_float(value: Any) -> float:
    """Numeric field or NaN when null/missing/non-numeric."""
    # bool is an int subclass but never a valid measurement
    if value is None or isinstance(value, bool):
        return math.nan
    if isinstance(value, (int, float)):
        return float(value)
    return math.nan


def _to_coordinate(value: Any) -> float:
    """Coordinates decode to 0.0 when absent, which marks "no position"."""
    number = _to_float(value)
    return 0.0 if math.isnan(number) else number


def _to_str(value: Any) -> str:
    return value if isinstance(value, str) else ''


def decode_record(record: Any) -> Flight:
    """
    Decode one state vector into a Flight.

    Returns a Flight whose `valid` is False if the record is malformed, has
    no identity, or has no position; callers drop those.
    """
    if not isinstance(record, (list, tuple)) or len(record) < MIN_RECORD_LENGTH:
        return INVALID_FLIGHT

    identity = _to_str(record[IDX_ICAO24]).strip()
    if not identity:
        return INVALID_FLIGHT

    return Flight(
        identity=identity,
        callsign=_to_str(record[IDX_CALLSIGN]).strip(),
        country=_to_str(record[IDX_COUNTRY]),
        longitude=_to_coordinate(record[IDX_LONGITUDE]),
        latitude=_to_coordinate(record[IDX_LATITUDE]),
        altitude=_to_float(record[IDX_ALTITUDE]),
        on_ground=bool(record[IDX_ON_GROUND]),
        velocity=_to_float(record[IDX_VELOCITY]),
        heading=_to_float(record[IDX_HEADING]),
        vertical_rate=_to_float(record[IDX_VERTICAL_RATE]),
        squawk=_to_str(record[IDX_SQUAWK]),
    )


def decode_states(states: Optional[Iterable[Any]]) -> List[Flight]:
    """Decode a `states` array, keeping only valid flights in order."""
    if not states:
        return []

    flights = []
    dropped = 0
    for record in states:
        flight = decode_record(record)
        if flight.valid:
            flights.append(flight)
        else:
            dropped += 1

    logger.debug(f'Decoded {len(flights)} flights, dropped {dropped} invalid records')
    return flights


def _decode_waypoint(raw: Any) -> Optional[Waypoint]:
    if not isinstance(raw, (list, tuple)) or len(raw) < MIN_WAYPOINT_LENGTH:
        return None

    latitude = _to_coordinate(raw[1])
    longitude = _to_coordinate(raw[2])
    if latitude == 0.0 and longitude == 0.0:
        return None

    altitude = _to_float(raw[3])
    heading = _to_float(raw[4])
    time_value = raw[0] if isinstance(raw[0], int) and not isinstance(raw[0], bool) else None

    return Waypoint(
        latitude=latitude,
        longitude=longitude,
        altitude=0.0 if math.isnan(altitude) else altitude,
        on_ground=bool(raw[5]),
        time=time_value,
        heading=None if math.isnan(heading) else heading,
    )


def decode_track(identity: str, payload: Any) -> Track:
    """
    Decode a /tracks/all response body into a Track.

    Waypoints that are short or sit at (0, 0) are skipped.
    """
    if not isinstance(payload, dict):
        return Track(identity=identity)

    waypoints = []
    for raw in payload.get('path') or []:
        waypoint = _decode_waypoint(raw)
        if waypoint is not None:
            waypoints.append(waypoint)

    start_time = payload.get('startTime')
    end_time = payload.get('endTime')

    return Track(
        identity=identity,
        waypoints=tuple(waypoints),
        callsign=_to_str(payload.get('callsign')).strip(),
        start_time=start_time if isinstance(start_time, int) else None,
        end_time=end_time if isinstance(end_time, int) else None,
    )
