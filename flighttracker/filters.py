"""
Flight visibility filtering.

A flight is visible when it passes every rule (AND):
- Country:   empty selection hides everything; selecting the whole country
             universe disables the rule; otherwise blank countries pass and
             the rest must be selected
- Status:    All / Airborne / OnGround
- Altitude:  feet, unknown altitude counts as ground level
- Speed:     knots, unknown speed estimated from altitude
- Vertical:  Climbing > 0.5 m/s, Descending < -0.5 m/s, Level in between
             (or unknown)

Band maxima equal to the slider tops (40000 ft, 600 kt) mean "no upper
limit", so a 50000 ft airliner is not hidden by the default band.

Filter mutations are debounced: dragging several sliders produces one
recompute once the user pauses, not one per change.
"""

import asyncio
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Iterable, List, Optional, Set

from flighttracker.config import config
from flighttracker.models import Flight, is_known
from flighttracker.registry import FlightRegistry
from flighttracker.signals import Signal

logger = logging.getLogger(__name__)

ALTITUDE_FILTER_MAX_FT = 40000.0
SPEED_FILTER_MAX_KTS = 600.0

# ~100 fpm; anything inside is level flight
LEVEL_RATE_THRESHOLD_MPS = 0.5

# Speed assumed when velocity is not reported
CRUISE_SPEED_ESTIMATE_KTS = 150.0
CRUISE_ESTIMATE_MIN_ALTITUDE_FT = 1000.0


class FlightStatus(str, Enum):
    """Ground status filter."""
    ALL = 'All'
    AIRBORNE = 'Airborne'
    ON_GROUND = 'OnGround'


class VerticalStatus(str, Enum):
    """Vertical-rate class filter."""
    ALL = 'All'
    CLIMBING = 'Climbing'
    DESCENDING = 'Descending'
    LEVEL = 'Level'


@dataclass
class FilterState:
    """Current filter configuration. Bands are inclusive."""
    selected_countries: Set[str] = field(default_factory=set)
    status: FlightStatus = FlightStatus.ALL
    min_altitude_ft: float = 0.0
    max_altitude_ft: float = ALTITUDE_FILTER_MAX_FT
    min_speed_kts: float = 0.0
    max_speed_kts: float = SPEED_FILTER_MAX_KTS
    vertical_status: VerticalStatus = VerticalStatus.ALL

    def copy(self) -> 'FilterState':
        return replace(self, selected_countries=set(self.selected_countries))


# -----------------------------------------------------------------------------
# Predicate
# -----------------------------------------------------------------------------

def _in_band(value: float, low: float, high: float, open_high: float) -> bool:
    if value < low:
        return False
    if high >= open_high:
        return True
    return value <= high


def filter_altitude_ft(flight: Flight) -> float:
    """Altitude used for filtering; unknown is ground level."""
    altitude_ft = flight.altitude_ft
    return 0.0 if altitude_ft is None else altitude_ft


def filter_speed_kts(flight: Flight) -> float:
    """Speed used for filtering; unknown is estimated from altitude."""
    speed_kts = flight.speed_kts
    if speed_kts is not None:
        return speed_kts
    if filter_altitude_ft(flight) > CRUISE_ESTIMATE_MIN_ALTITUDE_FT:
        return CRUISE_SPEED_ESTIMATE_KTS
    return 0.0


def passes_country(flight: Flight, selected: Set[str], universe_size: int) -> bool:
    if not selected:
        return False
    if len(selected) == universe_size:
        return True
    country = flight.country.strip()
    return not country or country in selected


def passes_status(flight: Flight, status: FlightStatus) -> bool:
    if status == FlightStatus.AIRBORNE:
        return not flight.on_ground
    if status == FlightStatus.ON_GROUND:
        return flight.on_ground
    return True


def passes_vertical(flight: Flight, vertical: VerticalStatus) -> bool:
    rate = flight.vertical_rate
    if vertical == VerticalStatus.CLIMBING:
        return is_known(rate) and rate > LEVEL_RATE_THRESHOLD_MPS
    if vertical == VerticalStatus.DESCENDING:
        return is_known(rate) and rate < -LEVEL_RATE_THRESHOLD_MPS
    if vertical == VerticalStatus.LEVEL:
        return not is_known(rate) or -LEVEL_RATE_THRESHOLD_MPS <= rate <= LEVEL_RATE_THRESHOLD_MPS
    return True


def evaluate(flight: Flight, state: FilterState, country_universe_size: int) -> bool:
    """
    Visibility decision for one flight.

    Args:
        flight: Decoded flight
        state: Filter configuration
        country_universe_size: Count of all countries the user can pick from
    """
    return (
        passes_country(flight, state.selected_countries, country_universe_size)
        and passes_status(flight, state.status)
        and _in_band(
            filter_altitude_ft(flight),
            state.min_altitude_ft, state.max_altitude_ft, ALTITUDE_FILTER_MAX_FT,
        )
        and _in_band(
            filter_speed_kts(flight),
            state.min_speed_kts, state.max_speed_kts, SPEED_FILTER_MAX_KTS,
        )
        and passes_vertical(flight, state.vertical_status)
    )


# -----------------------------------------------------------------------------
# Engine
# -----------------------------------------------------------------------------

class FilterEngine:
    """
    Owns the filter state and the per-flight visibility map.

    Listeners on `recomputed` receive {flight key: visible} after every
    recompute; the selection tracker uses it to drop a filtered-out
    selection and the presenter to show/hide graphics.
    """

    def __init__(
        self,
        registry: FlightRegistry,
        state: Optional[FilterState] = None,
        debounce_ms: Optional[int] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self.registry = registry
        self.state = state or FilterState()
        if debounce_ms is None:
            debounce_ms = config.refresh.filter_debounce_ms
        self.debounce_seconds = debounce_ms / 1000.0
        self._loop = loop

        self._available: Dict[str, List[str]] = {}
        self._universe: Set[str] = set()
        self._visibility: Dict[str, bool] = {}
        self._handle: Optional[asyncio.TimerHandle] = None
        self._recompute_count: int = 0

        self.recomputed = Signal('filters_recomputed')
        self.available_countries_changed = Signal('available_countries_changed')

    # -------------------------------------------------------------------------
    # Country universe
    # -------------------------------------------------------------------------

    @property
    def available_countries(self) -> Dict[str, List[str]]:
        """Continent -> sorted countries the user can pick from."""
        return self._available

    @property
    def country_universe_size(self) -> int:
        return len(self._universe)

    @property
    def all_countries_selected(self) -> bool:
        return bool(self._universe) and self.state.selected_countries >= self._universe

    def update_available_countries(self, grouping: Dict[str, List[str]]) -> None:
        """
        Merge a snapshot's continent grouping into the country universe.

        The first snapshot selects every country. Later snapshots only add
        countries; newly seen ones are selected if everything was selected
        before, so "all" stays "all".
        """
        first_load = not self._universe
        had_all = self.all_countries_selected

        merged: Dict[str, Set[str]] = {c: set(names) for c, names in self._available.items()}
        for continent, names in grouping.items():
            merged.setdefault(continent, set()).update(names)

        universe = set().union(*merged.values()) if merged else set()
        if universe == self._universe:
            return

        self._available = {c: sorted(names) for c, names in sorted(merged.items())}
        self._universe = universe

        if first_load or had_all:
            self.state.selected_countries = set(universe)

        logger.info(f'Populated {len(universe)} countries')
        self.available_countries_changed.emit(self._available)

    # -------------------------------------------------------------------------
    # Mutations (each schedules a debounced recompute when it changes state)
    # -------------------------------------------------------------------------

    def set_selected_countries(self, countries: Iterable[str]) -> None:
        countries = set(countries)
        if countries != self.state.selected_countries:
            self.state.selected_countries = countries
            self.schedule_recompute()

    def set_status(self, status) -> None:
        status = FlightStatus(status)
        if status != self.state.status:
            self.state.status = status
            self.schedule_recompute()

    def set_altitude_band(self, min_ft: Optional[float] = None, max_ft: Optional[float] = None) -> None:
        new_min = self.state.min_altitude_ft if min_ft is None else float(min_ft)
        new_max = self.state.max_altitude_ft if max_ft is None else float(max_ft)
        if (new_min, new_max) != (self.state.min_altitude_ft, self.state.max_altitude_ft):
            self.state.min_altitude_ft = new_min
            self.state.max_altitude_ft = new_max
            self.schedule_recompute()

    def set_speed_band(self, min_kts: Optional[float] = None, max_kts: Optional[float] = None) -> None:
        new_min = self.state.min_speed_kts if min_kts is None else float(min_kts)
        new_max = self.state.max_speed_kts if max_kts is None else float(max_kts)
        if (new_min, new_max) != (self.state.min_speed_kts, self.state.max_speed_kts):
            self.state.min_speed_kts = new_min
            self.state.max_speed_kts = new_max
            self.schedule_recompute()

    def set_vertical_status(self, vertical) -> None:
        vertical = VerticalStatus(vertical)
        if vertical != self.state.vertical_status:
            self.state.vertical_status = vertical
            self.schedule_recompute()

    # -------------------------------------------------------------------------
    # Recompute
    # -------------------------------------------------------------------------

    @property
    def recompute_pending(self) -> bool:
        return self._handle is not None

    def schedule_recompute(self) -> None:
        """
        Recompute after the debounce delay, restarting the delay if a
        recompute is already pending.
        """
        self.cancel_pending()
        try:
            loop = self._loop or asyncio.get_running_loop()
        except RuntimeError:
            # No event loop (synchronous use): apply immediately
            self.recompute()
            return
        self._handle = loop.call_later(self.debounce_seconds, self._run_scheduled)

    def cancel_pending(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _run_scheduled(self) -> None:
        self._handle = None
        self.recompute()

    def recompute(self, notify: bool = True) -> Dict[str, bool]:
        """
        Evaluate every flight in the registry now.

        Returns the visibility map keyed by flight key and, unless `notify`
        is False, emits it through `recomputed`.
        """
        self.cancel_pending()
        state = self.state
        universe_size = self.country_universe_size

        visibility = {
            flight.key: evaluate(flight, state, universe_size)
            for flight in self.registry.current()
        }
        self._visibility = visibility
        self._recompute_count += 1

        visible = sum(1 for v in visibility.values() if v)
        logger.debug(f'Filters applied: {visible}/{len(visibility)} flights visible')

        if notify:
            self.recomputed.emit(visibility)
        return visibility

    def is_visible(self, flight: Flight) -> bool:
        """Visibility from the last recompute, or evaluated on demand."""
        visible = self._visibility.get(flight.key)
        if visible is None:
            return evaluate(flight, self.state, self.country_universe_size)
        return visible

    def visible_flights(self) -> List[Flight]:
        return [f for f in self.registry.current() if self.is_visible(f)]

    @property
    def stats(self) -> dict:
        """Get filter statistics."""
        return {
            'recompute_count': self._recompute_count,
            'visible': sum(1 for v in self._visibility.values() if v),
            'evaluated': len(self._visibility),
            'countries_selected': len(self.state.selected_countries),
            'country_universe': len(self._universe),
        }
