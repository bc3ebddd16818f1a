"""
Selection state for the "currently inspected" flight.

States:
    IDLE       no selection
    SELECTING  hit-test in progress (synchronous)
    SELECTED   identity held

The selection is tracked by identity key, never by position in the
snapshot: every registry replace re-resolves the key against the new data.

Teardown is two-phase. `clear()` notifies `selection_changed(None)` first
and releases the details (popup) resource on the next loop iteration via
`details_released`, so listeners that still hold the details object can
finish with it before it goes away.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, Dict, Iterable, Optional, Sequence, Tuple

import numpy as np

from flighttracker.config import config
from flighttracker.models import Flight
from flighttracker.registry import FlightRegistry
from flighttracker.rendering import FlightDetails, flight_details
from flighttracker.signals import Signal

logger = logging.getLogger(__name__)

ScreenPoint = Tuple[float, float]
Projector = Callable[[float, float], Optional[ScreenPoint]]


class SelectionPhase(str, Enum):
    IDLE = 'Idle'
    SELECTING = 'Selecting'
    SELECTED = 'Selected'


class SelectionTracker:
    """
    Holds at most one selected flight.

    Signals:
        selection_changed(flight or None) - new selection, refreshed data
            for the held selection, or None when cleared
        details_released(details) - the previous popup content may be
            disposed; always emitted after the matching selection_changed
    """

    def __init__(
        self,
        tolerance_px: Optional[float] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        if tolerance_px is None:
            tolerance_px = config.refresh.hit_tolerance_px
        self.tolerance_px = float(tolerance_px)
        self._loop = loop

        self.phase = SelectionPhase.IDLE
        self._selected: Optional[Flight] = None
        self._details: Optional[FlightDetails] = None

        self.selection_changed = Signal('selection_changed')
        self.details_released = Signal('details_released')

    @property
    def selected(self) -> Optional[Flight]:
        return self._selected

    @property
    def selected_key(self) -> Optional[str]:
        return self._selected.key if self._selected is not None else None

    @property
    def details(self) -> Optional[FlightDetails]:
        """Popup content for the selected flight."""
        return self._details

    def is_selected(self, identity: str) -> bool:
        return self.selected_key is not None and self.selected_key == (identity or '').strip().lower()

    # -------------------------------------------------------------------------
    # Picking
    # -------------------------------------------------------------------------

    def hit_test(
        self,
        point: ScreenPoint,
        flights: Sequence[Flight],
        project: Projector,
    ) -> Optional[Flight]:
        """
        Nearest flight whose projected position is within tolerance.

        `project(lon, lat)` maps to screen pixels and may return None for
        positions off screen. Equal distances resolve to the first flight
        in iteration order.
        """
        candidates = []
        positions = []
        for flight in flights:
            screen = project(flight.longitude, flight.latitude)
            if screen is None:
                continue
            candidates.append(flight)
            positions.append(screen)

        if not candidates:
            return None

        deltas = np.asarray(positions, dtype=float) - np.asarray(point, dtype=float)
        distances = np.hypot(deltas[:, 0], deltas[:, 1])
        nearest = int(np.argmin(distances))
        if distances[nearest] > self.tolerance_px:
            return None
        return candidates[nearest]

    def select_at(
        self,
        point: ScreenPoint,
        flights: Iterable[Flight],
        project: Projector,
    ) -> Optional[Flight]:
        """
        Select the visible flight under a screen point.

        A miss leaves the current selection untouched. Returns the selected
        flight, if any.
        """
        previous = self.phase
        self.phase = SelectionPhase.SELECTING
        hit = self.hit_test(point, list(flights), project)
        self.phase = previous

        if hit is None:
            logger.debug(f'No flight within {self.tolerance_px:.0f}px of {point}')
            return self._selected
        self.select(hit)
        return hit

    def select(self, flight: Flight) -> None:
        """Select a flight; re-selecting the same identity is a no-op."""
        if self._selected is not None and self._selected.key == flight.key:
            self.phase = SelectionPhase.SELECTED
            return

        old_details = self._details
        self._selected = flight
        self._details = flight_details(flight)
        self.phase = SelectionPhase.SELECTED
        logger.info(f'Selected flight: {flight.display_callsign} ({flight.identity})')

        self.selection_changed.emit(flight)
        if old_details is not None:
            self._release_later(old_details)

    # -------------------------------------------------------------------------
    # Snapshot / filter reconciliation
    # -------------------------------------------------------------------------

    def reconcile(self, registry: FlightRegistry, is_visible: Callable[[Flight], bool]) -> None:
        """
        Re-resolve the selection against a freshly replaced registry.

        Kept (with new data) when the identity is present and visible;
        cleared otherwise.
        """
        if self._selected is None:
            return

        flight = registry.get(self._selected.identity)
        if flight is None:
            logger.info(f'Selected flight {self._selected.identity} left the snapshot')
            self.clear()
            return
        if not is_visible(flight):
            logger.info(f'Selected flight {self._selected.identity} is filtered out')
            self.clear()
            return

        old_details = self._details
        self._selected = flight
        self._details = flight_details(flight)
        self.selection_changed.emit(flight)
        if old_details is not None:
            self._release_later(old_details)

    def on_visibility_changed(self, visibility: Dict[str, bool]) -> None:
        """Clear when a filter recompute hid the selected flight."""
        key = self.selected_key
        if key is not None and not visibility.get(key, False):
            logger.info(f'Selected flight {self._selected.identity} is filtered out')
            self.clear()

    # -------------------------------------------------------------------------
    # Teardown
    # -------------------------------------------------------------------------

    def clear(self) -> None:
        """Drop the selection: notify first, release details afterwards."""
        if self._selected is None and self._details is None:
            self.phase = SelectionPhase.IDLE
            return

        details = self._details
        self._selected = None
        self._details = None
        self.phase = SelectionPhase.IDLE

        self.selection_changed.emit(None)
        if details is not None:
            self._release_later(details)

    def _release_later(self, details: FlightDetails) -> None:
        try:
            loop = self._loop or asyncio.get_running_loop()
        except RuntimeError:
            # No event loop (synchronous use): release right after notifying
            self.details_released.emit(details)
            return
        loop.call_soon(self.details_released.emit, details)
