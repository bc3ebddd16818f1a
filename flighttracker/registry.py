"""
In-memory registry of the latest flight snapshot.

Each successful fetch replaces the whole snapshot; nothing is merged
across snapshots, so a flight absent from the latest fetch is gone.

The registry is swapped by rebinding two references (ordered tuple and
identity index) after both are fully built; readers never observe a
half-replaced snapshot. All access happens on the event loop thread.
"""

import logging
import time
from typing import Dict, Iterable, List, Optional, Set, Tuple

from flighttracker.continents import ContinentLookup, get_default_lookup
from flighttracker.models import Flight

logger = logging.getLogger(__name__)


class FlightRegistry:
    """
    Latest snapshot of valid flights, ordered as received and indexed by
    case-insensitive identity.
    """

    def __init__(self, lookup: Optional[ContinentLookup] = None):
        self._lookup = lookup
        self._flights: Tuple[Flight, ...] = ()
        self._index: Dict[str, Flight] = {}
        self._snapshot_time: Optional[int] = None
        self._replaced_at: float = 0
        self._replace_count: int = 0

    @property
    def lookup(self) -> ContinentLookup:
        if self._lookup is None:
            self._lookup = get_default_lookup()
        return self._lookup

    def replace(self, flights: Iterable[Flight], snapshot_time: Optional[int] = None) -> int:
        """
        Swap in a new snapshot.

        Invalid flights are dropped; for duplicate identities the first
        occurrence wins. Returns the count of flights held.
        """
        ordered: List[Flight] = []
        index: Dict[str, Flight] = {}
        duplicates = 0

        for flight in flights:
            if not flight.valid:
                continue
            if flight.key in index:
                duplicates += 1
                continue
            index[flight.key] = flight
            ordered.append(flight)

        self._flights = tuple(ordered)
        self._index = index
        self._snapshot_time = snapshot_time
        self._replaced_at = time.time()
        self._replace_count += 1

        if duplicates:
            logger.debug(f'Ignored {duplicates} duplicate identities in snapshot')
        logger.debug(f'Registry replaced with {len(ordered)} flights')
        return len(ordered)

    def current(self) -> Tuple[Flight, ...]:
        """The latest snapshot, in received order."""
        return self._flights

    def get(self, identity: str) -> Optional[Flight]:
        """Look up a flight by identity (any case)."""
        return self._index.get((identity or '').strip().lower())

    def __contains__(self, identity: str) -> bool:
        return self.get(identity) is not None

    def __len__(self) -> int:
        return len(self._flights)

    def __iter__(self):
        return iter(self._flights)

    @property
    def snapshot_time(self) -> Optional[int]:
        return self._snapshot_time

    def countries(self) -> Set[str]:
        """Unique non-empty countries in the snapshot."""
        return {f.country.strip() for f in self._flights if f.country.strip()}

    def group_countries_by_continent(self) -> Dict[str, List[str]]:
        """
        Group the snapshot's countries by continent.

        Returns continent -> sorted unique country names; unmatched
        countries land in "Other".
        """
        return self.lookup.group(self.countries())

    @property
    def stats(self) -> dict:
        """Get registry statistics."""
        return {
            'flights': len(self._flights),
            'airborne': sum(1 for f in self._flights if not f.on_ground),
            'replace_count': self._replace_count,
            'snapshot_time': self._snapshot_time,
            'replaced_at': self._replaced_at,
        }
