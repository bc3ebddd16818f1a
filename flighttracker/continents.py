"""
Country to continent classification.

OpenSky reports the country of registration using official names
("Republic of Korea", "Iran, Islamic Republic of", "Kingdom of the
Netherlands"), while the bundled dataset uses common names. The lookup is
best-effort and only drives grouping in the country filter, so an
occasional wrong bucket is acceptable.

Lookup policy, first match wins:
1. Exact name match
2. Known aliases
3. Case-insensitive substring match in either direction
4. Substring match after stripping official-name qualifiers
5. Manual overrides for known-ambiguous names
6. "Other"

Dataset format (flighttracker/data/countries.json):
    [{"country": "France", "continent": "Europe"},
     {"country": "Turkey", "continent": ["Asia", "Europe"]}, ...]
An array continent resolves to its first element.
"""

import json
import logging
import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from flighttracker.config import config

logger = logging.getLogger(__name__)

OTHER = 'Other'

ALIASES: Dict[str, str] = {
    'republic of korea': 'South Korea',
}

# Whole-word qualifiers removed before the second substring pass
QUALIFIERS = (
    'republic of',
    'kingdom of',
    'state of',
    'democratic',
    "people's",
    'peoples',
    'federal',
    'federation',
    'united',
    'islamic',
    'arab',
    'plurinational',
    'bolivarian',
    'socialist',
    'the',
    'of',
)

OVERRIDES: Tuple[Tuple[str, str], ...] = (
    ('korea', 'Asia'),
    ('netherlands', 'Europe'),
    ('moldova', 'Europe'),
    ('russia', 'Europe'),
    ('vietnam', 'Asia'),
    ('viet nam', 'Asia'),
    ('libya', 'Africa'),
    ('iran', 'Asia'),
    ('syria', 'Asia'),
    ('macedonia', 'Europe'),
    ('bosnia', 'Europe'),
    ('congo', 'Africa'),
)

_QUALIFIER_PATTERN = re.compile(
    r'\b(?:' + '|'.join(re.escape(q) for q in sorted(QUALIFIERS, key=len, reverse=True)) + r')\b'
)


def strip_qualifiers(name: str) -> str:
    """
    Lower-case a country name and drop official-name qualifiers.

    'Kingdom of the Netherlands' -> 'netherlands'
    """
    lowered = name.lower().replace(',', ' ')
    stripped = _QUALIFIER_PATTERN.sub(' ', lowered)
    return ' '.join(stripped.split())


class ContinentLookup:
    """
    Country name to continent table with the fuzzy lookup policy above.

    Results are memoized; the table is static for the life of the process.
    """

    def __init__(self, table: Optional[Dict[str, str]] = None):
        self._table: Dict[str, str] = dict(table or {})
        # Sorted for a deterministic substring pass
        self._lowered: List[Tuple[str, str]] = sorted(
            (name.lower(), continent) for name, continent in self._table.items()
        )
        self._stripped: List[Tuple[str, str]] = [
            (strip_qualifiers(name), continent) for name, continent in self._lowered
        ]
        self._cache: Dict[str, str] = {}

    @classmethod
    def from_records(cls, records: Iterable[dict]) -> 'ContinentLookup':
        """Build from dataset records, skipping incomplete entries."""
        table = {}
        for record in records:
            if not isinstance(record, dict):
                continue
            name = record.get('country')
            continent = record.get('continent')
            if isinstance(continent, list):
                continent = continent[0] if continent else None
            if isinstance(name, str) and name and isinstance(continent, str) and continent:
                table[name] = continent
        return cls(table)

    @classmethod
    def from_file(cls, path: Path) -> 'ContinentLookup':
        """
        Load the bundled dataset.

        An unreadable dataset yields an empty table (every country "Other").
        """
        try:
            with open(path, 'r', encoding='utf-8') as f:
                records = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f'Could not load country mappings from {path}: {e}')
            return cls()

        if not isinstance(records, list):
            logger.warning(f'Country mappings in {path} are not a JSON array')
            return cls()

        lookup = cls.from_records(records)
        logger.info(f'Loaded {len(lookup)} country mappings')
        return lookup

    def __len__(self) -> int:
        return len(self._table)

    def continent_for(self, country: str) -> str:
        """Resolve a country name to a continent, or "Other"."""
        country = (country or '').strip()
        if not country:
            return OTHER

        if country in self._cache:
            return self._cache[country]

        continent = self._resolve(country)
        self._cache[country] = continent
        return continent

    def _resolve(self, country: str) -> str:
        exact = self._table.get(country)
        if exact:
            return exact

        lowered = country.lower()

        alias = ALIASES.get(lowered)
        if alias:
            return self._table.get(alias, 'Asia')

        for name, continent in self._lowered:
            if name in lowered or lowered in name:
                return continent

        stripped = strip_qualifiers(country)
        if stripped:
            for name, continent in self._stripped:
                if name and (name in stripped or stripped in name):
                    return continent

        for fragment, continent in OVERRIDES:
            if fragment in lowered:
                return continent

        return OTHER

    def group(self, countries: Iterable[str]) -> Dict[str, List[str]]:
        """Map continent -> sorted unique country names (blanks ignored)."""
        grouped: Dict[str, set] = {}
        for country in countries:
            name = (country or '').strip()
            if not name:
                continue
            grouped.setdefault(self.continent_for(name), set()).add(name)
        return {continent: sorted(names) for continent, names in sorted(grouped.items())}


_default_lookup: Optional[ContinentLookup] = None


def get_default_lookup() -> ContinentLookup:
    """Lookup over the configured dataset, loaded on first use."""
    global _default_lookup
    if _default_lookup is None:
        _default_lookup = ContinentLookup.from_file(config.countries_path)
    return _default_lookup
