"""Tests for country to continent classification."""

import json

from flighttracker.config import DEFAULT_COUNTRIES_PATH
from flighttracker.continents import OTHER, ContinentLookup, strip_qualifiers


class TestContinentLookup:

    def test_exact_match(self, lookup):
        assert lookup.continent_for('France') == 'Europe'

    def test_alias(self, lookup):
        assert lookup.continent_for('Republic of Korea') == 'Asia'

    def test_substring_either_direction(self, lookup):
        assert lookup.continent_for('united states') == 'North America'
        assert lookup.continent_for('Federative Republic of Brazil') == 'South America'

    def test_qualifier_stripped_match(self):
        lookup = ContinentLookup({'Plurinational State of Bolivia': 'South America'})
        assert lookup.continent_for('Bolivia, Plurinational State of') == 'South America'

    def test_manual_override(self):
        lookup = ContinentLookup({'France': 'Europe'})
        assert lookup.continent_for('Kingdom of the Netherlands') == 'Europe'
        assert lookup.continent_for('Iran, Islamic Republic of') == 'Asia'
        assert lookup.continent_for('Viet Nam') == 'Asia'
        assert lookup.continent_for('Democratic Republic of the Congo') == 'Africa'

    def test_unmapped_falls_back_to_other(self, lookup):
        assert lookup.continent_for('Atlantis') == OTHER
        assert lookup.continent_for('') == OTHER

    def test_empty_table(self):
        assert ContinentLookup().continent_for('France') == OTHER

    def test_array_continent_uses_first(self):
        lookup = ContinentLookup.from_records([
            {'country': 'Turkey', 'continent': ['Asia', 'Europe']},
            {'country': 'Nowhere', 'continent': []},
            {'country': '', 'continent': 'Europe'},
            'garbage',
        ])
        assert len(lookup) == 1
        assert lookup.continent_for('Turkey') == 'Asia'

    def test_group(self, lookup):
        grouped = lookup.group(['Japan', 'France', 'Japan', '', 'Atlantis'])
        assert grouped == {'Asia': ['Japan'], 'Europe': ['France'], 'Other': ['Atlantis']}

    def test_from_file(self, tmp_path):
        path = tmp_path / 'countries.json'
        path.write_text(json.dumps([{'country': 'Chile', 'continent': 'South America'}]))
        assert ContinentLookup.from_file(path).continent_for('Chile') == 'South America'

    def test_from_missing_file(self, tmp_path):
        lookup = ContinentLookup.from_file(tmp_path / 'missing.json')
        assert len(lookup) == 0
        assert lookup.continent_for('France') == OTHER

    def test_bundled_dataset(self):
        lookup = ContinentLookup.from_file(DEFAULT_COUNTRIES_PATH)
        assert len(lookup) > 150
        assert lookup.continent_for('United States') == 'North America'
        assert lookup.continent_for('Republic of Korea') == 'Asia'
        assert lookup.continent_for('Russian Federation') == 'Europe'


def test_strip_qualifiers():
    assert strip_qualifiers('Kingdom of the Netherlands') == 'netherlands'
    assert strip_qualifiers("Lao People's Democratic Republic") == 'lao republic'
