"""Tests for the snapshot registry."""

from flighttracker.models import Flight
from tests.conftest import make_flight


class TestFlightRegistry:

    def test_starts_empty(self, registry):
        assert registry.current() == ()
        assert len(registry) == 0
        assert registry.snapshot_time is None

    def test_replace_is_wholesale(self, registry):
        registry.replace([make_flight('aaa111'), make_flight('bbb222')], 100)
        new = [make_flight('ccc333'), make_flight('ddd444')]
        registry.replace(new, 200)

        assert list(registry.current()) == new
        assert 'aaa111' not in registry
        assert registry.snapshot_time == 200

    def test_replace_drops_invalid(self, registry):
        flights = [
            make_flight('aaa111'),
            Flight(identity=''),
            make_flight('bbb222', longitude=0.0, latitude=0.0),
            make_flight('ccc333'),
        ]
        count = registry.replace(flights)

        assert count == 2
        assert [f.identity for f in registry.current()] == ['aaa111', 'ccc333']

    def test_duplicate_identity_first_wins(self, registry):
        first = make_flight('ABC123', callsign='FIRST')
        registry.replace([first, make_flight('abc123', callsign='SECOND')])

        assert len(registry) == 1
        assert registry.get('abc123') is first

    def test_get_is_case_insensitive(self, registry):
        flight = make_flight('AbC123')
        registry.replace([flight])

        assert registry.get('abc123') is flight
        assert registry.get(' ABC123 ') is flight
        assert registry.get('') is None

    def test_countries(self, registry):
        registry.replace([
            make_flight('aaa111', country='France'),
            make_flight('bbb222', country=' France '),
            make_flight('ccc333', country=''),
            make_flight('ddd444', country='Japan'),
        ])
        assert registry.countries() == {'France', 'Japan'}

    def test_group_countries_by_continent(self, registry):
        registry.replace([
            make_flight('aaa111', country='Germany'),
            make_flight('bbb222', country='France'),
            make_flight('ccc333', country='Republic of Korea'),
            make_flight('ddd444', country='Atlantis'),
        ])
        assert registry.group_countries_by_continent() == {
            'Asia': ['Republic of Korea'],
            'Europe': ['France', 'Germany'],
            'Other': ['Atlantis'],
        }

    def test_stats(self, registry):
        registry.replace([make_flight('aaa111'), make_flight('bbb222', on_ground=True)], 100)
        stats = registry.stats
        assert stats['flights'] == 2
        assert stats['airborne'] == 1
        assert stats['replace_count'] == 1
