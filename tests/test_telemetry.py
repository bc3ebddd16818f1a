"""Tests for the states/tracks telemetry client."""

import aiohttp
import pytest

from flighttracker.ingestion.telemetry import TelemetrySource
from tests.conftest import make_record, make_response, make_session

BASE_URL = 'https://api.example.test/api'


def make_source(body=None, status=200, token='tok'):
    session = make_session(make_response(body, status))
    source = TelemetrySource(base_url=BASE_URL, session=session)
    source.set_access_token(token)

    events = {'snapshots': [], 'tracks': [], 'failures': []}
    source.snapshot_received.connect(lambda flights, t: events['snapshots'].append((flights, t)))
    source.track_received.connect(lambda identity, track: events['tracks'].append((identity, track)))
    source.fetch_failed.connect(events['failures'].append)
    return source, session, events


class TestFetchSnapshot:

    def test_without_token_fails_fast(self):
        source, session, events = make_source(token='')

        assert source.fetch_snapshot() is None
        assert [str(e) for e in events['failures']] == ['No access token available']
        session.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_decodes_valid_states(self):
        body = {
            'time': 1700000000,
            'states': [
                make_record(identity='aaa111'),
                make_record(identity='bbb222', longitude=0, latitude=0),
                make_record(identity='ccc333'),
            ],
        }
        source, session, events = make_source(body)

        await source.fetch_snapshot()

        flights, snapshot_time = events['snapshots'][0]
        assert [f.identity for f in flights] == ['aaa111', 'ccc333']
        assert snapshot_time == 1700000000
        assert source.last_snapshot_time == 1700000000
        assert events['failures'] == []

        args, kwargs = session.get.call_args
        assert args[0] == f'{BASE_URL}/states/all'
        assert kwargs['headers'] == {'Authorization': 'Bearer tok'}

    @pytest.mark.asyncio
    async def test_null_states_is_empty_snapshot(self):
        source, _, events = make_source({'time': 1700000000, 'states': None})
        await source.fetch_snapshot()
        assert events['snapshots'] == [([], 1700000000)]

    @pytest.mark.asyncio
    async def test_http_error(self):
        source, _, events = make_source({}, status=503)
        await source.fetch_snapshot()

        assert events['snapshots'] == []
        error = events['failures'][0]
        assert str(error) == 'Flight data request failed: HTTP 503'
        assert error.status == 503
        assert not error.is_track_error

    @pytest.mark.asyncio
    async def test_transport_error(self):
        source, session, events = make_source()
        session.get.side_effect = aiohttp.ClientConnectionError('timed out')

        await source.fetch_snapshot()

        assert str(events['failures'][0]) == 'Flight data request failed: timed out'
        assert source.last_snapshot_time is None

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        source, session, events = make_source()
        response = make_response(None)
        response.json.side_effect = ValueError('Expecting value')
        session.get.return_value.__aenter__.return_value = response

        await source.fetch_snapshot()

        assert str(events['failures'][0]).startswith('Flight data request failed: Invalid JSON')


class TestFetchTrack:

    def test_missing_identity(self):
        source, _, events = make_source()
        assert source.fetch_track('') is None
        error = events['failures'][0]
        assert str(error) == 'Missing access token or ICAO24'
        assert error.is_track_error

    @pytest.mark.asyncio
    async def test_track_request_params(self):
        body = {'path': [[1, 40.0, -10.0, 100.0, 90.0, False], [2, 40.1, -10.1, 200.0, 90.0, False]]}
        source, session, events = make_source(body)
        source.last_snapshot_time = 1700000000

        await source.fetch_track('ABC123')

        _, kwargs = session.get.call_args
        assert kwargs['params'] == {'icao24': 'abc123', 'time': 1700000000}
        identity, track = events['tracks'][0]
        assert identity == 'ABC123'
        assert len(track) == 2

    @pytest.mark.asyncio
    async def test_track_failure_carries_identity(self):
        source, _, events = make_source({}, status=404)
        await source.fetch_track('abc123', since=5)

        error = events['failures'][0]
        assert error.identity == 'abc123'
        assert str(error) == 'Track data request failed: HTTP 404'
