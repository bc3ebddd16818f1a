"""
OpenSky Network telemetry source.

Handles communication with the OpenSky REST API:
- GET /states/all for the full-state snapshot
- GET /tracks/all for one aircraft's historical path
- Bearer token authentication (token supplied by AuthSession)

Both requests return immediately with the in-flight asyncio task; results
arrive through signals on the event loop:
- snapshot_received(flights, snapshot_time)
- track_received(identity, track)
- fetch_failed(FetchError)

Failures never raise into the caller and a failed snapshot never produces
a partial result. Requests are not cached or deduplicated.
"""

import asyncio
import logging
import time
from typing import Any, Optional, Set

import aiohttp

from flighttracker.config import config
from flighttracker.errors import FetchError
from flighttracker.ingestion.decoder import decode_states, decode_track
from flighttracker.signals import Signal

logger = logging.getLogger(__name__)


class TelemetrySource:
    """
    Client for the OpenSky states and tracks endpoints.

    Remembers the time of the last successful snapshot; it is the default
    "as of" marker for track requests.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.base_url = (base_url or config.opensky.base_url).rstrip('/')
        self._session = session
        self._owns_session = session is None
        self._access_token: str = ''
        self._pending: Set[asyncio.Task] = set()

        self.last_snapshot_time: Optional[int] = None
        self._snapshot_count: int = 0
        self._error_count: int = 0

        self.snapshot_received = Signal('snapshot_received')
        self.track_received = Signal('track_received')
        self.fetch_failed = Signal('fetch_failed')

    def set_access_token(self, token: str) -> None:
        self._access_token = token or ''

    def _fail(self, error: FetchError) -> None:
        self._error_count += 1
        self.fetch_failed.emit(error)

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    def fetch_snapshot(self) -> Optional[asyncio.Task]:
        """
        Request the full-state snapshot.

        Returns the in-flight task, or None if there is no token (in which
        case `fetch_failed` has already been emitted).
        """
        if not self._access_token:
            self._fail(FetchError('No access token available'))
            return None

        logger.debug('Fetching flight data...')
        return self._spawn(self._fetch_snapshot())

    def fetch_track(self, identity: str, since: Optional[int] = None) -> Optional[asyncio.Task]:
        """
        Request the track of one aircraft.

        Args:
            identity: ICAO24 address (any case)
            since: Unix time for the server-side "as of" marker; defaults
                   to the time of the last successful snapshot
        """
        if not self._access_token or not identity:
            self._fail(FetchError('Missing access token or ICAO24', identity=identity or ''))
            return None

        logger.debug(f'Fetching track for aircraft: {identity}')
        return self._spawn(self._fetch_track(identity, since))

    async def _fetch_snapshot(self) -> None:
        try:
            data = await self._get_json('/states/all')
        except FetchError as e:
            logger.warning(f'Flight data request failed: {e}')
            self._fail(FetchError(f'Flight data request failed: {e}', status=e.status))
            return

        api_time = data.get('time')
        if not isinstance(api_time, int) or isinstance(api_time, bool):
            api_time = int(time.time())

        states_raw = data.get('states') or []
        flights = decode_states(states_raw)

        self.last_snapshot_time = api_time
        self._snapshot_count += 1
        logger.info(f'Received {len(states_raw)} state vectors, {len(flights)} valid flights')

        self.snapshot_received.emit(flights, api_time)

    async def _fetch_track(self, identity: str, since: Optional[int]) -> None:
        if since is None:
            since = self.last_snapshot_time or 0
        params = {'icao24': identity.lower(), 'time': int(since)}

        try:
            data = await self._get_json('/tracks/all', params=params)
        except FetchError as e:
            logger.warning(f'Track data request failed for {identity}: {e}')
            self._fail(FetchError(f'Track data request failed: {e}', identity=identity, status=e.status))
            return

        track = decode_track(identity, data)
        logger.debug(f'Track for {identity}: {len(track)} waypoints')
        self.track_received.emit(identity, track)

    async def _get_json(self, path: str, params: Optional[dict] = None) -> dict:
        """
        Authenticated GET returning the decoded JSON object.

        Raises:
            FetchError on transport errors, non-2xx status or bad JSON
        """
        url = f'{self.base_url}{path}'
        headers = {'Authorization': f'Bearer {self._access_token}'}

        try:
            async with self._get_session().get(url, params=params, headers=headers) as response:
                if response.status == 429:
                    logger.warning('OpenSky rate limit exceeded')
                if response.status >= 400:
                    raise FetchError(f'HTTP {response.status}', status=response.status)
                data: Any = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FetchError(str(e) or type(e).__name__) from e
        except ValueError as e:
            raise FetchError(f'Invalid JSON response: {e}') from e

        if not isinstance(data, dict):
            raise FetchError('Unexpected response body')
        return data

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the HTTP session if this object created it."""
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    @property
    def stats(self) -> dict:
        """Get request statistics."""
        return {
            'snapshot_count': self._snapshot_count,
            'error_count': self._error_count,
            'last_snapshot_time': self.last_snapshot_time,
            'in_flight': len(self._pending),
        }
