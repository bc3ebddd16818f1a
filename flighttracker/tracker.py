"""
FlightTracker - orchestrates the refresh cycle and user interaction.

Refresh cycle (one unit, gated by a single in-flight flag):
1. Authenticate: renew the bearer token if it is missing or about to expire
2. Fetch: GET the full-state snapshot
3. Replace: swap the registry wholesale
4. Countries: grow the country-filter universe
5. Filter: recompute visibility and hand graphics to the presenter
6. Reconcile: keep, refresh or clear the selection

Steps 3-6 run synchronously in the snapshot callback, so nothing observes a
registry that has been replaced but not yet filtered. A failed fetch leaves
the previous snapshot in place.
"""

import asyncio
import logging
import time
from typing import Iterable, Optional

import aiohttp

from flighttracker.config import config
from flighttracker.errors import AuthError, FetchError
from flighttracker.filters import FilterEngine
from flighttracker.ingestion import AuthSession, TelemetrySource
from flighttracker.models import Flight, Track
from flighttracker.registry import FlightRegistry
from flighttracker.rendering import Presenter, build_graphics, track_vertices
from flighttracker.selection import ScreenPoint, SelectionTracker

logger = logging.getLogger(__name__)


def format_last_update(last_update: Optional[float], now: Optional[float] = None) -> str:
    """Relative age of the last snapshot for the status line."""
    if last_update is None:
        return 'Never'

    now = time.time() if now is None else now
    seconds_ago = max(0, int(now - last_update))
    if seconds_ago < 60:
        return 'Just now' if seconds_ago <= 5 else f'{seconds_ago}s ago'
    if seconds_ago < 3600:
        return f'{seconds_ago // 60}m ago'
    return f'{seconds_ago // 3600}h ago'


class FlightTracker:
    """
    Application controller.

    Owns the registry, filter engine and selection, wires them to the
    network clients and pushes render updates to a Presenter.
    """

    def __init__(
        self,
        auth: Optional[AuthSession] = None,
        source: Optional[TelemetrySource] = None,
        registry: Optional[FlightRegistry] = None,
        filters: Optional[FilterEngine] = None,
        selection: Optional[SelectionTracker] = None,
        presenter: Optional[Presenter] = None,
        session: Optional[aiohttp.ClientSession] = None,
        refresh_interval: Optional[float] = None,
    ):
        """
        Initialize the tracker.

        Args:
            auth: Token session (created from config if None)
            source: Telemetry client (created from config if None)
            registry: Snapshot registry
            filters: Filter engine over `registry`
            selection: Selection tracker
            presenter: Render target (no-op Presenter if None)
            session: Shared aiohttp session for the default clients
            refresh_interval: Seconds between snapshot fetches
        """
        self.auth = auth if auth is not None else AuthSession.from_config(session)
        self.source = source if source is not None else TelemetrySource(session=session)
        self.registry = registry if registry is not None else FlightRegistry()
        self.filters = filters if filters is not None else FilterEngine(self.registry)
        self.selection = selection if selection is not None else SelectionTracker()
        self.presenter = presenter if presenter is not None else Presenter()

        self.refresh_interval = refresh_interval or config.refresh.interval_seconds
        self.renewal_margin = config.refresh.token_renewal_margin_seconds

        # State tracking
        self._running = False
        self._refreshing = False
        self._refresh_task: Optional[asyncio.Task] = None
        self._show_track = False
        self._track_key: Optional[str] = None
        self.current_track: Optional[Track] = None
        self.last_update: Optional[float] = None
        self.last_error: Optional[str] = None
        self._refresh_count: int = 0
        self._error_count: int = 0

        self.auth.authenticated.connect(self._on_authenticated)
        self.auth.failed.connect(self._on_auth_failed)
        self.source.snapshot_received.connect(self._on_snapshot)
        self.source.track_received.connect(self._on_track)
        self.source.fetch_failed.connect(self._on_fetch_failed)
        self.filters.recomputed.connect(self._on_filters_recomputed)
        self.selection.selection_changed.connect(self._on_selection_changed)
        self.selection.details_released.connect(self.presenter.release_details)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._running

    @property
    def refreshing(self) -> bool:
        return self._refreshing

    def start(self) -> bool:
        """
        Authenticate and begin periodic refresh.

        Must be called from the event loop. Returns False (and stays idle)
        when no credentials are configured. A failed first authentication
        is retried by the periodic task.
        """
        if self._running:
            logger.warning('Tracker already running')
            return True

        if not config.arcgis.is_configured:
            logger.warning('ArcGIS API key missing - basemap services require an access token')
        if not self.auth.has_credentials:
            logger.warning('OpenSky credentials missing - tracker idle')
            return False

        self._running = True
        logger.info(f'Starting flight tracker (interval={self.refresh_interval}s)')
        self._refresh_task = asyncio.get_running_loop().create_task(self._run_periodic())
        self.refresh()
        return True

    async def _run_periodic(self) -> None:
        while self._running:
            await asyncio.sleep(self.refresh_interval)
            self.refresh()

    async def stop(self) -> None:
        """Stop refreshing and close network sessions the clients own."""
        self._running = False
        self.filters.cancel_pending()
        if self._refresh_task is not None:
            self._refresh_task.cancel()
            try:
                await self._refresh_task
            except asyncio.CancelledError:
                pass
            self._refresh_task = None
        await self.auth.close()
        await self.source.close()
        logger.info('Flight tracker stopped')

    # -------------------------------------------------------------------------
    # Refresh cycle
    # -------------------------------------------------------------------------

    def refresh(self) -> bool:
        """
        Start one refresh cycle.

        Returns False when a cycle is already in flight or the cycle could
        not start; failures are reported through the clients' signals.
        """
        if self._refreshing:
            logger.debug('Refresh already in progress, skipping')
            return False
        self._refreshing = True

        if self.auth.is_token_stale(self.renewal_margin):
            if self.auth.in_progress:
                return True
            logger.info('Access token missing or expiring, re-authenticating')
            return self.auth.authenticate() is not None

        self.source.set_access_token(self.auth.access_token)
        return self.source.fetch_snapshot() is not None

    def _on_authenticated(self) -> None:
        self.source.set_access_token(self.auth.access_token)
        self.last_error = None

        if self._refreshing:
            if self.source.fetch_snapshot() is None:
                self._refreshing = False

    def _on_auth_failed(self, error: AuthError) -> None:
        self._refreshing = False
        self._error_count += 1
        self.last_error = str(error)
        logger.warning(f'Authentication failed: {error}')

    def _on_snapshot(self, flights: Iterable[Flight], snapshot_time: int) -> None:
        try:
            self.registry.replace(flights, snapshot_time)
            self.filters.update_available_countries(self.registry.group_countries_by_continent())

            visibility = self.filters.recompute(notify=False)
            self.presenter.show_flights(build_graphics(self.registry.current(), visibility))
            self.selection.reconcile(self.registry, self.filters.is_visible)

            self.last_update = time.time()
            self.last_error = None
            self._refresh_count += 1
            logger.info(f'Updated {len(self.registry)} flights')
        finally:
            self._refreshing = False

    def _on_fetch_failed(self, error: FetchError) -> None:
        self._error_count += 1
        self.last_error = str(error)

        if error.is_track_error:
            logger.warning(f'Track fetch failed: {error}')
            key = (error.identity or '').strip().lower()
            if self._track_key is not None and (not key or key == self._track_key):
                self._clear_track()
            return

        logger.warning(f'Data fetch failed: {error}')
        self._refreshing = False

    # -------------------------------------------------------------------------
    # Filters
    # -------------------------------------------------------------------------

    def _on_filters_recomputed(self, visibility) -> None:
        self.presenter.set_visibility(visibility)
        self.selection.on_visibility_changed(visibility)

    def set_selected_countries(self, countries: Iterable[str]) -> None:
        self.filters.set_selected_countries(countries)

    def set_status_filter(self, status) -> None:
        self.filters.set_status(status)

    def set_altitude_filter(self, min_ft: Optional[float] = None, max_ft: Optional[float] = None) -> None:
        self.filters.set_altitude_band(min_ft, max_ft)

    def set_speed_filter(self, min_kts: Optional[float] = None, max_kts: Optional[float] = None) -> None:
        self.filters.set_speed_band(min_kts, max_kts)

    def set_vertical_filter(self, vertical) -> None:
        self.filters.set_vertical_status(vertical)

    # -------------------------------------------------------------------------
    # Selection and tracks
    # -------------------------------------------------------------------------

    def select_at(self, point: ScreenPoint) -> Optional[Flight]:
        """Select the visible flight under a screen point."""
        return self.selection.select_at(
            point, self.filters.visible_flights(), self.presenter.location_to_screen,
        )

    def clear_selection(self) -> None:
        self.selection.clear()

    @property
    def show_track(self) -> bool:
        return self._show_track

    def set_show_track(self, enabled: bool) -> None:
        """Toggle the track overlay for the selected flight."""
        enabled = bool(enabled)
        if enabled == self._show_track:
            return
        self._show_track = enabled

        if not enabled:
            self._clear_track()
        elif self.selection.selected is not None:
            self._request_track(self.selection.selected)

    def _on_selection_changed(self, flight: Optional[Flight]) -> None:
        if flight is None:
            self.presenter.clear_selection()
            self._clear_track()
            return

        if self._track_key is not None and self._track_key != flight.key:
            self._clear_track()
        self.presenter.show_selection(flight, self.selection.details)
        if self._show_track:
            self._request_track(flight)

    def _request_track(self, flight: Flight) -> None:
        self._track_key = flight.key
        self.source.fetch_track(flight.identity, since=self.registry.snapshot_time)

    def _on_track(self, identity: str, track: Track) -> None:
        key = identity.strip().lower()
        if not self._show_track or key != self.selection.selected_key:
            logger.debug(f'Discarding stale track for {identity}')
            return

        vertices = track_vertices(track)
        if not vertices:
            logger.info(f'No drawable track for {identity}')
            self._clear_track()
            return

        self._track_key = key
        self.current_track = track
        self.presenter.draw_track(identity, vertices)

    def _clear_track(self) -> None:
        had_track = self._track_key is not None or self.current_track is not None
        self._track_key = None
        self.current_track = None
        if had_track:
            self.presenter.clear_track()

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    @property
    def last_update_text(self) -> str:
        return format_last_update(self.last_update)

    @property
    def stats(self) -> dict:
        """Get tracker statistics."""
        return {
            'running': self._running,
            'refreshing': self._refreshing,
            'refresh_count': self._refresh_count,
            'error_count': self._error_count,
            'last_update': self.last_update,
            'last_error': self.last_error,
            'selected': self.selection.selected_key,
            'registry': self.registry.stats,
            'filters': self.filters.stats,
            'source': self.source.stats,
        }
