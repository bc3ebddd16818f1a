"""
OpenSky OAuth2 client-credentials session.

OpenSky retired basic auth for API clients; tokens are issued by a
Keycloak realm via the client-credentials grant:

    POST <token_url>
    Content-Type: application/x-www-form-urlencoded
    grant_type=client_credentials&client_id=...&client_secret=...

    -> {"access_token": "...", "expires_in": 1800, ...}
    -> {"error": "...", "error_description": "..."}

`authenticate()` returns immediately; the outcome is delivered through the
`authenticated` / `failed` signals on the event loop. There is no retry
loop - the caller decides when to try again.
"""

import asyncio
import logging
import time
from typing import Optional, Set

import aiohttp

from flighttracker.config import config
from flighttracker.errors import AuthError
from flighttracker.signals import Signal

logger = logging.getLogger(__name__)


class AuthSession:
    """
    Holds the bearer token for the OpenSky API.

    Tracks token lifetime from `expires_in` so the refresh cycle can renew
    before requests start failing. A token issued without `expires_in` is
    treated as never expiring.
    """

    def __init__(
        self,
        token_url: Optional[str] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.token_url = token_url or config.opensky.token_url
        self._session = session
        self._owns_session = session is None

        self._client_id: Optional[str] = None
        self._client_secret: Optional[str] = None
        self._access_token: str = ''
        self._expires_at: Optional[float] = None
        self._pending: Set[asyncio.Task] = set()

        self.authenticated = Signal('authenticated')
        self.failed = Signal('authentication_failed')

    @classmethod
    def from_config(cls, session: Optional[aiohttp.ClientSession] = None) -> 'AuthSession':
        """Create a session with credentials from application configuration."""
        auth = cls(token_url=config.opensky.token_url, session=session)
        auth.set_credentials(config.opensky.client_id, config.opensky.client_secret)
        return auth

    def set_credentials(self, client_id: Optional[str], client_secret: Optional[str]) -> None:
        self._client_id = client_id or None
        self._client_secret = client_secret or None

    @property
    def has_credentials(self) -> bool:
        return bool(self._client_id and self._client_secret)

    @property
    def access_token(self) -> str:
        return self._access_token

    @property
    def is_authenticated(self) -> bool:
        return bool(self._access_token)

    @property
    def in_progress(self) -> bool:
        return bool(self._pending)

    def is_token_stale(self, margin_seconds: float = 0.0, now: Optional[float] = None) -> bool:
        """
        True if there is no token or it expires within `margin_seconds`.
        """
        if not self._access_token:
            return True
        if self._expires_at is None:
            return False
        now = time.monotonic() if now is None else now
        return now >= self._expires_at - margin_seconds

    def authenticate(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
    ) -> Optional[asyncio.Task]:
        """
        Start a token request and return the in-flight task.

        Must be called from the event loop thread. Missing credentials fail
        synchronously through `failed` and return None.
        """
        if client_id or client_secret:
            self.set_credentials(client_id, client_secret)

        if not self.has_credentials:
            self.failed.emit(AuthError('Missing credentials'))
            return None

        logger.info('Starting OpenSky Network authentication...')
        task = asyncio.get_running_loop().create_task(self._request_token())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _request_token(self) -> None:
        try:
            token, expires_in = await self._post_token_request()
        except AuthError as e:
            logger.warning(f'Authentication failed: {e}')
            self.failed.emit(e)
            return

        self._access_token = token
        self._expires_at = time.monotonic() + expires_in if expires_in else None
        logger.info('Authentication successful')
        self.authenticated.emit()

    async def _post_token_request(self):
        """
        POST the client-credentials grant.

        Returns (access_token, expires_in_seconds or None).

        Raises:
            AuthError on transport failure or when no token is returned
        """
        form = {
            'grant_type': 'client_credentials',
            'client_id': self._client_id,
            'client_secret': self._client_secret,
        }
        headers = {'Content-Type': 'application/x-www-form-urlencoded'}

        try:
            async with self._get_session().post(self.token_url, data=form, headers=headers) as response:
                status = response.status
                try:
                    body = await response.json(content_type=None)
                except ValueError:
                    body = None
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise AuthError(f'Authentication failed: {str(e) or type(e).__name__}') from e

        if not isinstance(body, dict):
            body = {}

        token = body.get('access_token')
        if token and isinstance(token, str):
            expires_in = body.get('expires_in')
            if not isinstance(expires_in, (int, float)) or isinstance(expires_in, bool):
                expires_in = None
            return token, expires_in

        raise AuthError(self._describe_failure(body, status))

    @staticmethod
    def _describe_failure(body: dict, status: int) -> str:
        """Human-readable reason from the OAuth2 error fields."""
        error = body.get('error')
        if error:
            reason = str(error)
            description = body.get('error_description')
            if description:
                reason += f': {description}'
            return reason
        if status >= 400:
            return f'Authentication failed: HTTP {status}'
        return 'No access token in response'

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
