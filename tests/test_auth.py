"""Tests for the OAuth2 client-credentials session."""

import aiohttp
import pytest

from flighttracker.ingestion.auth import AuthSession
from tests.conftest import make_response, make_session

TOKEN_URL = 'https://auth.example.test/token'


def make_auth(body=None, status=200):
    session = make_session(make_response(body, status), method='post')
    auth = AuthSession(token_url=TOKEN_URL, session=session)
    outcomes = []
    auth.authenticated.connect(lambda: outcomes.append('ok'))
    auth.failed.connect(lambda error: outcomes.append(str(error)))
    return auth, session, outcomes


class TestAuthSession:

    def test_missing_credentials_fail_synchronously(self):
        auth, session, outcomes = make_auth()

        assert auth.authenticate() is None
        assert outcomes == ['Missing credentials']
        session.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_success_stores_token(self):
        auth, session, outcomes = make_auth({'access_token': 'tok', 'expires_in': 1800})

        task = auth.authenticate('client', 'secret')
        assert task is not None
        await task

        assert outcomes == ['ok']
        assert auth.is_authenticated
        assert auth.access_token == 'tok'
        assert not auth.is_token_stale(margin_seconds=60)

        args, kwargs = session.post.call_args
        assert args[0] == TOKEN_URL
        assert kwargs['data'] == {
            'grant_type': 'client_credentials',
            'client_id': 'client',
            'client_secret': 'secret',
        }

    @pytest.mark.asyncio
    async def test_token_staleness_tracks_expiry(self):
        auth, _, _ = make_auth({'access_token': 'tok', 'expires_in': 100})
        await auth.authenticate('client', 'secret')

        assert auth.is_token_stale(margin_seconds=200)
        assert not auth.is_token_stale(margin_seconds=10)

    @pytest.mark.asyncio
    async def test_token_without_expiry_never_stale(self):
        auth, _, _ = make_auth({'access_token': 'tok'})
        await auth.authenticate('client', 'secret')
        assert not auth.is_token_stale(margin_seconds=10_000)

    @pytest.mark.asyncio
    async def test_error_fields_become_reason(self):
        auth, _, outcomes = make_auth(
            {'error': 'invalid_client', 'error_description': 'Invalid client credentials'},
            status=401,
        )
        await auth.authenticate('client', 'wrong')

        assert outcomes == ['invalid_client: Invalid client credentials']
        assert not auth.is_authenticated

    @pytest.mark.asyncio
    async def test_body_without_token(self):
        auth, _, outcomes = make_auth({'token_type': 'Bearer'})
        await auth.authenticate('client', 'secret')
        assert outcomes == ['No access token in response']

    @pytest.mark.asyncio
    async def test_transport_error(self):
        auth, session, outcomes = make_auth()
        session.post.side_effect = aiohttp.ClientConnectionError('connection refused')

        await auth.authenticate('client', 'secret')

        assert outcomes == ['Authentication failed: connection refused']
        assert auth.is_token_stale()

    def test_no_token_is_stale(self):
        auth, _, _ = make_auth()
        assert auth.is_token_stale()
        assert not auth.is_authenticated
