"""Shared fixtures for FlightTracker tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from flighttracker.continents import ContinentLookup
from flighttracker.models import Flight
from flighttracker.registry import FlightRegistry


def make_record(
    identity='abc123',
    callsign='UAL123  ',
    country='United States',
    longitude=-10.5,
    latitude=40.2,
    altitude=11000,
    on_ground=False,
    velocity=230.5,
    heading=270,
    vertical_rate=1.2,
    squawk='1200',
):
    """Build a 17-field OpenSky state vector."""
    return [
        identity, callsign, country, 1700000000, 1700000001,
        longitude, latitude, altitude, on_ground, velocity, heading,
        vertical_rate, None, altitude, squawk, False, 0,
    ]


def make_flight(identity='abc123', **overrides) -> Flight:
    values = dict(
        identity=identity,
        callsign='TEST1',
        country='France',
        longitude=2.35,
        latitude=48.85,
        altitude=3000.0,
        on_ground=False,
        velocity=200.0,
        heading=90.0,
        vertical_rate=0.0,
    )
    values.update(overrides)
    return Flight(**values)


def make_response(body, status=200):
    """aiohttp-style response mock usable as `async with session.get(...)`."""
    response = MagicMock()
    response.status = status
    response.json = AsyncMock(return_value=body)
    return response


def make_session(response=None, method='get'):
    """aiohttp.ClientSession mock returning `response` from get/post."""
    session = MagicMock()
    getattr(session, method).return_value.__aenter__.return_value = response
    getattr(session, method).return_value.__aexit__.return_value = False
    return session


@pytest.fixture
def lookup():
    return ContinentLookup({
        'France': 'Europe',
        'Germany': 'Europe',
        'United States': 'North America',
        'South Korea': 'Asia',
        'Japan': 'Asia',
        'Brazil': 'South America',
    })


@pytest.fixture
def registry(lookup):
    return FlightRegistry(lookup=lookup)
