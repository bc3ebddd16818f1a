"""
Error types delivered through failure signals.

Network and parse failures are raised inside the transport coroutines and
converted to one of these at the boundary; they are handed to listeners,
never raised into the caller.
"""

from typing import Optional


class FlightTrackerError(Exception):
    """Base class for all FlightTracker errors."""


class AuthError(FlightTrackerError):
    """Missing credentials, transport failure, or no token in the response."""


class FetchError(FlightTrackerError):
    """
    Snapshot or track request failure.

    `identity` is set for track requests so listeners can tell which
    in-progress track draw to abandon.
    """

    def __init__(
        self,
        message: str,
        identity: Optional[str] = None,
        status: Optional[int] = None,
    ):
        super().__init__(message)
        self.identity = identity
        self.status = status

    @property
    def is_track_error(self) -> bool:
        return self.identity is not None
