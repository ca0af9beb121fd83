"""Exception hierarchy for pairchat.

Store failures are raised on the backend. Remote failures are raised by the
API client and downgraded to warnings at the reconciler boundary.
"""


class PairchatError(Exception):
    """Base class for all pairchat errors."""


class StoreError(PairchatError):
    """The backend document could not be read or written."""


class RemoteError(PairchatError):
    """A call to the backend did not produce a usable result."""


class RemoteUnreachable(RemoteError):
    """Transport-level failure: connection refused, timeout, DNS, etc."""


class RemoteRejected(RemoteError):
    """The backend answered with a non-success status."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class MalformedResponse(RemoteError):
    """The backend answered with a payload of an unexpected shape."""
