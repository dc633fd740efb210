"""Domain errors shared by the storage, activity and Strava layers.

The HTTP layer maps these onto status codes in ``gpxgrid.main``; the core
never swallows them.
"""

from __future__ import annotations


class GpxGridError(Exception):
    """Base class for every error raised by the gpxgrid core."""


class ConfigurationError(GpxGridError):
    """Required configuration is missing or invalid.  Raised before any I/O."""


class StorageError(GpxGridError):
    """Base class for storage driver failures."""


class NotFoundError(StorageError):
    """The requested key / object does not exist."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Object not found: {key}")
        self.key = key


class InvalidKeyError(StorageError, ValueError):
    """A storage key is empty or would escape the storage root."""


class TransportError(GpxGridError):
    """An HTTP call returned a non-2xx status that is not handled specially.

    Attributes:
        status_code: HTTP status returned by the remote.
        body:        Response body text, surfaced unmodified.
    """

    def __init__(self, message: str, status_code: int, body: str = "") -> None:
        super().__init__(f"{message} with {status_code}: {body}")
        self.status_code = status_code
        self.body = body


class AuthError(GpxGridError):
    """The provider rejected our credentials; the user must re-authorize."""


class StateMismatchError(AuthError):
    """The OAuth ``state`` nonce does not match the pending one."""


class NotConnectedError(AuthError):
    """No provider tokens are stored for this user."""


class ParseError(GpxGridError, ValueError):
    """Stored metadata or an encoded polyline could not be decoded."""
