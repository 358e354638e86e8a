"""Exceptions raised by the Connect Box client."""

from __future__ import annotations

from typing import Optional


class ConnectBoxError(Exception):
    """Base exception for Connect Box client errors."""

    pass


class NoSessionTokenError(ConnectBoxError):
    """Raised when the ``sessionToken`` cookie is missing.

    The token is set by the login page, so this means ``login()`` was never
    called (or the cookie jar was cleared) before issuing a request.
    """

    def __init__(self) -> None:
        super().__init__("session token not found, are you logged in?")


class IncorrectPasswordError(ConnectBoxError):
    """Raised when the router rejects the password."""

    def __init__(self) -> None:
        super().__init__("incorrect password")


class NotAuthorizedError(ConnectBoxError):
    """Raised when the session stays expired after the allowed reauth."""

    def __init__(self) -> None:
        super().__init__("not authorized, the session has expired")


class AccessDeniedError(ConnectBoxError):
    """Raised when another user is already logged in to the router."""

    def __init__(self) -> None:
        super().__init__("access denied, another session is active")


class UnexpectedRedirectError(ConnectBoxError):
    """Raised when the login request redirects somewhere unexpected."""

    def __init__(self, location: str) -> None:
        self.location = location
        super().__init__(f"unexpected redirect to {location!r}")


class UnexpectedResponseError(ConnectBoxError):
    """Raised when the login response is neither success nor a known failure."""

    def __init__(self, body: str) -> None:
        self.body = body
        super().__init__(f"unexpected response from the server: {body!r}")


class RemoteError(ConnectBoxError):
    """Raised when the router rejects a write with a diagnostic message."""

    def __init__(self, body: str) -> None:
        self.body = body
        super().__init__(f"remote error: {body!r}")


class DecodeError(ConnectBoxError):
    """Raised when a wire value cannot be converted to its typed form.

    Attributes:
        field: Name of the offending field.
        value: Raw value that failed to decode, or None if it was missing.
    """

    def __init__(self, field: str, value: Optional[str], reason: str = "") -> None:
        self.field = field
        self.value = value
        if value is None:
            message = f"missing field {field!r}"
        else:
            message = f"invalid value {value!r} for field {field!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
