"""Connect Box router API client.

The Compal CH7465 ("Connect Box") web UI talks to two endpoints:
``xml/getter.xml`` answers reads with XML and ``xml/setter.xml`` accepts
form-encoded writes and answers with a short status string. Both dispatch
on a numeric function id (``fun``) and require the ``sessionToken`` cookie
to be echoed back as the ``token`` field.

The router allows a single session at a time and silently drops it after
a few minutes of inactivity or when someone else logs in. An expired
session is only visible as a redirect to the login page, so the client
re-authenticates once and retries the request when that happens.
"""

from __future__ import annotations

import logging
import threading
import xml.etree.ElementTree as ET
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, TypeVar

import httpx

from . import codec, functions
from .errors import (
    AccessDeniedError,
    IncorrectPasswordError,
    NoSessionTokenError,
    NotAuthorizedError,
    RemoteError,
    UnexpectedRedirectError,
    UnexpectedResponseError,
)
from .models import (
    LanUserTable,
    PortForwardAction,
    PortForwardEdits,
    PortForwardEntry,
    PortForwards,
)
from .session import SESSION_TOKEN_COOKIE, SID_COOKIE, SessionStore

# Configure module logger
logger = logging.getLogger(__name__)

T = TypeVar("T")

GETTER_PATH = "xml/getter.xml"
SETTER_PATH = "xml/setter.xml"
LOGIN_PAGE_PATH = "common_page/login.html"
ACCESS_DENIED_LOCATION = "../common_page/Access-denied.html"

LOGIN_INCORRECT = "idloginincorrect"
LOGIN_SUCCESS_PREFIX = "successful;SID="

USER_AGENT = "Mozilla/5.0"


class SessionState(Enum):
    """Authentication state of a client."""

    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"


def _is_redirect(resp: httpx.Response) -> bool:
    return 300 <= resp.status_code < 400


class ConnectBoxClient:
    """Client for the Connect Box XML API.

    :meth:`login` must be called before any other operation. The router only
    allows one session at a time, so call :meth:`logout` when done to let
    other users in.

    Attributes:
        host: Router IP address or hostname.
        password: Router admin password.
        auto_reauth: Re-login once when the session expires mid-call.
        base_url: Base URL of the router web interface.

    Example:
        >>> with ConnectBoxClient('192.168.0.1', 'my_password') as client:
        ...     client.login()
        ...     devices = client.devices()
        ...     print(f"Found {devices.total_clients} devices")
        ...     client.logout()
    """

    def __init__(
        self,
        host: str,
        password: str,
        auto_reauth: bool = True,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        """Initialize the Connect Box client.

        Args:
            host: Router IP address or hostname.
            password: Router admin password.
            auto_reauth: Whether to re-authenticate when the session expires.
            timeout: HTTP request timeout in seconds.
            transport: Optional httpx transport, mainly for tests.
        """
        self.host = host
        self.password = password
        self.auto_reauth = auto_reauth
        self.base_url = f"http://{host}/"
        self._http = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            headers={"User-Agent": USER_AGENT},
            follow_redirects=False,
            transport=transport,
        )
        self._session = SessionStore(self._http.cookies, self._http.base_url.host)
        self._state = SessionState.UNAUTHENTICATED
        self._lock = threading.RLock()

    def __enter__(self) -> ConnectBoxClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.close()

    @property
    def state(self) -> SessionState:
        """Current authentication state."""
        return self._state

    @property
    def is_authenticated(self) -> bool:
        """Check if the last login succeeded and no expiry has been seen since."""
        return self._state is SessionState.AUTHENTICATED

    def close(self) -> None:
        """Close the HTTP client and forget the session cookies."""
        with self._lock:
            self._session.clear()
            self._state = SessionState.UNAUTHENTICATED
            self._http.close()

    def _sid(self) -> str:
        return self._session.get(SID_COOKIE) or "unknown"

    def _session_token(self) -> str:
        token = self._session.get(SESSION_TOKEN_COOKIE)
        if token is None:
            raise NoSessionTokenError()
        return token

    # Authentication

    def login(self) -> None:
        """Log in to the router.

        Fetches the login page first so the router hands out a session
        token, then submits the password.

        Raises:
            AccessDeniedError: If another user is logged in.
            IncorrectPasswordError: If the password is wrong.
            UnexpectedRedirectError: If the router redirects elsewhere.
            UnexpectedResponseError: If the response is not recognised.
            NoSessionTokenError: If the login page did not set a token.
        """
        with self._lock:
            self._http.get(LOGIN_PAGE_PATH)
            self._login()

    def _login(self) -> None:
        """Submit the password using the session token already held."""
        self._state = SessionState.AUTHENTICATING
        logged_in = False
        try:
            sid = self._submit_password()
            self._session.set(SID_COOKIE, sid)
            logged_in = True
        finally:
            self._state = (
                SessionState.AUTHENTICATED if logged_in else SessionState.UNAUTHENTICATED
            )
        logger.info("session <%s>: logged in successfully", sid)

    def _submit_password(self) -> str:
        form = {
            "token": self._session_token(),
            "fun": str(functions.LOGIN),
            "Username": "NULL",
            "Password": self.password,
        }
        logger.debug("Executing setter %d (login)", functions.LOGIN)
        resp = self._http.post(SETTER_PATH, data=form)

        location = resp.headers.get("Location")
        if _is_redirect(resp) and location is not None:
            if location == ACCESS_DENIED_LOCATION:
                raise AccessDeniedError()
            raise UnexpectedRedirectError(location)

        text = resp.text
        if text == LOGIN_INCORRECT:
            raise IncorrectPasswordError()
        if not text.startswith(LOGIN_SUCCESS_PREFIX):
            raise UnexpectedResponseError(text)
        return text[len(LOGIN_SUCCESS_PREFIX):]

    def logout(self) -> None:
        """Log out of the router.

        The Connect Box allows only one session at a time, so this should be
        called once the client is no longer needed.
        """
        with self._lock:
            self._xml_setter(functions.LOGOUT)
            logger.info("session <%s>: logged out", self._sid())
            self._state = SessionState.UNAUTHENTICATED

    # Request execution

    def _execute(
        self,
        path: str,
        function: int,
        fields: Optional[Mapping[str, str]] = None,
    ) -> httpx.Response:
        """POST a function call, re-authenticating once on session expiry.

        Raises:
            NotAuthorizedError: If the session is still expired after the
                single reauth attempt, or reauth is disabled.
            httpx.HTTPStatusError: On a non-redirect error status.
        """
        reauthed = False
        while True:
            form: Dict[str, str] = {
                "token": self._session_token(),
                "fun": str(function),
            }
            if fields:
                form.update(fields)
            logger.debug("Executing %s %d with body %s", path, function, form)
            resp = self._http.post(path, data=form)
            if not _is_redirect(resp):
                resp.raise_for_status()
                return resp

            self._state = SessionState.UNAUTHENTICATED
            if self.auto_reauth and not reauthed:
                reauthed = True
                logger.info("session <%s> has expired, attempting reauth", self._sid())
                self._login()
                continue
            raise NotAuthorizedError()

    def _xml_getter(self, function: int, decoder: Callable[[ET.Element], T]) -> T:
        """Call a getter function and decode its XML response."""
        resp = self._execute(GETTER_PATH, function)
        return decoder(codec.parse_xml(resp.text))

    def _xml_setter(
        self,
        function: int,
        fields: Optional[Mapping[str, str]] = None,
    ) -> str:
        """Call a setter function and return the raw response text."""
        return self._execute(SETTER_PATH, function, fields).text

    # Domain operations

    def devices(self) -> LanUserTable:
        """Get all devices connected to the router."""
        with self._lock:
            return self._xml_getter(functions.LAN_TABLE, LanUserTable.from_xml)

    def port_forwards(self) -> PortForwards:
        """Get the port forwarding table."""
        with self._lock:
            return self._xml_getter(functions.FORWARDS, PortForwards.from_xml)

    def add_port_forward(self, entry: PortForwardEntry) -> None:
        """Add a port forward. The entry's ``id`` is ignored.

        Raises:
            RemoteError: If the router rejects the entry.
        """
        fields = {"action": "add", "instance": ""}
        fields.update(entry.to_fields())
        fields.update({"delete": "0", "idd": ""})
        with self._lock:
            self._check_empty(self._xml_setter(functions.EDIT_FORWARDS, fields))
        logger.info("Added port forward %s:%d-%d", entry.local_ip, entry.start_port, entry.end_port)

    def edit_port_forwards(
        self,
        decide: Callable[[PortForwardEntry], PortForwardAction],
    ) -> PortForwardEdits:
        """Enable, disable or delete port forwards in one request.

        ``decide`` is called for every existing entry, in table order, and
        returns the action to apply to it.

        Args:
            decide: Callback choosing a PortForwardAction per entry.

        Returns:
            The batch that was sent to the router.

        Raises:
            RemoteError: If the router rejects the batch.
        """
        with self._lock:
            edits = PortForwardEdits.from_decisions(self.port_forwards().entries, decide)
            fields = {
                "action": "apply",
                "instance": "",
                "local_IP": "",
                "start_port": "",
                "end_port": "",
                "start_portIn": "",
                "end_portIn": "",
                "protocol": "",
                "enable": "",
                "delete": "",
                "idd": "",
            }
            fields.update(edits.to_fields())
            self._check_empty(self._xml_setter(functions.EDIT_FORWARDS, fields))
        logger.info("Applied %d port forward edit(s)", len(edits))
        return edits

    @staticmethod
    def _check_empty(resp: str) -> None:
        if resp:
            raise RemoteError(resp)

    def get_diagnostics(self) -> Dict[str, Any]:
        """Get diagnostic information about the connection.

        Cookie values are never included.
        """
        return {
            "host": self.host,
            "state": self._state.value,
            "authenticated": self.is_authenticated,
            "auto_reauth": self.auto_reauth,
            "has_session_token": SESSION_TOKEN_COOKIE in self._session,
            "has_sid": SID_COOKIE in self._session,
        }
