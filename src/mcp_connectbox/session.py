"""Cookie storage scoped to a single Connect Box."""

from __future__ import annotations

from typing import Optional

import httpx

# Cookie set by the login page and echoed back as the ``token`` form field
SESSION_TOKEN_COOKIE = "sessionToken"
# Cookie identifying the logged in session
SID_COOKIE = "SID"


class SessionStore:
    """Session cookies for one router host.

    Wraps the cookie jar of the client's ``httpx.Client`` so cookies set by
    the router (``sessionToken``) and cookies set locally (``SID``) are sent
    together on every request.

    Attributes:
        host: Host name or address the cookies are scoped to.
    """

    def __init__(self, cookies: httpx.Cookies, host: str) -> None:
        self._cookies = cookies
        self.host = host
        # cookiejar files cookies from dotless hosts under "<host>.local"
        self._domain = host if "." in host else f"{host}.local"

    def _in_scope(self, domain: str) -> bool:
        return domain.lstrip(".") in (self.host, self._domain)

    def get(self, name: str) -> Optional[str]:
        """Return the value of cookie ``name``, or None if it is not set."""
        for cookie in self._cookies.jar:
            if cookie.name == name and self._in_scope(cookie.domain):
                return cookie.value
        return None

    def set(self, name: str, value: str) -> None:
        """Store or overwrite cookie ``name`` for the router host."""
        for cookie in list(self._cookies.jar):
            if cookie.name == name and self._in_scope(cookie.domain):
                self._cookies.jar.clear(cookie.domain, cookie.path, cookie.name)
        self._cookies.set(name, value, domain=self._domain, path="/")

    def __contains__(self, name: str) -> bool:
        return self.get(name) is not None

    def clear(self) -> None:
        """Drop every cookie."""
        self._cookies.clear()
