"""Tests for the session cookie store."""

import httpx
import pytest

from mcp_connectbox.session import SESSION_TOKEN_COOKIE, SID_COOKIE, SessionStore


@pytest.fixture
def store() -> SessionStore:
    return SessionStore(httpx.Cookies(), "192.168.0.1")


class TestSessionStore:
    """Tests for SessionStore lookup and update."""

    def test_absent(self, store: SessionStore) -> None:
        """Test an unset cookie is None."""
        assert store.get(SID_COOKIE) is None
        assert SID_COOKIE not in store

    def test_first_and_last(self, store: SessionStore) -> None:
        """Test lookup works regardless of position."""
        store.set(SESSION_TOKEN_COOKIE, "tok")
        store.set("other", "x")
        store.set(SID_COOKIE, "sid")
        assert store.get(SESSION_TOKEN_COOKIE) == "tok"
        assert store.get(SID_COOKIE) == "sid"

    def test_name_prefix_does_not_match(self, store: SessionStore) -> None:
        """Test a cookie whose name extends another's is not confused with it."""
        store.set("SIDX", "wrong")
        store.set("XSID", "wrong")
        assert store.get(SID_COOKIE) is None
        store.set(SID_COOKIE, "right")
        assert store.get(SID_COOKIE) == "right"
        assert store.get("SIDX") == "wrong"

    def test_overwrite(self, store: SessionStore) -> None:
        """Test setting a cookie again replaces its value."""
        store.set(SID_COOKIE, "old")
        store.set(SID_COOKIE, "new")
        assert store.get(SID_COOKIE) == "new"
        assert len([c for c in store._cookies.jar if c.name == SID_COOKIE]) == 1

    def test_other_host_ignored(self) -> None:
        """Test cookies for another host are out of scope."""
        cookies = httpx.Cookies()
        cookies.set(SID_COOKIE, "foreign", domain="10.0.0.1")
        store = SessionStore(cookies, "192.168.0.1")
        assert store.get(SID_COOKIE) is None

    def test_dotless_host(self) -> None:
        """Test hosts without dots are scoped like cookiejar scopes them."""
        store = SessionStore(httpx.Cookies(), "connectbox")
        store.set(SID_COOKIE, "sid")
        assert store.get(SID_COOKIE) == "sid"

    def test_clear(self, store: SessionStore) -> None:
        """Test clear drops everything."""
        store.set(SESSION_TOKEN_COOKIE, "tok")
        store.clear()
        assert store.get(SESSION_TOKEN_COOKIE) is None
