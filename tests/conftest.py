"""Shared fixtures: sample router documents and a simulated router."""

from typing import Dict, Iterator, List, Optional, Tuple
from urllib.parse import parse_qsl

import httpx
import pytest

from mcp_connectbox import functions
from mcp_connectbox.connectbox_client import ConnectBoxClient

ROUTER_HOST = "192.168.0.1"
PASSWORD = "secret"

LAN_TABLE_XML = """<?xml version="1.0" encoding="UTF-8"?>
<LanUserTable>
  <Ethernet>
    <clientinfo>
      <index>0</index>
      <interface>Ethernet</interface>
      <interfaceid>2</interfaceid>
      <IPv4Addr>192.168.0.10/24</IPv4Addr>
      <hostname>desktop</hostname>
      <MACAddr>AA:BB:CC:DD:EE:01</MACAddr>
      <method>1</method>
      <leaseTime>00:23:59:44</leaseTime>
      <speed>1000</speed>
    </clientinfo>
  </Ethernet>
  <WIFI>
    <clientinfo>
      <index>1</index>
      <interface>WIFI</interface>
      <interfaceid>3</interfaceid>
      <IPv4Addr>192.168.0.11/24</IPv4Addr>
      <hostname>phone</hostname>
      <MACAddr>AA:BB:CC:DD:EE:02</MACAddr>
      <method>1</method>
      <leaseTime>1:02:03:04</leaseTime>
      <speed>300</speed>
    </clientinfo>
  </WIFI>
  <totalClient>2</totalClient>
  <Customer>upc</Customer>
</LanUserTable>
"""

FORWARDS_XML = """<?xml version="1.0" encoding="UTF-8"?>
<Forwarding>
  <LanIP>192.168.0.1</LanIP>
  <subnetmask>255.255.255.0</subnetmask>
  <instance>
    <local_IP>192.168.0.10</local_IP>
    <start_port>80</start_port>
    <end_port>80</end_port>
    <start_portIn>8080</start_portIn>
    <end_portIn>8080</end_portIn>
    <protocol>1</protocol>
    <enable>1</enable>
    <id>1</id>
  </instance>
  <instance>
    <local_IP>192.168.0.20</local_IP>
    <start_port>25565</start_port>
    <end_port>25565</end_port>
    <start_portIn>25565</start_portIn>
    <end_portIn>25565</end_portIn>
    <protocol>3</protocol>
    <enable>1</enable>
    <id>2</id>
  </instance>
  <instance>
    <local_IP>192.168.0.30</local_IP>
    <start_port>5000</start_port>
    <end_port>5010</end_port>
    <start_portIn>6000</start_portIn>
    <end_portIn>6010</end_portIn>
    <protocol>2</protocol>
    <enable>0</enable>
    <id>5</id>
  </instance>
</Forwarding>
"""

# (status, headers, body)
Reply = Tuple[int, Dict[str, str], str]


def ok(text: str = "") -> Reply:
    """A plain 200 reply."""
    return (200, {}, text)


def expired() -> Reply:
    """The redirect the router sends once a session is gone."""
    return (302, {"Location": "../common_page/login.html"}, "")


class FakeRouter:
    """Simulates the Connect Box web server for httpx.MockTransport.

    Replies are queued per (path, function id). The last queued reply is
    repeated once the queue is down to one.
    """

    def __init__(self) -> None:
        self.requests: List[Tuple[str, Dict[str, str]]] = []
        self.cookie_headers: List[str] = []
        self.user_agents: List[str] = []
        self.replies: Dict[Tuple[str, int], List[Reply]] = {
            ("/xml/setter.xml", functions.LOGIN): [ok("successful;SID=abc123")],
        }
        self.set_token = True

    def queue(self, path: str, function: int, *replies: Reply) -> None:
        self.replies[(path, function)] = list(replies)

    def getter(self, function: int, *replies: Reply) -> None:
        self.queue("/xml/getter.xml", function, *replies)

    def setter(self, function: int, *replies: Reply) -> None:
        self.queue("/xml/setter.xml", function, *replies)

    def calls(self, path: str, function: Optional[int] = None) -> List[Dict[str, str]]:
        """Forms of the requests sent to ``path`` (and ``function``)."""
        return [
            form for p, form in self.requests
            if p == path and (function is None or form.get("fun") == str(function))
        ]

    @property
    def logins(self) -> int:
        return len(self.calls("/xml/setter.xml", functions.LOGIN))

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        form = dict(parse_qsl(request.content.decode(), keep_blank_values=True))
        self.requests.append((path, form))
        self.cookie_headers.append(request.headers.get("cookie", ""))
        self.user_agents.append(request.headers.get("user-agent", ""))

        if path == "/common_page/login.html":
            headers = {}
            if self.set_token:
                headers["Set-Cookie"] = "sessionToken=tok123; Path=/"
            return httpx.Response(200, headers=headers, text="<html></html>")

        queue = self.replies.get((path, int(form["fun"])))
        if not queue:
            return httpx.Response(404, text="not found")
        status, headers, text = queue.pop(0) if len(queue) > 1 else queue[0]
        return httpx.Response(status, headers=headers, text=text)


@pytest.fixture
def router() -> FakeRouter:
    """A simulated router with a working login."""
    fake = FakeRouter()
    fake.getter(functions.LAN_TABLE, ok(LAN_TABLE_XML))
    fake.getter(functions.FORWARDS, ok(FORWARDS_XML))
    fake.setter(functions.EDIT_FORWARDS, ok(""))
    fake.setter(functions.LOGOUT, ok(""))
    return fake


@pytest.fixture
def client(router: FakeRouter) -> Iterator[ConnectBoxClient]:
    """A client talking to the simulated router, not yet logged in."""
    c = ConnectBoxClient(
        ROUTER_HOST,
        PASSWORD,
        transport=httpx.MockTransport(router.handler),
    )
    yield c
    c.close()


@pytest.fixture
def logged_in_client(client: ConnectBoxClient) -> ConnectBoxClient:
    """A client that has completed login against the simulated router."""
    client.login()
    return client
