"""MCP server and client for Compal Connect Box router management.

This package provides a client for the XML API of the Compal CH7465
("Connect Box") cable router, and an MCP (Model Context Protocol) server
exposing it to AI assistants.

Example usage:
    >>> from mcp_connectbox import ConnectBoxClient
    >>> client = ConnectBoxClient('192.168.0.1', 'my_password')
    >>> client.login()
    >>> devices = client.devices()
    >>> print(f"Found {devices.total_clients} devices")
    >>> client.logout()

For MCP server usage, run:
    $ mcp-connectbox
"""

from .connectbox_client import ConnectBoxClient, SessionState
from .errors import (
    AccessDeniedError,
    ConnectBoxError,
    DecodeError,
    IncorrectPasswordError,
    NoSessionTokenError,
    NotAuthorizedError,
    RemoteError,
    UnexpectedRedirectError,
    UnexpectedResponseError,
)
from .models import (
    ClientInfo,
    LanUserTable,
    PortForwardAction,
    PortForwardEdits,
    PortForwardEntry,
    PortForwardProtocol,
    PortForwards,
)
from .server import ClientConfig, ClientManager, get_client_manager, main

__version__ = "0.1.0"

__all__ = [
    # Main entry point
    "main",
    # Client
    "ConnectBoxClient",
    "SessionState",
    # Server components
    "ClientConfig",
    "ClientManager",
    "get_client_manager",
    # Data classes
    "ClientInfo",
    "LanUserTable",
    "PortForwardAction",
    "PortForwardEdits",
    "PortForwardEntry",
    "PortForwardProtocol",
    "PortForwards",
    # Exceptions
    "ConnectBoxError",
    "NoSessionTokenError",
    "IncorrectPasswordError",
    "NotAuthorizedError",
    "AccessDeniedError",
    "UnexpectedRedirectError",
    "UnexpectedResponseError",
    "RemoteError",
    "DecodeError",
]
