"""MCP Server for Connect Box Router Management.

This module provides an MCP (Model Context Protocol) server for managing
Compal Connect Box routers through AI assistants. It exposes the device
list and port forwarding table as MCP tools.
"""

from __future__ import annotations

import asyncio
import ipaddress
import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import httpx
from dotenv import load_dotenv
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from .connectbox_client import ConnectBoxClient
from .errors import ConnectBoxError
from .models import PortForwardAction, PortForwardEntry, PortForwardProtocol

# Load environment variables
load_dotenv()

# Configure module logger
logger = logging.getLogger(__name__)

MAX_PORT = 65535


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning("Invalid %s %r, using %s", name, value, default)
        return default


@dataclass
class ClientConfig:
    """Configuration for the Connect Box client."""

    host: str
    password: str
    auto_reauth: bool = True
    timeout: float = 10.0

    @classmethod
    def from_env(cls) -> ClientConfig:
        """Create configuration from environment variables.

        Returns:
            ClientConfig with values from environment.
        """
        return cls(
            host=os.getenv("CONNECTBOX_HOST", "192.168.0.1"),
            password=os.getenv("CONNECTBOX_PASSWORD", ""),
            auto_reauth=_env_flag("CONNECTBOX_AUTO_REAUTH", True),
            timeout=_env_float("CONNECTBOX_TIMEOUT", 10.0),
        )


class ClientManager:
    """Manages the Connect Box client lifecycle.

    The router accepts a single session, so one logged in client is shared
    by all tool calls and created lazily on first use.

    Attributes:
        config: Client configuration.
    """

    def __init__(self, config: Optional[ClientConfig] = None) -> None:
        """Initialize the client manager.

        Args:
            config: Optional client configuration. If not provided,
                    configuration is loaded from environment variables.
        """
        self._config = config or ClientConfig.from_env()
        self._client: Optional[ConnectBoxClient] = None
        self._lock = asyncio.Lock()

    @property
    def config(self) -> ClientConfig:
        """Get the client configuration."""
        return self._config

    def _create_client(self) -> ConnectBoxClient:
        return ConnectBoxClient(
            host=self._config.host,
            password=self._config.password,
            auto_reauth=self._config.auto_reauth,
            timeout=self._config.timeout,
        )

    async def get_client(self) -> ConnectBoxClient:
        """Get or create the logged in Connect Box client.

        Returns:
            Authenticated ConnectBoxClient instance.

        Raises:
            ConnectBoxError: If login fails. No client is kept in that case.
        """
        async with self._lock:
            if self._client is not None and not self._client.is_authenticated:
                logger.info("Session for %s is no longer valid, logging in again", self._config.host)
                self._client.close()
                self._client = None
            if self._client is None:
                logger.debug("Creating new ConnectBoxClient for %s", self._config.host)
                client = self._create_client()
                try:
                    await asyncio.to_thread(client.login)
                except BaseException:
                    client.close()
                    raise
                self._client = client
            return self._client

    async def reset_client(self) -> None:
        """Log out and drop the client, forcing a new login on next use."""
        async with self._lock:
            if self._client:
                try:
                    await asyncio.to_thread(self._client.logout)
                except (ConnectBoxError, httpx.HTTPError) as e:
                    logger.warning("Error during logout: %s", e)
                finally:
                    self._client.close()
                    self._client = None
            logger.debug("Client reset")


# Global client manager instance
_client_manager = ClientManager()


def get_client_manager() -> ClientManager:
    """Get the global client manager.

    Returns:
        The global ClientManager instance.
    """
    return _client_manager


# Initialize MCP server
server = Server("mcp-connectbox")


def parse_port_range(value: str) -> Tuple[int, int]:
    """Parse ``start-end`` (or a single port) into a port range.

    Raises:
        ValueError: If the range is malformed or out of bounds.
    """
    start_text, sep, end_text = str(value).strip().partition("-")
    if not sep:
        end_text = start_text
    try:
        start, end = int(start_text), int(end_text)
    except ValueError:
        raise ValueError(f"Invalid port range {value!r}") from None
    if not (0 < start <= end <= MAX_PORT):
        raise ValueError(f"Invalid port range {value!r}")
    return start, end


def _get_tool_definitions() -> List[Tool]:
    """Get the list of available tool definitions.

    Returns:
        List of Tool definitions for the MCP server.
    """
    return [
        Tool(
            name="list_connected_devices",
            description="List all devices connected to the router over Ethernet and WiFi",
            inputSchema={
                "type": "object",
                "properties": {},
                "required": []
            }
        ),
        Tool(
            name="list_port_forwards",
            description="List the router's port forwarding table",
            inputSchema={
                "type": "object",
                "properties": {},
                "required": []
            }
        ),
        Tool(
            name="add_port_forward",
            description="Add a new port forwarding rule",
            inputSchema={
                "type": "object",
                "properties": {
                    "local_ip": {
                        "type": "string",
                        "description": "LAN IP address to forward to"
                    },
                    "port_range": {
                        "type": "string",
                        "description": "External port or range, e.g. 25565 or 8000-8010"
                    },
                    "internal_port_range": {
                        "type": "string",
                        "description": "Internal port or range (defaults to port_range)"
                    },
                    "protocol": {
                        "type": "string",
                        "description": "Protocol: tcp, udp or both (default)",
                        "enum": ["tcp", "udp", "both"]
                    },
                    "enabled": {
                        "type": "boolean",
                        "description": "Whether the rule is enabled (default true)"
                    }
                },
                "required": ["local_ip", "port_range"]
            }
        ),
        Tool(
            name="edit_port_forward",
            description="Enable, disable or delete a port forwarding rule by id",
            inputSchema={
                "type": "object",
                "properties": {
                    "id": {
                        "type": "integer",
                        "description": "Id of the rule as shown by list_port_forwards"
                    },
                    "action": {
                        "type": "string",
                        "description": "What to do with the rule",
                        "enum": ["enable", "disable", "delete"]
                    }
                },
                "required": ["id", "action"]
            }
        ),
        Tool(
            name="router_diagnostics",
            description="Get diagnostic information about the router session",
            inputSchema={
                "type": "object",
                "properties": {},
                "required": []
            }
        ),
    ]


def _build_port_forward(arguments: Dict[str, Any]) -> PortForwardEntry:
    """Build a new port forward from tool arguments.

    Raises:
        ValueError: If any argument is invalid.
    """
    try:
        local_ip = ipaddress.IPv4Address(arguments["local_ip"])
    except ValueError:
        raise ValueError(f"Invalid local IP {arguments['local_ip']!r}") from None
    enabled = arguments.get("enabled", True)
    if not isinstance(enabled, bool):
        raise ValueError(f"Invalid enabled flag {enabled!r}, expected true or false")
    start, end = parse_port_range(arguments["port_range"])
    start_in, end_in = parse_port_range(
        arguments.get("internal_port_range") or arguments["port_range"]
    )
    return PortForwardEntry(
        id=0,
        local_ip=local_ip,
        start_port=start,
        end_port=end,
        start_port_in=start_in,
        end_port_in=end_in,
        protocol=PortForwardProtocol.from_name(arguments.get("protocol", "both")),
        enable=enabled,
    )


def _edit_port_forward(
    client: ConnectBoxClient,
    port_id: int,
    action: PortForwardAction,
) -> Dict[str, Any]:
    """Apply ``action`` to the rule with ``port_id``, leaving the rest alone."""
    if action is PortForwardAction.KEEP:
        raise ValueError("Action must be enable, disable or delete")

    edits = client.edit_port_forwards(
        lambda entry: action if entry.id == port_id else PortForwardAction.KEEP
    )
    if not edits.ids:
        return {"success": False, "error": f"No port forward with id {port_id} exists"}
    return {"success": True, "id": port_id, "action": action.value}


def _handle_tool_call(
    client: ConnectBoxClient,
    name: str,
    arguments: Dict[str, Any]
) -> Any:
    """Handle a tool call and return the result.

    Args:
        client: The ConnectBoxClient instance.
        name: The tool name.
        arguments: The tool arguments.

    Returns:
        The result of the tool call.

    Raises:
        ValueError: If the tool name or its arguments are invalid.
    """
    if name == "list_connected_devices":
        return client.devices().to_dict()

    elif name == "list_port_forwards":
        return client.port_forwards().to_dict()

    elif name == "add_port_forward":
        entry = _build_port_forward(arguments)
        client.add_port_forward(entry)
        return {"success": True, "port_forward": entry.to_dict()}

    elif name == "edit_port_forward":
        return _edit_port_forward(
            client,
            int(arguments["id"]),
            PortForwardAction.from_name(arguments["action"]),
        )

    elif name == "router_diagnostics":
        return client.get_diagnostics()

    else:
        raise ValueError(f"Unknown tool: {name}")


@server.list_tools()
async def list_tools() -> List[Tool]:
    """List available tools.

    Returns:
        List of available Tool definitions.
    """
    return _get_tool_definitions()


@server.call_tool()
async def call_tool(name: str, arguments: Dict[str, Any]) -> List[TextContent]:
    """Handle tool calls.

    Args:
        name: The tool name to call.
        arguments: The arguments for the tool.

    Returns:
        List containing a single TextContent with the JSON result.
    """
    manager = get_client_manager()

    try:
        client = await manager.get_client()
        result = await asyncio.to_thread(_handle_tool_call, client, name, arguments)
        return [TextContent(type="text", text=json.dumps(result, indent=2))]
    except ValueError as e:
        logger.warning("Invalid tool call: %s", e)
        return [TextContent(type="text", text=json.dumps({"error": str(e)}, indent=2))]
    except Exception as e:
        logger.exception("Tool call error for %s: %s", name, e)
        return [TextContent(type="text", text=json.dumps({"error": str(e)}, indent=2))]


def main() -> None:
    """Main entry point for the MCP server."""
    # Configure logging
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    async def run() -> None:
        """Run the MCP server."""
        logger.info("Starting MCP Connect Box server")
        try:
            async with stdio_server() as (read_stream, write_stream):
                await server.run(
                    read_stream,
                    write_stream,
                    server.create_initialization_options()
                )
        finally:
            await get_client_manager().reset_client()

    asyncio.run(run())


if __name__ == "__main__":
    main()
