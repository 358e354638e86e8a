#!/usr/bin/env python3
"""Replace the port forwards of a LAN host with a single new one.

Removes every port forward pointing at the given local IP, then forwards
port 25565 (Minecraft server) to it.

Usage:
    python port_forwards.py 192.168.0.42
"""

import ipaddress
import os
import sys
from dotenv import load_dotenv

# Add parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from mcp_connectbox import (
    ConnectBoxClient,
    PortForwardAction,
    PortForwardEntry,
    PortForwardProtocol,
)

load_dotenv()

def main():
    if len(sys.argv) < 2:
        print("Usage: python port_forwards.py <local_ip>")
        return

    local_ip = ipaddress.IPv4Address(sys.argv[1])

    host = os.getenv("CONNECTBOX_HOST", "192.168.0.1")
    password = os.getenv("CONNECTBOX_PASSWORD")

    if not password:
        print("Error: CONNECTBOX_PASSWORD not set")
        return

    print(f"Connecting to router at {host}...")

    with ConnectBoxClient(host, password) as client:
        client.login()
        try:
            # First remove all port forwards for the local ip
            edits = client.edit_port_forwards(
                lambda e: PortForwardAction.DELETE if e.local_ip == local_ip else PortForwardAction.KEEP
            )
            print(f"Deleted {len(edits)} port forward(s) for {local_ip}")

            client.add_port_forward(PortForwardEntry(
                id=0,
                local_ip=local_ip,
                start_port=25565,
                end_port=25565,
                start_port_in=25565,
                end_port_in=25565,
                protocol=PortForwardProtocol.BOTH,
                enable=True,
            ))
            print("Added port forward 25565 -> 25565")

            print("\nCurrent rules:")
            for entry in client.port_forwards().entries:
                print(f"  {entry.id:>3} {str(entry.local_ip):<16} "
                      f"{entry.start_port}-{entry.end_port} -> "
                      f"{entry.start_port_in}-{entry.end_port_in} "
                      f"{str(entry.protocol):<5} {'enabled' if entry.enable else 'disabled'}")
        finally:
            # Let other users log in to the web interface
            client.logout()

if __name__ == "__main__":
    main()
