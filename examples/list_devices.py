#!/usr/bin/env python3
"""List all devices connected to a Connect Box router."""

import os
import sys
from dotenv import load_dotenv

# Add parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from mcp_connectbox import ConnectBoxClient

# Load environment variables from .env file
load_dotenv()

def main():
    # Get router configuration from environment
    host = os.getenv("CONNECTBOX_HOST", "192.168.0.1")
    password = os.getenv("CONNECTBOX_PASSWORD")

    if not password:
        print("Error: CONNECTBOX_PASSWORD not set in environment or .env file")
        print("Create a .env file with:")
        print("  CONNECTBOX_HOST=192.168.0.1")
        print("  CONNECTBOX_PASSWORD=your_password")
        return

    print(f"Connecting to router at {host}...")

    with ConnectBoxClient(host, password) as client:
        client.login()
        try:
            table = client.devices()

            print(f"\nConnected devices ({table.total_clients}):")
            print("-" * 80)
            print(f"{'Interface':<10} {'IP':<16} {'MAC':<18} {'Speed':>6} {'Lease':>10}  Hostname")
            print("-" * 80)

            for dev in table.ethernet + table.wifi:
                print(f"{dev.interface:<10} "
                      f"{str(dev.ipv4_addr.ip):<16} "
                      f"{dev.mac:<18} "
                      f"{dev.speed:>6} "
                      f"{str(dev.lease_time):>10}  "
                      f"{dev.hostname}")
        finally:
            client.logout()
            print("\nLogged out")

if __name__ == "__main__":
    main()
