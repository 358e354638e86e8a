"""Data structures returned and accepted by the Connect Box client."""

from __future__ import annotations

import ipaddress
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping

from . import codec
from .errors import DecodeError


class PortForwardProtocol(Enum):
    """Transport protocol of a port forward, keyed by its wire id."""

    TCP = 1
    UDP = 2
    BOTH = 3

    @property
    def id(self) -> int:
        """Wire id of the protocol."""
        return self.value

    @classmethod
    def from_id(cls, raw: str, field: str = "protocol") -> PortForwardProtocol:
        """Decode the router's protocol id.

        Raises:
            DecodeError: If the id is not 1, 2 or 3.
        """
        value = codec.parse_uint(raw, field)
        try:
            return cls(value)
        except ValueError:
            raise DecodeError(field, raw, "expected 1, 2 or 3") from None

    @classmethod
    def from_name(cls, name: str) -> PortForwardProtocol:
        """Parse a user-supplied protocol name (tcp, udp or both).

        Raises:
            ValueError: If the name is not recognised.
        """
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(f"Invalid protocol {name!r}") from None

    def encode(self) -> str:
        """Encode for the setter form."""
        return str(self.value)

    def __str__(self) -> str:
        return "Both" if self is PortForwardProtocol.BOTH else self.name


class PortForwardAction(Enum):
    """What to do with an existing port forward during a batched edit."""

    KEEP = "keep"
    ENABLE = "enable"
    DISABLE = "disable"
    DELETE = "delete"

    @classmethod
    def from_name(cls, name: str) -> PortForwardAction:
        """Parse a user-supplied action name.

        Raises:
            ValueError: If the name is not recognised.
        """
        try:
            return cls(name.strip().lower())
        except ValueError:
            raise ValueError(f"Invalid action {name!r}") from None


# (enable, delete) flags sent for each action that changes an entry
_ACTION_FLAGS: Dict[PortForwardAction, tuple] = {
    PortForwardAction.ENABLE: (True, False),
    PortForwardAction.DISABLE: (False, False),
    PortForwardAction.DELETE: (False, True),
}


@dataclass
class ClientInfo:
    """A device known to the router's DHCP server."""

    index: int
    interface: str
    interface_id: int
    ipv4_addr: ipaddress.IPv4Interface
    hostname: str
    mac: str
    lease_time: timedelta
    speed: int

    @classmethod
    def from_xml(cls, elem: ET.Element) -> ClientInfo:
        """Decode a ``<clientinfo>`` element."""
        return cls(
            index=codec.child_int(elem, "index"),
            interface=codec.child_text(elem, "interface"),
            interface_id=codec.child_int(elem, "interfaceid"),
            ipv4_addr=codec.ipv4_interface(codec.child_text(elem, "IPv4Addr"), "IPv4Addr"),
            hostname=codec.child_text(elem, "hostname"),
            mac=codec.child_text(elem, "MACAddr"),
            lease_time=codec.lease_time_from_str(codec.child_text(elem, "leaseTime")),
            speed=codec.child_int(elem, "speed"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "index": self.index,
            "interface": self.interface,
            "interface_id": self.interface_id,
            "ip": str(self.ipv4_addr.ip),
            "network": str(self.ipv4_addr.network),
            "hostname": self.hostname,
            "mac": self.mac,
            "lease_time": int(self.lease_time.total_seconds()),
            "speed": self.speed,
        }


@dataclass
class LanUserTable:
    """Devices connected to the router, split by interface."""

    ethernet: List[ClientInfo] = field(default_factory=list)
    wifi: List[ClientInfo] = field(default_factory=list)
    total_clients: int = 0
    customer: str = ""

    @classmethod
    def from_xml(cls, root: ET.Element) -> LanUserTable:
        """Decode a ``<LanUserTable>`` document."""
        return cls(
            ethernet=[
                ClientInfo.from_xml(e)
                for e in codec.unwrap_list(root, "Ethernet", "clientinfo")
            ],
            wifi=[
                ClientInfo.from_xml(e)
                for e in codec.unwrap_list(root, "WIFI", "clientinfo")
            ],
            total_clients=codec.child_int(root, "totalClient"),
            customer=codec.child_text(root, "Customer"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "ethernet": [c.to_dict() for c in self.ethernet],
            "wifi": [c.to_dict() for c in self.wifi],
            "total_clients": self.total_clients,
            "customer": self.customer,
        }


@dataclass
class PortForwardEntry:
    """A single port forwarding rule.

    ``id`` is assigned by the router. Entries built locally for
    :meth:`ConnectBoxClient.add_port_forward` use ``id=0``.
    """

    id: int
    local_ip: ipaddress.IPv4Address
    start_port: int
    end_port: int
    start_port_in: int
    end_port_in: int
    protocol: PortForwardProtocol
    enable: bool

    @classmethod
    def from_xml(cls, elem: ET.Element) -> PortForwardEntry:
        """Decode an ``<instance>`` element."""
        return cls(
            id=codec.child_int(elem, "id"),
            local_ip=codec.ipv4_address(codec.child_text(elem, "local_IP"), "local_IP"),
            start_port=codec.child_int(elem, "start_port"),
            end_port=codec.child_int(elem, "end_port"),
            start_port_in=codec.child_int(elem, "start_portIn"),
            end_port_in=codec.child_int(elem, "end_portIn"),
            protocol=PortForwardProtocol.from_id(codec.child_text(elem, "protocol")),
            enable=codec.bool_from_int(codec.child_text(elem, "enable"), "enable"),
        )

    def to_fields(self) -> Dict[str, str]:
        """Per-entry setter fields used when adding this entry."""
        return {
            "local_IP": str(self.local_ip),
            "start_port": str(self.start_port),
            "end_port": str(self.end_port),
            "start_portIn": str(self.start_port_in),
            "end_portIn": str(self.end_port_in),
            "protocol": self.protocol.encode(),
            "enable": codec.bool_to_int(self.enable),
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "local_ip": str(self.local_ip),
            "start_port": self.start_port,
            "end_port": self.end_port,
            "start_port_in": self.start_port_in,
            "end_port_in": self.end_port_in,
            "protocol": str(self.protocol),
            "enable": self.enable,
        }


@dataclass
class PortForwards:
    """The router's port forwarding table."""

    lan_ip: ipaddress.IPv4Address
    subnet_mask: ipaddress.IPv4Address
    entries: List[PortForwardEntry] = field(default_factory=list)

    @classmethod
    def from_xml(cls, root: ET.Element) -> PortForwards:
        """Decode a ``<Forwarding>`` document."""
        return cls(
            lan_ip=codec.ipv4_address(codec.child_text(root, "LanIP"), "LanIP"),
            subnet_mask=codec.ipv4_address(codec.child_text(root, "subnetmask"), "subnetmask"),
            entries=[PortForwardEntry.from_xml(e) for e in root.findall("instance")],
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "lan_ip": str(self.lan_ip),
            "subnet_mask": str(self.subnet_mask),
            "entries": [e.to_dict() for e in self.entries],
        }


@dataclass
class PortForwardEdits:
    """A batch of port forward changes sent in a single setter call.

    The three lists are positionally aligned: the i-th id is changed
    according to the i-th enable and delete flags.
    """

    ids: List[int] = field(default_factory=list)
    enable: List[bool] = field(default_factory=list)
    delete: List[bool] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not len(self.ids) == len(self.enable) == len(self.delete):
            raise ValueError("ids, enable and delete must have the same length")

    def __len__(self) -> int:
        return len(self.ids)

    @classmethod
    def from_decisions(
        cls,
        entries: Iterable[PortForwardEntry],
        decide: Callable[[PortForwardEntry], PortForwardAction],
    ) -> PortForwardEdits:
        """Build a batch by asking ``decide`` about every entry, in order.

        Entries for which ``decide`` returns KEEP are left out.
        """
        edits = cls()
        for entry in entries:
            action = decide(entry)
            if action is PortForwardAction.KEEP:
                continue
            enable, delete = _ACTION_FLAGS[action]
            edits.ids.append(entry.id)
            edits.enable.append(enable)
            edits.delete.append(delete)
        return edits

    @classmethod
    def from_fields(cls, fields: Mapping[str, str]) -> PortForwardEdits:
        """Decode the ``instance``/``enable``/``delete`` setter fields."""
        ids = [codec.parse_uint(v, "instance") for v in codec.split_multi(fields.get("instance"))]
        enable = [codec.bool_from_int(v, "enable") for v in codec.split_multi(fields.get("enable"))]
        delete = [codec.bool_from_int(v, "delete") for v in codec.split_multi(fields.get("delete"))]
        if not len(ids) == len(enable) == len(delete):
            raise DecodeError("instance", fields.get("instance"), "multi-value fields are not aligned")
        return cls(ids=ids, enable=enable, delete=delete)

    def to_fields(self) -> Dict[str, str]:
        """Encode as the three multi-value setter fields."""
        return {
            "instance": codec.join_multi(str(i) for i in self.ids),
            "enable": codec.join_multi(codec.bool_to_int(v) for v in self.enable),
            "delete": codec.join_multi(codec.bool_to_int(v) for v in self.delete),
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "ids": list(self.ids),
            "enable": list(self.enable),
            "delete": list(self.delete),
        }
