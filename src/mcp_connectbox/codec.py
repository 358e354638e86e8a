"""Conversions between the Connect Box wire dialect and Python values.

The router answers reads with small XML documents whose leaves are plain
strings. Integers, booleans (``0``/``1``), lease times (``d:h:m:s``) and
addresses all have to be decoded by hand, and batched writes pack several
values into one form field separated by ``*``.

Every function here is pure. Malformed input raises DecodeError.
"""

from __future__ import annotations

import ipaddress
import xml.etree.ElementTree as ET
from datetime import timedelta
from typing import Iterable, List, Optional

from .errors import DecodeError

MULTI_VALUE_SEPARATOR = "*"

LEASE_TIME_PARTS = ("days", "hours", "mins", "secs")


def parse_xml(text: str) -> ET.Element:
    """Parse a getter response body.

    Args:
        text: Raw XML document returned by the router.

    Returns:
        The document's root element.

    Raises:
        DecodeError: If the body is not well-formed XML.
    """
    try:
        return ET.fromstring(text)
    except ET.ParseError as e:
        raise DecodeError("document", text[:200], str(e)) from e


def child_text(parent: ET.Element, name: str) -> str:
    """Return the text of a required child element.

    An element that is present but empty decodes to an empty string.

    Raises:
        DecodeError: If the child element is absent.
    """
    child = parent.find(name)
    if child is None:
        raise DecodeError(name, None)
    return (child.text or "").strip()


def child_int(parent: ET.Element, name: str) -> int:
    """Return a required child element decoded as a non-negative integer."""
    return parse_uint(child_text(parent, name), name)


def unwrap_list(parent: ET.Element, container: str, item: str) -> List[ET.Element]:
    """Collect the ``item`` children of the ``container`` child, in order.

    The router omits the container entirely when it has nothing to list,
    so an absent container yields an empty list.
    """
    wrapper = parent.find(container)
    if wrapper is None:
        return []
    return wrapper.findall(item)


def parse_uint(raw: str, field: str) -> int:
    """Decode a non-negative decimal integer."""
    if not raw or not (raw.isascii() and raw.isdigit()):
        raise DecodeError(field, raw, "expected a non-negative integer")
    return int(raw)


def bool_from_int(raw: str, field: str) -> bool:
    """Decode a ``0``/``1`` flag."""
    value = parse_uint(raw, field)
    if value == 0:
        return False
    if value == 1:
        return True
    raise DecodeError(field, raw, "expected 0 or 1")


def bool_to_int(value: bool) -> str:
    """Encode a flag the way the setter expects it."""
    return "1" if value else "0"


def lease_time_from_str(raw: str, field: str = "leaseTime") -> timedelta:
    """Decode a ``days:hours:mins:secs`` lease time.

    Args:
        raw: Lease time as reported by the router, e.g. ``"00:23:59:41"``.
        field: Field name used in error messages.

    Returns:
        The lease time as a timedelta.

    Raises:
        DecodeError: If a part is missing or not a non-negative integer.
    """
    parts = raw.split(":")
    if len(parts) > len(LEASE_TIME_PARTS):
        raise DecodeError(field, raw, "expected days:hours:mins:secs")
    values = []
    for index, name in enumerate(LEASE_TIME_PARTS):
        if index >= len(parts):
            raise DecodeError(name, None, f"in {field} {raw!r}")
        values.append(parse_uint(parts[index], name))
    days, hours, mins, secs = values
    return timedelta(seconds=days * 86400 + hours * 3600 + mins * 60 + secs)


def ipv4_address(raw: str, field: str) -> ipaddress.IPv4Address:
    """Decode a dotted-quad address."""
    try:
        return ipaddress.IPv4Address(raw)
    except ValueError as e:
        raise DecodeError(field, raw, str(e)) from e


def ipv4_interface(raw: str, field: str) -> ipaddress.IPv4Interface:
    """Decode an address that may carry a ``/prefix`` suffix."""
    try:
        return ipaddress.IPv4Interface(raw)
    except ValueError as e:
        raise DecodeError(field, raw, str(e)) from e


def join_multi(values: Iterable[str]) -> str:
    """Pack values into one multi-value field; no values gives ``""``."""
    return MULTI_VALUE_SEPARATOR.join(values)


def split_multi(raw: Optional[str]) -> List[str]:
    """Unpack a multi-value field produced by :func:`join_multi`."""
    if not raw:
        return []
    return raw.split(MULTI_VALUE_SEPARATOR)
