"""Shared type aliases used across the domain."""
from __future__ import annotations

from ipaddress import IPv4Address, IPv6Address
from typing import TypeAlias

IdentityKey: TypeAlias = int  # unsigned 64-bit
IPAddress: TypeAlias = IPv4Address | IPv6Address
Timestamp: TypeAlias = float  # Unix epoch seconds
