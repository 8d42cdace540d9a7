"""Identity key: a 64-bit BLAKE2b digest of a triplet.

The key must be stable across process restarts because the triplet file
and the state file are joined on it. Python's built-in hash() is salted
per process, so we hash a canonical byte form instead.

Canonicalization: each field is length-prefixed with a 4-byte big-endian
length, in a fixed order (ip, sender, recipient). The sender carries a
one-byte presence marker so that "no sender" and "empty sender" stay
distinct. The IP is hashed in packed form.

In subnet mode the host part of the address is zeroed before hashing:
IPv4 keeps the first 3 octets (/24), IPv6 keeps the first 7 octets and
zeroes the remaining 9.

Collisions between distinct triplets are not detected; two triplets with
the same key share one registry entry.
"""
from __future__ import annotations

import hashlib
import struct

from greylistd.domain.triplet import Triplet
from greylistd.domain.types import IdentityKey, IPAddress

_ABSENT = b"\x00"
_PRESENT = b"\x01"
_DIGEST_SIZE = 8

_IPV4_KEEP = 3
_IPV6_KEEP = 7


def _lp(data: bytes) -> bytes:
    """Length-prefix a byte string with a 4-byte big-endian length."""
    return struct.pack("!I", len(data)) + data


def subnet_bytes(ip: IPAddress) -> bytes:
    """Packed address with the host portion zeroed."""
    packed = ip.packed
    keep = _IPV4_KEEP if ip.version == 4 else _IPV6_KEEP
    return packed[:keep] + bytes(len(packed) - keep)


def _canonicalize(triplet: Triplet, only_subnet: bool) -> bytes:
    ip = subnet_bytes(triplet.sender_ip) if only_subnet else triplet.sender_ip.packed
    parts: list[bytes] = [
        _lp(ip),
        (
            _PRESENT + _lp(triplet.sender_email.encode("utf-8"))
            if triplet.sender_email is not None
            else _ABSENT
        ),
        _lp(triplet.recipient_email.encode("utf-8")),
    ]
    return b"".join(parts)


def identity(triplet: Triplet, only_subnet: bool) -> IdentityKey:
    """Compute the identity key of a triplet.

    Pure and deterministic: same triplet and mode, same key, in every
    process.
    """
    digest = hashlib.blake2b(
        _canonicalize(triplet, only_subnet), digest_size=_DIGEST_SIZE
    ).digest()
    return int.from_bytes(digest, "big")
