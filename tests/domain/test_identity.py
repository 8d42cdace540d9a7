"""Tests for identity hashing and subnet truncation."""
from __future__ import annotations

import ipaddress
import os
import subprocess
import sys

from greylistd.domain.identity import identity, subnet_bytes
from greylistd.domain.triplet import Triplet

SRC_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir, os.pardir, "src"))

ALICE = Triplet.parse("192.0.2.10 alice@example.org bob@example.net")


def test_deterministic():
    assert identity(ALICE, True) == identity(ALICE, True)
    assert identity(ALICE, False) == identity(ALICE, False)


def test_equal_triplets_equal_keys():
    again = Triplet.parse("192.0.2.10 alice@example.org bob@example.net")
    assert identity(again, False) == identity(ALICE, False)


def test_fits_in_64_bits():
    for mode in (True, False):
        key = identity(ALICE, mode)
        assert 0 <= key < 2**64


def test_ipv4_subnet_mode_collapses_last_octet():
    neighbour = Triplet.parse("192.0.2.200 alice@example.org bob@example.net")
    assert identity(ALICE, True) == identity(neighbour, True)
    assert identity(ALICE, False) != identity(neighbour, False)


def test_ipv4_subnet_mode_keeps_third_octet():
    other_net = Triplet.parse("192.0.3.10 alice@example.org bob@example.net")
    assert identity(ALICE, True) != identity(other_net, True)


def test_ipv6_subnet_mode():
    a = Triplet.parse("2001:db8:0:1::1 bob@example.net")
    b = Triplet.parse("2001:db8:0:1:ffff::9 bob@example.net")
    assert identity(a, True) == identity(b, True)
    assert identity(a, False) != identity(b, False)


def test_subnet_bytes():
    assert subnet_bytes(ipaddress.ip_address("192.0.2.77")) == bytes([192, 0, 2, 0])
    v6 = subnet_bytes(ipaddress.ip_address("2001:db8:aabb:ccdd::1"))
    assert len(v6) == 16
    assert v6[:7] == ipaddress.ip_address("2001:db8:aabb:ccdd::").packed[:7]
    assert v6[7:] == bytes(9)


def test_sender_and_recipient_matter():
    swapped = Triplet.parse("192.0.2.10 bob@example.net alice@example.org")
    no_sender = Triplet.parse("192.0.2.10 bob@example.net")
    assert identity(ALICE, False) != identity(swapped, False)
    assert identity(ALICE, False) != identity(no_sender, False)


def test_absent_sender_differs_from_empty_sender():
    absent = Triplet.parse("192.0.2.10 bob@example.net")
    empty = Triplet(sender_ip=absent.sender_ip, sender_email="", recipient_email="bob@example.net")
    assert identity(absent, False) != identity(empty, False)


def test_stable_across_processes():
    """Keys are joined across restarts, so they must not depend on hash seeds."""
    code = (
        "from greylistd.domain import Triplet, identity;"
        "print(identity(Triplet.parse('192.0.2.10 alice@example.org bob@example.net'), True))"
    )
    keys = set()
    for seed in ("1", "2"):
        env = dict(os.environ, PYTHONHASHSEED=seed)
        env["PYTHONPATH"] = os.pathsep.join([SRC_DIR, env.get("PYTHONPATH", "")])
        out = subprocess.run(
            [sys.executable, "-c", code], env=env, capture_output=True, text=True, check=True
        )
        keys.add(int(out.stdout))
    assert keys == {identity(ALICE, True)}
