"""Tests for response rendering."""
from __future__ import annotations

import math

from greylistd.domain.entry import RegistryEntry, TripletStatus
from greylistd.domain.status import ListingStatus
from greylistd.domain.triplet import Triplet
from greylistd.protocol.render import (
    render_added,
    render_decision,
    render_list,
    render_mrtg,
    render_removed,
    render_stats,
    render_status,
)
from greylistd.registry.stats import StatsSnapshot


def _snapshot(**overrides) -> StatsSnapshot:
    values = dict(
        population={ListingStatus.WHITE: 3, ListingStatus.GREY: 2, ListingStatus.BLACK: 1},
        requests={ListingStatus.WHITE: 30, ListingStatus.GREY: 4, ListingStatus.BLACK: 0},
        cumulative_white=3,
        cumulative_grey=6,
        cumulative_black=0,
        start=1_700_000_000.0,
        uptime=3600.7,
    )
    values.update(overrides)
    return StatsSnapshot(**values)


def test_decision():
    assert render_decision(ListingStatus.GREY, None) == "grey"
    assert render_decision(ListingStatus.WHITE, ListingStatus.WHITE) == "true"
    assert render_decision(ListingStatus.GREY, ListingStatus.WHITE) == "false"


def test_simple_replies():
    assert render_added(ListingStatus.BLACK) == "Added to blacklist"
    assert render_removed(ListingStatus.WHITE) == "Removed from whitelist"
    assert render_removed(None) == "Not found"
    assert render_status(None) == "unseen"
    assert render_status(ListingStatus.BLACK) == "black"


def test_list_table():
    entry = RegistryEntry(
        triplet=Triplet.parse("192.0.2.1 bob@example.net"),
        status=ListingStatus.WHITE,
        meta=TripletStatus(first_seen=1_700_000_000.0, last_seen=1_700_000_600.5, count=2),
    )
    text = render_list([(ListingStatus.WHITE, [entry]), (ListingStatus.BLACK, [])])
    assert text == (
        "whitelist data:\n"
        "=============\n"
        "Last Seen            Count      Data\n"
        "1700000600           2          192.0.2.1 bob@example.net\n"
        "\n"
        "blacklist data:\n"
        "=============\n"
        "Last Seen            Count      Data\n"
        "\n"
    )


def test_stats_report():
    text = render_stats(_snapshot())
    assert text.splitlines() == [
        "Statistics since 1700000000 (3600s ago)",
        "",
        "3 items, matching 30 requests, are currently whitelisted",
        "2 items, matching 4 requests, are currently greylisted",
        "1 items, matching 0 requests, are currently blacklisted",
        "",
        "Of 4 items that were initially greylisted:",
        " - 3 (75.0%) became whitelisted",
        " - 1 (25.0%) expired from the greylist",
    ]


def test_stats_report_without_history():
    snap = _snapshot(cumulative_white=0, cumulative_grey=0)
    assert math.isnan(snap.percent_whitelisted)
    text = render_stats(snap)
    assert " - 0 (n/a) became whitelisted" in text
    assert " - 0 (n/a) expired from the greylist" in text


def test_mrtg():
    assert render_mrtg(_snapshot()) == "2\n3\n3600\nhostname\n"
