"""Text rendering of command results.

Every reply is plain text; the connection is closed after it, so there
is no framing beyond end-of-stream.
"""
from __future__ import annotations

import math
from collections.abc import Iterable

from greylistd.domain.entry import RegistryEntry
from greylistd.domain.status import ALL_STATUSES, ListingStatus
from greylistd.registry.stats import StatsSnapshot

INVALID_COMMAND = "Invalid command"
NOT_FOUND = "Not found"
UNSEEN = "unseen"
SAVED = "greylistd data has been saved"
CLEARED = "data and statistics cleared"
RELOADING = "reloading configuration and data"


def render_decision(status: ListingStatus, expect: ListingStatus | None) -> str:
    """Status name, or "true"/"false" when the client asked about a status."""
    if expect is None:
        return str(status)
    return "true" if status is expect else "false"


def render_added(status: ListingStatus) -> str:
    return f"Added to {status}list"


def render_removed(status: ListingStatus | None) -> str:
    if status is None:
        return NOT_FOUND
    return f"Removed from {status}list"


def render_status(status: ListingStatus | None) -> str:
    return UNSEEN if status is None else str(status)


def render_list(
    tables: Iterable[tuple[ListingStatus, Iterable[RegistryEntry]]],
) -> str:
    """One table per status: header, then last-seen, count and triplet rows."""
    lines: list[str] = []
    for status, entries in tables:
        lines.append(f"{status}list data:")
        lines.append("=============")
        lines.append(f"{'Last Seen':<20} {'Count':<10} Data")
        for entry in entries:
            lines.append(f"{int(entry.last_seen):<20} {entry.count:<10} {entry.triplet}")
        lines.append("")
    return "\n".join(lines) + "\n"


def _percent(fraction: float) -> str:
    if math.isnan(fraction):
        return "n/a"
    return f"{fraction * 100:.1f}%"


def render_stats(snapshot: StatsSnapshot) -> str:
    lines = [
        f"Statistics since {int(snapshot.start)} ({int(snapshot.uptime)}s ago)",
        "",
    ]
    for status in ALL_STATUSES:
        lines.append(
            f"{snapshot.population[status]} items, matching "
            f"{snapshot.requests[status]} requests, are currently {status}listed"
        )
    lines.append("")
    lines.append(f"Of {snapshot.previously_grey} items that were initially greylisted:")
    lines.append(
        f" - {snapshot.cumulative_white} ({_percent(snapshot.percent_whitelisted)})"
        " became whitelisted"
    )
    lines.append(
        f" - {snapshot.expired} ({_percent(snapshot.percent_expired)})"
        " expired from the greylist"
    )
    return "\n".join(lines) + "\n"


def render_mrtg(snapshot: StatsSnapshot) -> str:
    """MRTG external-script format: two values, uptime, target name."""
    return "\n".join(
        [
            str(snapshot.population[ListingStatus.GREY]),
            str(snapshot.population[ListingStatus.WHITE]),
            str(int(snapshot.uptime)),
            "hostname",
        ]
    ) + "\n"
