"""Registry: the authoritative in-memory map of identity key -> entry.

State machine per entry:

    (unseen) --update--> GREY --update, retry_min <= elapsed <= retry_max--> WHITE
                          |
                          +--update, elapsed > retry_max--> GREY (clock restarted)

WHITE and BLACK are absorbing: only deletion, clearing or expiry remove
them. BLACK is only reachable through add().

Thread safety: none. The dispatcher calls into the registry
from a single processing lane, so there is exactly one writer. If this
ever has to be shared across threads, guard the map and the statistics
with one lock, not two.

All elapsed-time arithmetic saturates at zero, so a stored timestamp in
the future (clock stepped backwards) reads as "no time has passed".
"""
from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Iterator

from greylistd.config import Timeouts
from greylistd.domain.entry import RegistryEntry, Statistics, TripletStatus
from greylistd.domain.identity import identity
from greylistd.domain.status import ALL_STATUSES, ListingStatus
from greylistd.domain.triplet import Triplet
from greylistd.domain.types import IdentityKey, Timestamp
from greylistd.registry.stats import StatsSnapshot

log = logging.getLogger(__name__)


def _elapsed(now: Timestamp, since: Timestamp) -> float:
    return max(0.0, now - since)


class EntryView:
    """Lazy, restartable view over registry entries with given statuses.

    Each iter() scans the registry afresh, so the view reflects the
    registry at iteration time, not at creation time.
    """

    __slots__ = ("_entries", "_statuses")

    def __init__(
        self,
        entries: dict[IdentityKey, RegistryEntry],
        statuses: tuple[ListingStatus, ...],
    ) -> None:
        self._entries = entries
        self._statuses = statuses

    @property
    def statuses(self) -> tuple[ListingStatus, ...]:
        return self._statuses

    def __iter__(self) -> Iterator[RegistryEntry]:
        return (e for e in self._entries.values() if e.status in self._statuses)

    def __len__(self) -> int:
        return sum(1 for _ in self)


class Registry:
    """Triplet registry and greylisting state machine.

    Args:
        timeouts: retry_min / retry_max / expire windows.
        only_subnet: hash IPs by subnet (see greylistd.domain.identity).
        entries: initial entries, keyed by identity (e.g. from StateStore).
        statistics: initial cumulative statistics; fresh if None.
        clock: returns the current Unix time; injectable for tests.
    """

    def __init__(
        self,
        timeouts: Timeouts,
        only_subnet: bool = True,
        entries: dict[IdentityKey, RegistryEntry] | None = None,
        statistics: Statistics | None = None,
        clock: Callable[[], Timestamp] = time.time,
    ) -> None:
        self._timeouts = timeouts
        self._only_subnet = only_subnet
        self._clock = clock
        self._entries: dict[IdentityKey, RegistryEntry] = dict(entries or {})
        self._statistics = statistics or Statistics.fresh(clock())

    @classmethod
    def from_entries(
        cls,
        timeouts: Timeouts,
        only_subnet: bool,
        entries: Iterable[RegistryEntry],
        statistics: Statistics | None = None,
        clock: Callable[[], Timestamp] = time.time,
    ) -> Registry:
        """Build a registry, keying each entry by its recomputed identity."""
        keyed = {identity(e.triplet, only_subnet): e for e in entries}
        return cls(timeouts, only_subnet, keyed, statistics, clock)

    # -- accessors -------------------------------------------------------

    @property
    def statistics(self) -> Statistics:
        return self._statistics

    @property
    def timeouts(self) -> Timeouts:
        return self._timeouts

    def now(self) -> Timestamp:
        return self._clock()

    def key_for(self, triplet: Triplet) -> IdentityKey:
        return identity(triplet, self._only_subnet)

    def lookup(self, triplet: Triplet) -> RegistryEntry | None:
        """Stored entry for a triplet, without any promotion evaluation."""
        return self._entries.get(self.key_for(triplet))

    def items(self) -> Iterator[tuple[IdentityKey, RegistryEntry]]:
        return iter(self._entries.items())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, triplet: Triplet) -> bool:
        return self.key_for(triplet) in self._entries

    # -- state machine ---------------------------------------------------

    def update(self, triplet: Triplet) -> RegistryEntry:
        """Observe a real delivery attempt and decide (the "update" path)."""
        now = self._clock()
        key = self.key_for(triplet)
        entry = self._entries.get(key)

        if entry is None:
            entry = RegistryEntry(
                triplet=triplet,
                status=ListingStatus.GREY,
                meta=TripletStatus(first_seen=now, last_seen=now, count=1),
            )
            self._entries[key] = entry
            self._statistics.grey += 1
            log.debug("new greylist entry %016x: %s", key, triplet)
            return entry

        entry.meta.last_seen = now
        entry.meta.count += 1
        if entry.status is ListingStatus.GREY:
            elapsed = _elapsed(now, entry.meta.first_seen)
            if elapsed > self._timeouts.retry_max:
                entry.meta.first_seen = now
                log.debug("greylist window of %016x went stale, restarting", key)
            elif elapsed >= self._timeouts.retry_min:
                entry.status = ListingStatus.WHITE
                self._statistics.white += 1
                log.debug("promoted %016x to whitelist after %.0fs", key, elapsed)
        return entry

    def check(self, triplet: Triplet) -> ListingStatus:
        """Effective status without writing anything (the "check" path)."""
        entry = self.lookup(triplet)
        if entry is None:
            return ListingStatus.GREY
        if entry.status is ListingStatus.GREY:
            elapsed = _elapsed(self._clock(), entry.meta.first_seen)
            if self._timeouts.retry_min <= elapsed <= self._timeouts.retry_max:
                return ListingStatus.WHITE
        return entry.status

    def add(self, triplet: Triplet, status: ListingStatus) -> RegistryEntry:
        """Unconditional upsert. Counters and promotion logic are untouched."""
        now = self._clock()
        key = self.key_for(triplet)
        entry = self._entries.get(key)
        if entry is None:
            entry = RegistryEntry(
                triplet=triplet,
                status=status,
                meta=TripletStatus(first_seen=now, last_seen=now, count=0),
            )
            self._entries[key] = entry
        else:
            entry.status = status
            entry.meta.last_seen = now
        return entry

    def delete(self, triplet: Triplet) -> ListingStatus | None:
        """Remove a triplet. Returns its status, or None if it was unknown."""
        entry = self._entries.pop(self.key_for(triplet), None)
        return entry.status if entry is not None else None

    # -- housekeeping ----------------------------------------------------

    def _is_expired(self, entry: RegistryEntry, now: Timestamp) -> bool:
        if entry.status is ListingStatus.GREY:
            return _elapsed(now, entry.meta.first_seen) >= self._timeouts.retry_max
        return _elapsed(now, entry.meta.last_seen) >= self._timeouts.expire

    def prune(self) -> int:
        """Drop grey entries never retried in time and stale white/black ones.

        Returns the number of entries removed. Idempotent.
        """
        now = self._clock()
        expired = [k for k, e in self._entries.items() if self._is_expired(e, now)]
        for key in expired:
            del self._entries[key]
        if expired:
            log.info("pruned %d expired entries", len(expired))
        return len(expired)

    def clear(self, statuses: Iterable[ListingStatus] | None = None) -> int:
        """Remove entries with the given statuses, or everything.

        Only a full clear (no statuses) resets the cumulative statistics.
        Returns the number of entries removed.
        """
        selected = frozenset(statuses or ())
        if not selected:
            removed = len(self._entries)
            self._entries.clear()
            self._statistics = Statistics.fresh(self._clock())
            return removed
        doomed = [k for k, e in self._entries.items() if e.status in selected]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    def entries(self, statuses: Iterable[ListingStatus] | None = None) -> EntryView:
        """Restartable view of entries; defaults to white, grey and black."""
        selected = tuple(statuses or ()) or ALL_STATUSES
        return EntryView(self._entries, selected)

    def mark_saved(self, now: Timestamp) -> None:
        self._statistics.last_save = now

    def seconds_since_save(self) -> float:
        return _elapsed(self._clock(), self._statistics.last_save)

    def snapshot(self) -> StatsSnapshot:
        """Current populations plus cumulative counters (full scan)."""
        population = {status: 0 for status in ALL_STATUSES}
        requests = {status: 0 for status in ALL_STATUSES}
        for entry in self._entries.values():
            population[entry.status] += 1
            requests[entry.status] += entry.meta.count
        now = self._clock()
        return StatsSnapshot(
            population=population,
            requests=requests,
            cumulative_white=self._statistics.white,
            cumulative_grey=self._statistics.grey,
            cumulative_black=self._statistics.black,
            start=self._statistics.start,
            uptime=_elapsed(now, self._statistics.start),
        )
