"""Registry entry, per-triplet timing metadata and cumulative statistics."""
from __future__ import annotations

from dataclasses import dataclass

from greylistd.domain.status import ListingStatus
from greylistd.domain.triplet import Triplet
from greylistd.domain.types import Timestamp
from greylistd.errors import CorruptStateError


@dataclass(slots=True)
class TripletStatus:
    """Timing and hit count of one registry entry.

    first_seen: start of the current greylisting epoch (reset when a grey
        entry is retried too late).
    last_seen: updated on every observed request.
    count: decision-making requests seen ("update"), not admin commands.
    """
    first_seen: Timestamp
    last_seen: Timestamp
    count: int = 0

    def render(self) -> str:
        """Persisted form: "<last_seen> <first_seen> <count>", whole seconds."""
        return f"{int(self.last_seen)} {int(self.first_seen)} {self.count}"

    @classmethod
    def parse(cls, text: str) -> TripletStatus:
        parts = text.split()
        if len(parts) != 3:
            raise CorruptStateError(f"Invalid triplet status: {text!r}")
        try:
            last_seen, first_seen, count = (int(p) for p in parts)
        except ValueError:
            raise CorruptStateError(f"Invalid triplet status: {text!r}") from None
        if min(last_seen, first_seen, count) < 0:
            raise CorruptStateError(f"Invalid triplet status: {text!r}")
        return cls(first_seen=float(first_seen), last_seen=float(last_seen), count=count)


@dataclass(slots=True)
class RegistryEntry:
    """One identity key's worth of state. Owned and mutated by the Registry."""
    triplet: Triplet
    status: ListingStatus
    meta: TripletStatus

    @property
    def last_seen(self) -> Timestamp:
        return self.meta.last_seen

    @property
    def count(self) -> int:
        return self.meta.count


@dataclass(slots=True)
class Statistics:
    """Process-wide cumulative counters.

    white/grey/black count promotions and insertions over the lifetime of
    the data (not the current population). Reset only by a full clear.
    """
    white: int
    grey: int
    black: int
    start: Timestamp
    last_save: Timestamp

    @classmethod
    def fresh(cls, now: Timestamp) -> Statistics:
        """Starting values: counters zero, never saved."""
        return cls(white=0, grey=0, black=0, start=now, last_save=0.0)
