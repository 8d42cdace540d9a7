"""Statistics snapshot with the derived conversion figures.

previously_grey is the number of triplets that were greylisted at some
point and are no longer grey: cumulative grey insertions minus the grey
entries still in the registry. Of those, cumulative_white were promoted
and the rest expired.

The percentages are undefined when previously_grey is 0; they are NaN
then, never a ZeroDivisionError.
"""
from __future__ import annotations

import math
from dataclasses import dataclass

from greylistd.domain.status import ListingStatus
from greylistd.domain.types import Timestamp


@dataclass(frozen=True, slots=True)
class StatsSnapshot:
    population: dict[ListingStatus, int]
    requests: dict[ListingStatus, int]
    cumulative_white: int
    cumulative_grey: int
    cumulative_black: int
    start: Timestamp
    uptime: float

    @property
    def previously_grey(self) -> int:
        return max(0, self.cumulative_grey - self.population[ListingStatus.GREY])

    @property
    def expired(self) -> int:
        return max(0, self.previously_grey - self.cumulative_white)

    @property
    def percent_whitelisted(self) -> float:
        """Fraction (0..1) of previously grey triplets that became white."""
        if self.previously_grey == 0:
            return math.nan
        return self.cumulative_white / self.previously_grey

    @property
    def percent_expired(self) -> float:
        """Fraction (0..1) of previously grey triplets that expired."""
        if self.previously_grey == 0:
            return math.nan
        return self.expired / self.previously_grey
