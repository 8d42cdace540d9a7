"""Listing status of a triplet: the three possible decisions."""
from __future__ import annotations

from enum import Enum


class ListingStatus(Enum):
    WHITE = "white"
    GREY = "grey"
    BLACK = "black"

    def __str__(self) -> str:
        return self.value

    @property
    def flag(self) -> str:
        """Command-line form, e.g. ``--white``."""
        return f"--{self.value}"

    @classmethod
    def from_flag(cls, token: str) -> ListingStatus | None:
        """Map ``--white``/``--grey``/``--black`` to a status, else None."""
        return _FLAGS.get(token)


ALL_STATUSES: tuple[ListingStatus, ...] = (
    ListingStatus.WHITE,
    ListingStatus.GREY,
    ListingStatus.BLACK,
)

_FLAGS = {status.flag: status for status in ALL_STATUSES}
