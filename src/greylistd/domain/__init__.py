"""Domain model for greylistd.

Re-exports all public types for convenient access:
    from greylistd.domain import Triplet, ListingStatus, identity
"""
from greylistd.domain.entry import RegistryEntry, Statistics, TripletStatus
from greylistd.domain.identity import identity, subnet_bytes
from greylistd.domain.status import ALL_STATUSES, ListingStatus
from greylistd.domain.triplet import Triplet
from greylistd.domain.types import IdentityKey, IPAddress, Timestamp

__all__ = [
    "RegistryEntry",
    "Statistics",
    "TripletStatus",
    "identity",
    "subnet_bytes",
    "ALL_STATUSES",
    "ListingStatus",
    "Triplet",
    "IdentityKey",
    "IPAddress",
    "Timestamp",
]
