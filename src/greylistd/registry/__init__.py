"""Triplet registry: the greylisting state machine and its statistics."""
from greylistd.registry.registry import EntryView, Registry
from greylistd.registry.stats import StatsSnapshot

__all__ = [
    "EntryView",
    "Registry",
    "StatsSnapshot",
]
