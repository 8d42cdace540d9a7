"""Crash-safe persistence of the registry to a triplet file and a state file."""
from greylistd.persistence.state_files import StateStore

__all__ = [
    "StateStore",
]
