"""Error hierarchy for greylistd.

Fatal errors (config, corrupt state, persistence) end the daemon with a
diagnostic on stderr. ProtocolError is request-scoped: the dispatcher turns
it into the literal "Invalid command" reply and keeps serving.
"""
from __future__ import annotations


class GreylistdError(Exception):
    """Base exception for all greylistd errors."""

    pass


class ConfigError(GreylistdError):
    """Missing required option or disallowed option combination."""

    pass


class CorruptStateError(GreylistdError):
    """On-disk state could not be loaded consistently.

    Raised for a triplet with no matching status bucket, or for rows that
    do not parse.
    """

    pass


class PersistenceError(GreylistdError):
    """Writing the triplet or state file failed.

    Attributes:
        path: The file that could not be written.
    """

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to write {path}: {reason}")


class ProtocolError(GreylistdError):
    """Malformed command text."""

    pass
