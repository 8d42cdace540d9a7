"""Line-based command language spoken on the greylistd socket.

A request is one line of whitespace-separated tokens:

    [command] [--flag ...] [operand ...]

The first token names the command. If it is not a known command name,
the whole line is an implicit "update", so a bare triplet works:

    192.0.2.1 alice@example.org bob@example.net      -> update
    --white 192.0.2.1 bob@example.net                -> update, compare to white
    check --grey 192.0.2.1 bob@example.net
    add --black 192.0.2.1 spam@example.com bob@example.net
    list --white --black
    clear

Flags are the leading "--" tokens after the command, collected until the
first non-flag token. Only --white/--grey/--black mean anything; other
"--" tokens are consumed and ignored. For commands that take a single
status the last status flag wins.

Parsing is a small hand-written tokenizer rather than a regex so that
each edge case (no operand, stray flags, too many tokens) is its own
branch and raises ProtocolError.
"""
from __future__ import annotations

from dataclasses import dataclass

from greylistd.domain.status import ListingStatus
from greylistd.domain.triplet import Triplet
from greylistd.errors import ProtocolError


@dataclass(frozen=True, slots=True)
class UpdateCommand:
    triplet: Triplet
    expect: ListingStatus | None = None


@dataclass(frozen=True, slots=True)
class CheckCommand:
    triplet: Triplet
    expect: ListingStatus | None = None


@dataclass(frozen=True, slots=True)
class AddCommand:
    triplet: Triplet
    status: ListingStatus = ListingStatus.WHITE


@dataclass(frozen=True, slots=True)
class DeleteCommand:
    triplet: Triplet


@dataclass(frozen=True, slots=True)
class StatusCommand:
    triplet: Triplet


@dataclass(frozen=True, slots=True)
class ListCommand:
    statuses: tuple[ListingStatus, ...] = ()


@dataclass(frozen=True, slots=True)
class ClearCommand:
    statuses: tuple[ListingStatus, ...] = ()


@dataclass(frozen=True, slots=True)
class SaveCommand:
    pass


@dataclass(frozen=True, slots=True)
class ReloadCommand:
    pass


@dataclass(frozen=True, slots=True)
class StatsCommand:
    pass


@dataclass(frozen=True, slots=True)
class MrtgCommand:
    pass


Command = (
    UpdateCommand
    | CheckCommand
    | AddCommand
    | DeleteCommand
    | StatusCommand
    | ListCommand
    | ClearCommand
    | SaveCommand
    | ReloadCommand
    | StatsCommand
    | MrtgCommand
)


def split_flags(tokens: list[str]) -> tuple[list[ListingStatus], list[str]]:
    """Split leading "--" tokens off the operand.

    Returns (status flags in order of appearance, remaining tokens).
    Unknown "--" tokens are dropped.
    """
    statuses: list[ListingStatus] = []
    index = 0
    while index < len(tokens) and tokens[index].startswith("--"):
        status = ListingStatus.from_flag(tokens[index])
        if status is not None:
            statuses.append(status)
        index += 1
    return statuses, tokens[index:]


def _last(statuses: list[ListingStatus]) -> ListingStatus | None:
    return statuses[-1] if statuses else None


def _unique(statuses: list[ListingStatus]) -> tuple[ListingStatus, ...]:
    return tuple(dict.fromkeys(statuses))


def _triplet(operand: list[str]) -> Triplet:
    if not operand:
        raise ProtocolError("Missing triplet")
    return Triplet.from_tokens(operand)


def _parse_update(args: list[str]) -> UpdateCommand:
    flags, operand = split_flags(args)
    return UpdateCommand(triplet=_triplet(operand), expect=_last(flags))


def _parse_check(args: list[str]) -> CheckCommand:
    flags, operand = split_flags(args)
    return CheckCommand(triplet=_triplet(operand), expect=_last(flags))


def _parse_add(args: list[str]) -> AddCommand:
    flags, operand = split_flags(args)
    return AddCommand(
        triplet=_triplet(operand),
        status=_last(flags) or ListingStatus.WHITE,
    )


def _parse_delete(args: list[str]) -> DeleteCommand:
    _, operand = split_flags(args)
    return DeleteCommand(triplet=_triplet(operand))


def _parse_status(args: list[str]) -> StatusCommand:
    _, operand = split_flags(args)
    return StatusCommand(triplet=_triplet(operand))


def _parse_list(args: list[str]) -> ListCommand:
    flags, _ = split_flags(args)
    return ListCommand(statuses=_unique(flags))


def _parse_clear(args: list[str]) -> ClearCommand:
    flags, _ = split_flags(args)
    return ClearCommand(statuses=_unique(flags))


_PARSERS = {
    "update": _parse_update,
    "check": _parse_check,
    "add": _parse_add,
    "delete": _parse_delete,
    "status": _parse_status,
    "list": _parse_list,
    "clear": _parse_clear,
    "save": lambda _: SaveCommand(),
    "reload": lambda _: ReloadCommand(),
    "stats": lambda _: StatsCommand(),
    "mrtg": lambda _: MrtgCommand(),
}

COMMAND_NAMES = frozenset(_PARSERS)


def parse_command(text: str) -> Command:
    """Decode one request line.

    Raises:
        ProtocolError: empty request, missing or malformed triplet.
    """
    tokens = text.split()
    if not tokens:
        raise ProtocolError("Empty request")
    parser = _PARSERS.get(tokens[0])
    if parser is None:
        return _parse_update(tokens)
    return parser(tokens[1:])
