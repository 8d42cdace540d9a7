"""Tests for the command tokenizer and parser."""
from __future__ import annotations

import pytest

from greylistd.domain.status import ListingStatus
from greylistd.domain.triplet import Triplet
from greylistd.errors import ProtocolError
from greylistd.protocol.commands import (
    AddCommand,
    CheckCommand,
    ClearCommand,
    DeleteCommand,
    ListCommand,
    MrtgCommand,
    ReloadCommand,
    SaveCommand,
    StatsCommand,
    StatusCommand,
    UpdateCommand,
    parse_command,
    split_flags,
)

TRIPLET_TEXT = "192.0.2.1 alice@example.org bob@example.net"
TRIPLET = Triplet.parse(TRIPLET_TEXT)


def test_explicit_update():
    assert parse_command(f"update {TRIPLET_TEXT}") == UpdateCommand(TRIPLET)


def test_bare_triplet_is_update():
    assert parse_command(TRIPLET_TEXT) == UpdateCommand(TRIPLET)


def test_bare_flag_is_update_with_expectation():
    cmd = parse_command(f"--white {TRIPLET_TEXT}")
    assert cmd == UpdateCommand(TRIPLET, expect=ListingStatus.WHITE)


def test_update_with_flag():
    cmd = parse_command(f"update --grey {TRIPLET_TEXT}")
    assert cmd == UpdateCommand(TRIPLET, expect=ListingStatus.GREY)


def test_last_flag_wins():
    cmd = parse_command(f"check --white --black {TRIPLET_TEXT}")
    assert cmd == CheckCommand(TRIPLET, expect=ListingStatus.BLACK)


def test_check_without_flag():
    assert parse_command(f"check {TRIPLET_TEXT}") == CheckCommand(TRIPLET)


def test_add_defaults_to_white():
    assert parse_command(f"add {TRIPLET_TEXT}") == AddCommand(TRIPLET, ListingStatus.WHITE)


def test_add_black():
    cmd = parse_command("add --black 5.6.7.8 eve@y")
    assert cmd == AddCommand(Triplet.parse("5.6.7.8 eve@y"), ListingStatus.BLACK)


def test_delete_and_status_ignore_flags():
    assert parse_command(f"delete --white {TRIPLET_TEXT}") == DeleteCommand(TRIPLET)
    assert parse_command(f"status {TRIPLET_TEXT}") == StatusCommand(TRIPLET)


def test_list_flags():
    assert parse_command("list") == ListCommand(())
    assert parse_command("list --black --white") == ListCommand(
        (ListingStatus.BLACK, ListingStatus.WHITE)
    )
    assert parse_command("list --grey --grey") == ListCommand((ListingStatus.GREY,))


def test_clear_flags():
    assert parse_command("clear") == ClearCommand(())
    assert parse_command("clear --grey") == ClearCommand((ListingStatus.GREY,))


@pytest.mark.parametrize(
    "text, expected",
    [
        ("save", SaveCommand()),
        ("reload", ReloadCommand()),
        ("stats", StatsCommand()),
        ("mrtg", MrtgCommand()),
        ("stats\n", StatsCommand()),
    ],
)
def test_bare_commands(text, expected):
    assert parse_command(text) == expected


def test_trailing_newline_and_extra_spaces():
    assert parse_command(f"  update   {TRIPLET_TEXT}\r\n") == UpdateCommand(TRIPLET)


def test_unknown_flags_are_ignored():
    assert parse_command(f"check --verbose {TRIPLET_TEXT}") == CheckCommand(TRIPLET)


def test_command_names_are_case_sensitive():
    """"CHECK" is not a command, so the line is an update that fails to parse."""
    with pytest.raises(ProtocolError):
        parse_command(f"CHECK {TRIPLET_TEXT}")


@pytest.mark.parametrize(
    "text",
    [
        "",
        "   ",
        "update",
        "update --white",
        "check --grey",
        "add",
        "delete",
        "status 192.0.2.1",
        "check 192.0.2.1 a@b c@d e@f",
        "update nonsense bob@example.net",
    ],
)
def test_invalid(text):
    with pytest.raises(ProtocolError):
        parse_command(text)


def test_split_flags():
    statuses, rest = split_flags(["--white", "--nope", "--black", "1.2.3.4", "--grey"])
    assert statuses == [ListingStatus.WHITE, ListingStatus.BLACK]
    assert rest == ["1.2.3.4", "--grey"]
