"""Two-file on-disk representation of the registry.

Triplet file: the only place the human-readable triplet survives. One
line per entry, no section header:

    10312285413468573472=192.0.2.1 alice@example.org bob@example.net

State file: INI with one section per listing status plus statistics:

    [white]
    10312285413468573472=1700000600 1700000000 2
    [grey]
    [black]
    [statistics]
    white=1
    grey=1
    black=0
    start=1699990000
    lastsave=1700000600

Status values are "<last_seen> <first_seen> <count>" in whole seconds.

Loading joins the two files on the identity key: every triplet must have
exactly one status row, otherwise the data is treated as corrupt and the
daemon refuses to start. Status rows without a triplet are dropped.

Saving writes both files to "<path>.tmp" first and renames them over
the old copies only once both are on disk, so a failed write leaves the
previous pair in place. The state file is renamed first: a triplet added
since the last save then never lacks its status row.
"""
from __future__ import annotations

import configparser
import io
import logging
import os
import time
from collections.abc import Callable

from greylistd.config import Timeouts
from greylistd.domain.entry import RegistryEntry, Statistics, TripletStatus
from greylistd.domain.status import ALL_STATUSES
from greylistd.domain.triplet import Triplet
from greylistd.domain.types import Timestamp
from greylistd.errors import CorruptStateError, PersistenceError, ProtocolError
from greylistd.registry.registry import Registry

log = logging.getLogger(__name__)

_TRIPLET_SECTION = "triplets"
_STATISTICS_SECTION = "statistics"
_STATISTICS_KEYS = ("white", "grey", "black", "start", "lastsave")


def _new_parser() -> configparser.ConfigParser:
    parser = configparser.ConfigParser(
        interpolation=None,
        delimiters=("=",),
        comment_prefixes=("#", ";"),
        default_section="__default__",
    )
    parser.optionxform = str  # keep keys verbatim
    return parser


def _read_text(path: str) -> str | None:
    """File contents, or None when the file does not exist."""
    try:
        with open(path, encoding="utf-8") as f:
            return f.read()
    except FileNotFoundError:
        return None
    except OSError as err:
        raise CorruptStateError(f"Cannot read {path}: {err.strerror}") from None


def _parse_ini(text: str, path: str) -> configparser.ConfigParser:
    parser = _new_parser()
    try:
        parser.read_string(text, source=path)
    except configparser.Error as err:
        raise CorruptStateError(f"Malformed data in {path}: {err}") from None
    return parser


def _tmp_path(path: str) -> str:
    return path + ".tmp"


def _write_tmp(path: str, content: str) -> None:
    """Write content next to path and fsync it. Nothing is renamed yet."""
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(_tmp_path(path), "w", encoding="utf-8") as f:
        f.write(content)
        f.flush()
        os.fsync(f.fileno())


def _discard_tmp(paths: list[str]) -> None:
    for path in paths:
        try:
            os.unlink(_tmp_path(path))
        except FileNotFoundError:
            pass
        except OSError as err:
            log.warning("cannot remove %s: %s", _tmp_path(path), err)


class StateStore:
    """Loads and saves the registry to its triplet file and state file.

    Args:
        triplet_path: identity key -> triplet text.
        state_path: per-status metadata and statistics.
    """

    def __init__(self, triplet_path: str, state_path: str) -> None:
        self._triplet_path = triplet_path
        self._state_path = state_path

    @property
    def triplet_path(self) -> str:
        return self._triplet_path

    @property
    def state_path(self) -> str:
        return self._state_path

    # -- load ------------------------------------------------------------

    def _load_triplets(self) -> dict[str, Triplet]:
        text = _read_text(self._triplet_path)
        if text is None:
            return {}
        if not text.lstrip().startswith("["):
            text = f"[{_TRIPLET_SECTION}]\n{text}"
        parser = _parse_ini(text, self._triplet_path)
        if not parser.has_section(_TRIPLET_SECTION):
            return {}
        triplets: dict[str, Triplet] = {}
        for key, value in parser.items(_TRIPLET_SECTION):
            try:
                triplets[key] = Triplet.parse(value)
            except ProtocolError as err:
                raise CorruptStateError(
                    f"{self._triplet_path}: invalid triplet for {key}: {err}"
                ) from None
        return triplets

    def _load_statistics(
        self, parser: configparser.ConfigParser, now: Timestamp
    ) -> Statistics:
        if not parser.has_section(_STATISTICS_SECTION):
            return Statistics.fresh(now)
        section = parser[_STATISTICS_SECTION]
        try:
            values = {k: int(section[k]) for k in _STATISTICS_KEYS}
        except KeyError as err:
            raise CorruptStateError(
                f"{self._state_path}: statistics lack {err.args[0]!r}"
            ) from None
        except ValueError as err:
            raise CorruptStateError(f"{self._state_path}: bad statistics: {err}") from None
        return Statistics(
            white=values["white"],
            grey=values["grey"],
            black=values["black"],
            start=float(values["start"]),
            last_save=float(values["lastsave"]),
        )

    def load(
        self, now: Timestamp | None = None
    ) -> tuple[list[RegistryEntry], Statistics]:
        """Read both files and join them into registry entries.

        Absent files mean "no data yet": empty entries, fresh statistics.

        Raises:
            CorruptStateError: a triplet has zero or several status rows,
                or a row does not parse.
        """
        now = time.time() if now is None else now
        triplets = self._load_triplets()

        text = _read_text(self._state_path)
        parser = _parse_ini(text, self._state_path) if text is not None else _new_parser()
        statistics = self._load_statistics(parser, now)

        buckets = {
            status: dict(parser.items(status.value)) if parser.has_section(status.value) else {}
            for status in ALL_STATUSES
        }

        entries: list[RegistryEntry] = []
        for key, triplet in triplets.items():
            found = [(status, buckets[status].pop(key)) for status in ALL_STATUSES
                     if key in buckets[status]]
            if not found:
                raise CorruptStateError(f"Triplet status not found: {triplet}")
            if len(found) > 1:
                names = ", ".join(str(status) for status, _ in found)
                raise CorruptStateError(
                    f"Triplet {triplet} is listed in several states: {names}"
                )
            status, raw = found[0]
            entries.append(
                RegistryEntry(triplet=triplet, status=status, meta=TripletStatus.parse(raw))
            )

        orphans = sum(len(rows) for rows in buckets.values())
        if orphans:
            log.debug("dropped %d status rows without a triplet", orphans)
        log.info(
            "loaded %d entries from %s and %s",
            len(entries), self._triplet_path, self._state_path,
        )
        return entries, statistics

    def load_registry(
        self,
        timeouts: Timeouts,
        only_subnet: bool,
        clock: Callable[[], Timestamp] = time.time,
    ) -> Registry:
        """load() and build a Registry keyed under the current subnet mode."""
        entries, statistics = self.load(now=clock())
        return Registry.from_entries(timeouts, only_subnet, entries, statistics, clock)

    # -- save ------------------------------------------------------------

    @staticmethod
    def render_triplets(registry: Registry) -> str:
        return "".join(f"{key}={entry.triplet}\n" for key, entry in registry.items())

    @staticmethod
    def render_states(registry: Registry) -> str:
        parser = _new_parser()
        for status in ALL_STATUSES:
            parser.add_section(status.value)
        for key, entry in registry.items():
            parser.set(entry.status.value, str(key), entry.meta.render())

        stats = registry.statistics
        parser.add_section(_STATISTICS_SECTION)
        section = parser[_STATISTICS_SECTION]
        section["white"] = str(stats.white)
        section["grey"] = str(stats.grey)
        section["black"] = str(stats.black)
        section["start"] = str(int(stats.start))
        section["lastsave"] = str(int(stats.last_save))

        buf = io.StringIO()
        parser.write(buf, space_around_delimiters=False)
        return buf.getvalue()

    def save(self, registry: Registry) -> None:
        """Prune, stamp last_save and rewrite both files as a pair.

        Raises:
            PersistenceError: either file could not be written. The files
                on disk are then the ones from the previous save.
        """
        registry.prune()
        registry.mark_saved(registry.now())
        files = [
            (self._state_path, self.render_states(registry)),
            (self._triplet_path, self.render_triplets(registry)),
        ]
        path = self._state_path
        try:
            for path, content in files:
                _write_tmp(path, content)
            for path, _ in files:
                os.replace(_tmp_path(path), path)
        except OSError as err:
            _discard_tmp([p for p, _ in files])
            raise PersistenceError(path, err.strerror or str(err)) from err
        log.info("saved %d entries", len(registry))
