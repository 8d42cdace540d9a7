"""INI configuration for the daemon.

Layout (option names are case-insensitive, so "retryMin" and "retrymin"
are the same option):

    [timeouts]
    retryMin = 600        ; initial delay before an unknown triplet may pass
    retryMax = 28800      ; lifetime of triplets never retried after the delay
    expire = 5184000      ; lifetime of white/black triplets since last seen

    [socket]
    path = /var/run/greylistd/socket
    mode = 0660

    [data]
    update = 600          ; flush to disk if the last save is older than this
    statefile = /var/lib/greylistd/states
    tripletfile = /var/lib/greylistd/triplets
    savetriplets = true
    singlecheck = false
    singleupdate = false
    onlysubnet = true     ; hash the /24 (IPv4) or leading 7 octets (IPv6) only

The socket path and mode have no defaults. Durations are whole seconds.
"""
from __future__ import annotations

import configparser
from dataclasses import dataclass

from greylistd.errors import ConfigError

DEFAULT_CONFIG_PATH = "/etc/greylistd/config"

DEFAULT_RETRY_MIN = 600
DEFAULT_RETRY_MAX = 28_800
DEFAULT_EXPIRE = 5_184_000
DEFAULT_UPDATE = 600
DEFAULT_STATEFILE = "/var/lib/greylistd/states"
DEFAULT_TRIPLETFILE = "/var/lib/greylistd/triplets"


@dataclass(frozen=True, slots=True)
class Timeouts:
    """Greylisting windows, in seconds."""
    retry_min: float = DEFAULT_RETRY_MIN
    retry_max: float = DEFAULT_RETRY_MAX
    expire: float = DEFAULT_EXPIRE


@dataclass(frozen=True, slots=True)
class SocketConfig:
    path: str
    mode: int


@dataclass(frozen=True, slots=True)
class DataConfig:
    update: float = DEFAULT_UPDATE
    statefile: str = DEFAULT_STATEFILE
    tripletfile: str = DEFAULT_TRIPLETFILE
    savetriplets: bool = True
    singlecheck: bool = False
    singleupdate: bool = False
    onlysubnet: bool = True


@dataclass(frozen=True, slots=True)
class Config:
    timeouts: Timeouts
    socket: SocketConfig
    data: DataConfig

    def validate(self) -> None:
        """Reject combinations the daemon cannot run with."""
        if not self.data.savetriplets:
            raise ConfigError("Option savetriplets must be enabled")
        if self.data.singlecheck or self.data.singleupdate:
            raise ConfigError(
                "Options singleupdate and singlecheck aren't supported yet"
            )
        if self.timeouts.retry_min > self.timeouts.retry_max:
            raise ConfigError(
                f"retryMin ({self.timeouts.retry_min:g}) must not exceed "
                f"retryMax ({self.timeouts.retry_max:g})"
            )


def _get_seconds(
    parser: configparser.ConfigParser, section: str, option: str, fallback: int
) -> float:
    raw = parser.get(section, option, fallback=None)
    if raw is None:
        return float(fallback)
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(
            f"[{section}] {option}: expected whole seconds, got {raw!r}"
        ) from None
    if value < 0:
        raise ConfigError(f"[{section}] {option}: must not be negative")
    return float(value)


def _get_bool(
    parser: configparser.ConfigParser, section: str, option: str, fallback: bool
) -> bool:
    raw = parser.get(section, option, fallback=None)
    if raw is None:
        return fallback
    value = raw.strip().lower()
    if value == "true":
        return True
    if value == "false":
        return False
    raise ConfigError(f"[{section}] {option}: expected true or false, got {raw!r}")


def _get_required(
    parser: configparser.ConfigParser, section: str, option: str
) -> str:
    try:
        return parser.get(section, option)
    except (configparser.NoSectionError, configparser.NoOptionError):
        raise ConfigError(f"Missing required option [{section}] {option}") from None


def parse_config(text: str) -> Config:
    """Build a validated Config from INI text."""
    parser = configparser.ConfigParser(interpolation=None)
    try:
        parser.read_string(text)
    except configparser.Error as err:
        raise ConfigError(f"Malformed configuration: {err}") from None

    timeouts = Timeouts(
        retry_min=_get_seconds(parser, "timeouts", "retrymin", DEFAULT_RETRY_MIN),
        retry_max=_get_seconds(parser, "timeouts", "retrymax", DEFAULT_RETRY_MAX),
        expire=_get_seconds(parser, "timeouts", "expire", DEFAULT_EXPIRE),
    )

    mode_text = _get_required(parser, "socket", "mode")
    try:
        mode = int(mode_text, 8)
    except ValueError:
        raise ConfigError(f"[socket] mode: not an octal file mode: {mode_text!r}") from None
    socket = SocketConfig(path=_get_required(parser, "socket", "path"), mode=mode)

    data = DataConfig(
        update=_get_seconds(parser, "data", "update", DEFAULT_UPDATE),
        statefile=parser.get("data", "statefile", fallback=DEFAULT_STATEFILE),
        tripletfile=parser.get("data", "tripletfile", fallback=DEFAULT_TRIPLETFILE),
        savetriplets=_get_bool(parser, "data", "savetriplets", True),
        singlecheck=_get_bool(parser, "data", "singlecheck", False),
        singleupdate=_get_bool(parser, "data", "singleupdate", False),
        onlysubnet=_get_bool(parser, "data", "onlysubnet", True),
    )

    config = Config(timeouts=timeouts, socket=socket, data=data)
    config.validate()
    return config


def load_config(path: str) -> Config:
    """Read and validate the configuration file at path."""
    try:
        with open(path, encoding="utf-8") as f:
            text = f.read()
    except OSError as err:
        raise ConfigError(f"Cannot read configuration {path}: {err.strerror}") from None
    return parse_config(text)
