"""Settings for a Raft server and their validation."""

from __future__ import annotations

import enum
import logging
import queue
import sys
from dataclasses import dataclass, field, replace
from datetime import timedelta
from typing import Optional, TextIO


class ConfigError(ValueError):
    """Raised when a server configuration is not sane."""


class ProtocolVersion(enum.IntEnum):
    """Versions of the wire protocol and log entries this server understands.

    0: the original, unversioned protocol.
    1: configuration changes travel as legacy peer-removal entries; IDs equal addresses.
    2: configuration entries carry IDs, but IDs still equal addresses.
    3: full support for server IDs and the ID-based membership APIs.
    """

    V0 = 0
    V1 = 1
    V2 = 2
    V3 = 3
    MIN = 0
    MAX = 3


class SnapshotVersion(enum.IntEnum):
    """Versions of the snapshot format this server understands.

    0: peers stored in the legacy encoding only.
    1: full configuration and its log index, plus the legacy peers.
    """

    V0 = 0
    V1 = 1
    MIN = 0
    MAX = 1


_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "off": logging.CRITICAL + 10,
}


def _level_from_string(level: str) -> int:
    return _LEVELS.get(level.strip().lower(), logging.NOTSET)


def _format_duration(value: timedelta) -> str:
    micros = value // timedelta(microseconds=1)
    if micros == 0:
        return "0s"
    sign = "-" if micros < 0 else ""
    micros = abs(micros)
    if micros < 1_000:
        return f"{sign}{micros}µs"
    if micros < 1_000_000:
        return f"{sign}{micros / 1_000:g}ms"
    hours, rest = divmod(micros, 3_600_000_000)
    minutes, rest = divmod(rest, 60_000_000)
    text = sign
    if hours:
        text += f"{hours}h"
    if hours or minutes:
        text += f"{minutes}m"
    return text + f"{rest / 1_000_000:g}s"


@dataclass
class Config:
    """Everything needed to run a Raft server.

    The defaults are usable values, except that ``local_id`` must be set.
    """

    protocol_version: int = ProtocolVersion.MAX
    heartbeat_timeout: timedelta = timedelta(milliseconds=1000)
    election_timeout: timedelta = timedelta(milliseconds=1000)
    commit_timeout: timedelta = timedelta(milliseconds=50)
    max_append_entries: int = 64
    batch_apply: bool = False
    shutdown_on_remove: bool = True
    trailing_logs: int = 10240
    snapshot_interval: timedelta = timedelta(seconds=120)
    snapshot_threshold: int = 8192
    leader_lease_timeout: timedelta = timedelta(milliseconds=500)
    local_id: str = ""
    notify_queue: Optional[queue.Queue] = None
    log_output: Optional[TextIO] = None
    log_level: str = "DEBUG"
    logger: Optional[logging.Logger] = None
    no_snapshot_restore_on_start: bool = False
    skip_startup: bool = field(default=False, repr=False)

    def get_or_create_logger(self) -> logging.Logger:
        """Return the configured logger, or build one writing to ``log_output``."""
        if self.logger is not None:
            return self.logger
        if self.log_output is None:
            self.log_output = sys.stderr
        logger = logging.Logger("raft", level=_level_from_string(self.log_level))
        handler = logging.StreamHandler(self.log_output)
        handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
        logger.addHandler(handler)
        return logger


@dataclass
class ReloadableConfig:
    """The subset of :class:`Config` that may be changed while running."""

    trailing_logs: int = 0
    snapshot_interval: timedelta = timedelta(0)
    snapshot_threshold: int = 0
    heartbeat_timeout: timedelta = timedelta(0)
    election_timeout: timedelta = timedelta(0)

    def apply(self, to: Config) -> Config:
        """Return a copy of ``to`` with every reloadable field taken from here."""
        return replace(
            to,
            trailing_logs=self.trailing_logs,
            snapshot_interval=self.snapshot_interval,
            snapshot_threshold=self.snapshot_threshold,
            heartbeat_timeout=self.heartbeat_timeout,
            election_timeout=self.election_timeout,
        )

    @classmethod
    def from_config(cls, config: Config) -> ReloadableConfig:
        """Capture the reloadable fields of ``config``."""
        return cls(
            trailing_logs=config.trailing_logs,
            snapshot_interval=config.snapshot_interval,
            snapshot_threshold=config.snapshot_threshold,
            heartbeat_timeout=config.heartbeat_timeout,
            election_timeout=config.election_timeout,
        )


def default_config() -> Config:
    """Return a Config with usable defaults."""
    return Config()


def validate_config(config: Config) -> None:
    """Raise ConfigError unless ``config`` is a sane configuration."""
    # Version 0 is understood but no longer supported for running.
    protocol_min = max(int(ProtocolVersion.MIN), 1)
    protocol_max = int(ProtocolVersion.MAX)
    if not protocol_min <= config.protocol_version <= protocol_max:
        raise ConfigError(
            f"ProtocolVersion {int(config.protocol_version)} must be >= "
            f"{protocol_min} and <= {protocol_max}"
        )
    if not config.local_id:
        raise ConfigError("LocalID cannot be empty")
    five_ms = timedelta(milliseconds=5)
    if config.heartbeat_timeout < five_ms:
        raise ConfigError("HeartbeatTimeout is too low")
    if config.election_timeout < five_ms:
        raise ConfigError("ElectionTimeout is too low")
    if config.commit_timeout < timedelta(milliseconds=1):
        raise ConfigError("CommitTimeout is too low")
    if config.max_append_entries <= 0:
        raise ConfigError("MaxAppendEntries must be positive")
    if config.max_append_entries > 1024:
        raise ConfigError("MaxAppendEntries is too large")
    if config.snapshot_interval < five_ms:
        raise ConfigError("SnapshotInterval is too low")
    if config.leader_lease_timeout < five_ms:
        raise ConfigError("LeaderLeaseTimeout is too low")
    if config.leader_lease_timeout > config.heartbeat_timeout:
        raise ConfigError(
            f"LeaderLeaseTimeout ({_format_duration(config.leader_lease_timeout)}) "
            f"cannot be larger than heartbeat timeout "
            f"({_format_duration(config.heartbeat_timeout)})"
        )
    if config.election_timeout < config.heartbeat_timeout:
        raise ConfigError(
            f"ElectionTimeout ({_format_duration(config.election_timeout)}) must be "
            f"equal or greater than Heartbeat Timeout "
            f"({_format_duration(config.heartbeat_timeout)})"
        )