"""Cluster membership: servers, configurations and the rules for changing them."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from typing import Optional, Protocol

import msgpack


class ConfigurationError(ValueError):
    """Raised when a cluster configuration is invalid or cannot be decoded."""


class ServerSuffrage(enum.IntEnum):
    """Whether a server in a configuration gets a vote.

    The numeric values are written into the log and must not change.
    """

    VOTER = 0
    NONVOTER = 1
    STAGING = 2  # deprecated: behaves like NONVOTER

    def __str__(self) -> str:
        return _SUFFRAGE_LABELS[self]

    def __format__(self, spec: str) -> str:
        return format(str(self), spec)


_SUFFRAGE_LABELS = {
    ServerSuffrage.VOTER: "Voter",
    ServerSuffrage.NONVOTER: "Nonvoter",
    ServerSuffrage.STAGING: "Staging",
}


class ConfigurationChangeCommand(enum.IntEnum):
    """The ways in which the cluster configuration may be changed."""

    ADD_VOTER = 0
    ADD_NONVOTER = 1
    DEMOTE_VOTER = 2
    REMOVE_SERVER = 3
    PROMOTE = 4  # deprecated: use ADD_VOTER
    ADD_STAGING = 0  # deprecated alias of ADD_VOTER

    def __str__(self) -> str:
        return _COMMAND_LABELS[self]

    def __format__(self, spec: str) -> str:
        return format(str(self), spec)


_COMMAND_LABELS = {
    ConfigurationChangeCommand.ADD_VOTER: "AddVoter",
    ConfigurationChangeCommand.ADD_NONVOTER: "AddNonvoter",
    ConfigurationChangeCommand.DEMOTE_VOTER: "DemoteVoter",
    ConfigurationChangeCommand.REMOVE_SERVER: "RemoveServer",
    ConfigurationChangeCommand.PROMOTE: "Promote",
}


@dataclass
class Server:
    """A single member of a configuration."""

    suffrage: ServerSuffrage
    id: str
    address: str

    def __str__(self) -> str:
        return f"{{{self.suffrage} {self.id} {self.address}}}"


@dataclass
class Configuration:
    """The servers in the cluster; each server appears at most once."""

    servers: list[Server] = field(default_factory=list)

    def clone(self) -> Configuration:
        """Return a deep copy that shares no servers with this one."""
        return Configuration([replace(server) for server in self.servers])

    def __str__(self) -> str:
        return "{[" + " ".join(str(server) for server in self.servers) + "]}"


@dataclass
class ConfigurationChangeRequest:
    """A change a leader wants to make to its current configuration.

    A nonzero ``prev_index`` names the only configuration index on which the
    change may be applied.
    """

    command: ConfigurationChangeCommand
    server_id: str
    server_address: str = ""
    prev_index: int = 0


@dataclass
class Configurations:
    """The latest and the latest committed configuration, with their log indexes."""

    committed: Configuration = field(default_factory=Configuration)
    committed_index: int = 0
    latest: Configuration = field(default_factory=Configuration)
    latest_index: int = 0

    def clone(self) -> Configurations:
        """Return a deep copy of both configurations."""
        return Configurations(
            committed=self.committed.clone(),
            committed_index=self.committed_index,
            latest=self.latest.clone(),
            latest_index=self.latest_index,
        )


class ConfigurationStore:
    """Mixin for state machines that persist committed configuration changes.

    The default implementation keeps the most recently committed configuration
    in memory as ``stored_configuration``, an ``(index, configuration)`` pair;
    state machines that keep durable state override :meth:`store_configuration`.
    """

    def store_configuration(self, index: int, configuration: Configuration) -> None:
        """Called once a configuration entry written at ``index`` is committed."""
        self.stored_configuration = (index, configuration.clone())


class _PeerCodec(Protocol):
    def encode_peer(self, server_id: str, address: str) -> bytes: ...

    def decode_peer(self, data: bytes) -> str: ...


def _find(configuration: Configuration, server_id: str) -> Optional[Server]:
    return next((s for s in configuration.servers if s.id == server_id), None)


def has_vote(configuration: Configuration, server_id: str) -> bool:
    """Return True if the server is a voter in the configuration."""
    server = _find(configuration, server_id)
    return server is not None and server.suffrage == ServerSuffrage.VOTER


def in_configuration(configuration: Configuration, server_id: str) -> bool:
    """Return True if the server is present in the configuration."""
    return _find(configuration, server_id) is not None


def check_configuration(configuration: Configuration) -> None:
    """Raise ConfigurationError if the configuration has a common mistake."""
    ids: set[str] = set()
    addresses: set[str] = set()
    voters = 0
    for server in configuration.servers:
        if not server.id:
            raise ConfigurationError(f"empty ID in configuration: {configuration}")
        if not server.address:
            raise ConfigurationError(f"empty address in configuration: {server}")
        if server.id in ids:
            raise ConfigurationError(f"found duplicate ID in configuration: {server.id}")
        ids.add(server.id)
        if server.address in addresses:
            raise ConfigurationError(
                f"found duplicate address in configuration: {server.address}"
            )
        addresses.add(server.address)
        if server.suffrage == ServerSuffrage.VOTER:
            voters += 1
    if voters == 0:
        raise ConfigurationError(f"need at least one voter in configuration: {configuration}")


def next_configuration(
    current: Configuration, current_index: int, change: ConfigurationChangeRequest
) -> Configuration:
    """Return the configuration that results from applying ``change`` to ``current``."""
    if change.prev_index > 0 and change.prev_index != current_index:
        raise ConfigurationError(
            f"configuration changed since {change.prev_index} (latest is {current_index})"
        )

    configuration = current.clone()
    existing = _find(configuration, change.server_id)
    command = change.command

    if command == ConfigurationChangeCommand.ADD_VOTER:
        if existing is None:
            configuration.servers.append(
                Server(ServerSuffrage.VOTER, change.server_id, change.server_address)
            )
        else:
            existing.suffrage = ServerSuffrage.VOTER
            existing.address = change.server_address
    elif command == ConfigurationChangeCommand.ADD_NONVOTER:
        if existing is None:
            configuration.servers.append(
                Server(ServerSuffrage.NONVOTER, change.server_id, change.server_address)
            )
        else:
            # Voters and staging servers keep their suffrage; only the address moves.
            existing.address = change.server_address
    elif command == ConfigurationChangeCommand.DEMOTE_VOTER:
        if existing is not None:
            existing.suffrage = ServerSuffrage.NONVOTER
    elif command == ConfigurationChangeCommand.REMOVE_SERVER:
        if existing is not None:
            configuration.servers = [s for s in configuration.servers if s is not existing]
    elif command == ConfigurationChangeCommand.PROMOTE:
        staged = next(
            (
                s
                for s in configuration.servers
                if s.id == change.server_id and s.suffrage == ServerSuffrage.STAGING
            ),
            None,
        )
        if staged is not None:
            staged.suffrage = ServerSuffrage.VOTER

    check_configuration(configuration)
    return configuration


def encode_peers(configuration: Configuration, trans: _PeerCodec) -> bytes:
    """Serialize the voters of a configuration into the legacy peers format."""
    peers = [
        trans.encode_peer(server.id, server.address)
        for server in configuration.servers
        if server.suffrage == ServerSuffrage.VOTER
    ]
    return msgpack.packb(peers, use_bin_type=True)


def decode_peers(buf: bytes, trans: _PeerCodec) -> Configuration:
    """Deserialize a legacy peers list into a configuration of voters."""
    try:
        peers = msgpack.unpackb(buf, raw=False)
    except (ValueError, msgpack.UnpackException) as exc:
        raise ConfigurationError(f"failed to decode peers: {exc}") from exc
    if peers is None:
        peers = []
    if not isinstance(peers, list) or not all(isinstance(p, bytes) for p in peers):
        raise ConfigurationError("failed to decode peers: expected a list of byte strings")
    servers = []
    for encoded in peers:
        address = trans.decode_peer(encoded)
        servers.append(Server(ServerSuffrage.VOTER, address, address))
    return Configuration(servers)


def encode_configuration(configuration: Configuration) -> bytes:
    """Serialize a configuration with MessagePack."""
    payload = {
        "Servers": [
            {"Suffrage": int(s.suffrage), "ID": s.id, "Address": s.address}
            for s in configuration.servers
        ]
    }
    return msgpack.packb(payload, use_bin_type=True)


def decode_configuration(buf: bytes) -> Configuration:
    """Deserialize a configuration written by :func:`encode_configuration`."""
    try:
        payload = msgpack.unpackb(buf, raw=False)
    except (ValueError, msgpack.UnpackException) as exc:
        raise ConfigurationError(f"failed to decode configuration: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigurationError("failed to decode configuration: expected a map")
    entries = payload.get("Servers") or []
    if not isinstance(entries, list):
        raise ConfigurationError("failed to decode configuration: Servers is not a list")
    try:
        servers = [
            Server(
                ServerSuffrage(entry.get("Suffrage", 0)),
                str(entry.get("ID", "")),
                str(entry.get("Address", "")),
            )
            for entry in entries
        ]
    except (AttributeError, ValueError, TypeError) as exc:
        raise ConfigurationError(f"failed to decode configuration: {exc}") from exc
    return Configuration(servers)