"""Messages exchanged between Raft servers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class RPCHeader:
    """Protocol version and identity of the server sending an RPC.

    Older peers that predate versioning send the zero value.
    """

    protocol_version: int = 0
    id: bytes = b""
    addr: bytes = b""


@dataclass
class AppendEntriesRequest:
    """Asks a follower to append entries to its replicated log."""

    header: RPCHeader = field(default_factory=RPCHeader)
    term: int = 0
    leader: bytes = b""  # deprecated: use header.addr
    prev_log_entry: int = 0
    prev_log_term: int = 0
    entries: list[Any] = field(default_factory=list)
    leader_commit_index: int = 0


@dataclass
class AppendEntriesResponse:
    """Reply to an :class:`AppendEntriesRequest`."""

    header: RPCHeader = field(default_factory=RPCHeader)
    term: int = 0
    last_log: int = 0
    success: bool = False
    no_retry_backoff: bool = False


@dataclass
class RequestVoteRequest:
    """Sent by a candidate to ask a peer for its vote."""

    header: RPCHeader = field(default_factory=RPCHeader)
    term: int = 0
    candidate: bytes = b""  # deprecated: use header.addr
    last_log_index: int = 0
    last_log_term: int = 0
    leadership_transfer: bool = False


@dataclass
class RequestVoteResponse:
    """Reply to a :class:`RequestVoteRequest`."""

    header: RPCHeader = field(default_factory=RPCHeader)
    term: int = 0
    peers: bytes = b""  # deprecated: only for protocol version 0 peers
    granted: bool = False


@dataclass
class InstallSnapshotRequest:
    """Sent to a peer to bootstrap its log and state machine from a snapshot."""

    header: RPCHeader = field(default_factory=RPCHeader)
    snapshot_version: int = 0
    term: int = 0
    leader: bytes = b""
    last_log_index: int = 0
    last_log_term: int = 0
    peers: bytes = b""  # deprecated in favour of configuration
    configuration: bytes = b""
    configuration_index: int = 0
    size: int = 0


@dataclass
class InstallSnapshotResponse:
    """Reply to an :class:`InstallSnapshotRequest`."""

    header: RPCHeader = field(default_factory=RPCHeader)
    term: int = 0
    success: bool = False


@dataclass
class TimeoutNowRequest:
    """Sent by a leader to make another server start an election."""

    header: RPCHeader = field(default_factory=RPCHeader)


@dataclass
class TimeoutNowResponse:
    """Reply to a :class:`TimeoutNowRequest`."""

    header: RPCHeader = field(default_factory=RPCHeader)