# raftkit

Core pieces of a Raft consensus node that can be used on their own.

- **Cluster membership** (`raftkit.configuration`): `Server`, `Configuration`
  and `ServerSuffrage` (`VOTER`, `NONVOTER`, `STAGING`). `check_configuration`
  raises `ConfigurationError` for empty or duplicate IDs and addresses, or when
  there is no voter. `next_configuration` computes the membership that results
  from a `ConfigurationChangeRequest` (`ADD_VOTER`, `ADD_NONVOTER`,
  `DEMOTE_VOTER`, `REMOVE_SERVER`, `PROMOTE`), honouring its `prev_index`.
  `has_vote` and `in_configuration` answer membership questions.
  `Configurations` holds the latest and the latest committed configuration.
  Configurations round-trip through MessagePack with `encode_configuration` /
  `decode_configuration`; `encode_peers` / `decode_peers` handle the legacy
  peer list, using an object that provides `encode_peer` and `decode_peer`.
  `ConfigurationStore` is a mixin for state machines that want to be told of
  committed configuration changes.
- **Commit tracking** (`raftkit.commitment`): `Commitment` follows the match
  index of each voter and advances the commit index once a quorum has stored
  an entry at or after the leader's start index, setting a `threading.Event`
  whenever it advances.
- **Server settings** (`raftkit.config`): the `Config` dataclass (its defaults
  are usable, except that `local_id` must be set), `default_config()`,
  `validate_config()` which raises `ConfigError`, the runtime-adjustable
  `ReloadableConfig`, and the `ProtocolVersion` / `SnapshotVersion` enums.
- **RPC messages** (`raftkit.commands`): `AppendEntriesRequest`,
  `RequestVoteRequest`, `InstallSnapshotRequest`, `TimeoutNowRequest` and their
  responses, each carrying an `RPCHeader`.
- **State machine interfaces** (`raftkit.fsm`): the abstract base classes
  `FSM`, `BatchingFSM` and `FSMSnapshot` for applications to implement.
  `FSMSnapshot` is a context manager that calls `release()` on exit.

## Installation

```
pip install raftkit
```

## Example

```python
import threading

from raftkit.commitment import Commitment
from raftkit.configuration import (
    Configuration, ConfigurationChangeCommand, ConfigurationChangeRequest,
    Server, ServerSuffrage, decode_configuration, encode_configuration,
    next_configuration,
)

config = Configuration([Server(ServerSuffrage.VOTER, "s1", "10.0.0.1:7000")])
config = next_configuration(
    config, 1,
    ConfigurationChangeRequest(ConfigurationChangeCommand.ADD_VOTER, "s2", "10.0.0.2:7000"),
)
print(config)  # {[{Voter s1 10.0.0.1:7000} {Voter s2 10.0.0.2:7000}]}

assert decode_configuration(encode_configuration(config)) == config

committed = threading.Event()
commitment = Commitment(committed, config, start_index=1)
commitment.match("s1", 5)
commitment.match("s2", 5)
print(commitment.commit_index())  # 5
print(committed.is_set())         # True
```

Validating server settings:

```python
from raftkit.config import ConfigError, default_config, validate_config

cfg = default_config()
cfg.local_id = "node-1"
validate_config(cfg)

cfg.max_append_entries = 2000
try:
    validate_config(cfg)
except ConfigError as exc:
    print(exc)  # MaxAppendEntries is too large
```

## What this package does not do

raftkit provides the data structures and rules above, not a running Raft
node. It has no election or replication loop, no network transport, no log
storage, no snapshot storage, and no futures for waiting on operations.
Applications supply those themselves, implementing `FSM` for their state
machine.

## Running the tests

```
pip install -e ".[test]"
pytest
```