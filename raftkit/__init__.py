"""Building blocks for the Raft consensus protocol: membership, commitment, settings, messages and FSM interfaces."""

__version__ = "0.1.0"

__all__ = [
    "commands",
    "commitment",
    "config",
    "configuration",
    "fsm",
]