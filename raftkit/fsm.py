"""Interfaces implemented by the replicated state machine."""

from __future__ import annotations

import abc
import logging
import time
from typing import Any, BinaryIO, Optional, Sequence


class FSMSnapshot(abc.ABC):
    """A point-in-time capture of the state machine.

    Its methods must be safe to call while the state machine keeps applying
    entries. Used as a context manager, it is released on exit.
    """

    @abc.abstractmethod
    def persist(self, sink: Any) -> None:
        """Write all state to ``sink``, then close it, or cancel it on error."""

    def release(self) -> None:
        """Called once the snapshot is no longer needed."""
        return None

    def __enter__(self) -> FSMSnapshot:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


class FSM(abc.ABC):
    """A state machine driven by the replicated log."""

    @abc.abstractmethod
    def apply(self, log: Any) -> Any:
        """Apply a committed entry; the result becomes the apply future's response.

        Must be deterministic so that every peer reaches the same state.
        """

    @abc.abstractmethod
    def snapshot(self) -> FSMSnapshot:
        """Return a snapshot of the current state.

        This should return quickly; expensive work belongs in
        :meth:`FSMSnapshot.persist`.
        """

    @abc.abstractmethod
    def restore(self, source: BinaryIO) -> None:
        """Discard all state and rebuild it from a snapshot stream."""


class BatchingFSM(FSM):
    """A state machine that can apply several committed entries at once."""

    @abc.abstractmethod
    def apply_batch(self, logs: Sequence[Any]) -> list[Any]:
        """Apply committed entries in order; return one response per entry."""


def _restore_and_measure(
    logger: logging.Logger,
    fsm: FSM,
    source: BinaryIO,
    snapshot_size: int,
    *,
    clock=time.monotonic,
) -> float:
    """Restore ``fsm`` from ``source`` and return how long it took in seconds.

    The caller remains responsible for closing ``source``.
    """
    start = clock()
    logger.info("starting snapshot restore (size-in-bytes=%d)", snapshot_size)
    fsm.restore(source)
    elapsed = clock() - start
    logger.info("snapshot restore finished in %.3f ms", elapsed * 1000)
    return elapsed