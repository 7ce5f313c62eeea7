"""Tracking of the leader's commit index from follower match indexes."""

from __future__ import annotations

import threading

from .configuration import Configuration, ServerSuffrage


def _voter_ids(configuration: Configuration) -> list[str]:
    return [s.id for s in configuration.servers if s.suffrage == ServerSuffrage.VOTER]


class Commitment:
    """Advances the leader's commit index as voters report written entries.

    ``commit_event`` is set whenever the commit index increases. A new
    commitment is created each time a server becomes leader for a term;
    ``start_index`` is the first index of that term, which must reach a quorum
    before anything may be marked committed.
    """

    def __init__(
        self,
        commit_event: threading.Event,
        configuration: Configuration,
        start_index: int,
    ) -> None:
        self.commit_event = commit_event
        self._lock = threading.Lock()
        self._match_indexes: dict[str, int] = dict.fromkeys(_voter_ids(configuration), 0)
        self._commit_index = 0
        self._start_index = start_index

    def set_configuration(self, configuration: Configuration) -> None:
        """Use a new membership to determine commitment from now on."""
        with self._lock:
            old = self._match_indexes
            self._match_indexes = {
                server_id: old.get(server_id, 0) for server_id in _voter_ids(configuration)
            }
            self._recalculate()

    def commit_index(self) -> int:
        """Return the highest index stored on a quorum of voters."""
        with self._lock:
            return self._commit_index

    def match(self, server: str, match_index: int) -> None:
        """Record that ``server`` agrees with the leader's log up to ``match_index``."""
        with self._lock:
            previous = self._match_indexes.get(server)
            if previous is not None and match_index > previous:
                self._match_indexes[server] = match_index
                self._recalculate()

    def _recalculate(self) -> None:
        if not self._match_indexes:
            return
        matched = sorted(self._match_indexes.values())
        quorum_match_index = matched[(len(matched) - 1) // 2]
        if quorum_match_index > self._commit_index and quorum_match_index >= self._start_index:
            self._commit_index = quorum_match_index
            self.commit_event.set()