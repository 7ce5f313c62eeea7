import threading

import pytest

from raftkit.commitment import Commitment
from raftkit.configuration import Configuration, Server, ServerSuffrage


def cluster(*names):
    return Configuration([Server(ServerSuffrage.VOTER, name, f"{name}addr") for name in names])


def first(n):
    return cluster(*(f"s{i}" for i in range(1, n + 1)))


@pytest.fixture
def event():
    return threading.Event()


def _outcome(commitment, event):
    notified = event.is_set()
    event.clear()
    return commitment.commit_index(), notified


def matched(commitment, event, *pairs):
    """Report matches; return (commit index, whether a notification was sent)."""
    for server, index in pairs:
        commitment.match(server, index)
    return _outcome(commitment, event)


def reconfigured(commitment, event, configuration):
    commitment.set_configuration(configuration)
    return _outcome(commitment, event)


def test_new_configuration_keeps_known_match_indexes(event):
    c = Commitment(event, cluster("a", "b", "c"), 0)
    assert matched(c, event, ("a", 10), ("b", 20), ("c", 30)) == (20, True)
    assert reconfigured(c, event, cluster("c", "d", "e")) == (20, False)
    assert matched(c, event, ("e", 40)) == (30, True)


def test_smaller_match_index_is_ignored(event):
    c = Commitment(event, first(5), 4)
    outcome = matched(c, event, ("s1", 8), ("s2", 8), ("s2", 1), ("s3", 8))
    assert outcome == (8, True)


def test_non_voters_cannot_commit(event):
    c = Commitment(event, first(5), 4)
    assert matched(c, event, ("s1", 8), ("s2", 8), ("s3", 8)) == (8, True)
    assert matched(c, event, ("s90", 10), ("s91", 10), ("s92", 10)) == (8, False)


def test_quorum_recalculation_across_configurations(event):
    c = Commitment(event, first(5), 0)
    assert matched(c, event, ("s1", 30), ("s2", 20)) == (0, False)
    assert matched(c, event, ("s3", 10)) == (10, True)
    assert matched(c, event, ("s4", 15)) == (15, True)
    assert reconfigured(c, event, first(3)) == (20, True)
    assert reconfigured(c, event, first(4)) == (20, False)
    assert matched(c, event, ("s2", 25)) == (20, False)
    assert matched(c, event, ("s4", 23)) == (23, True)


def test_nothing_commits_before_start_index_reaches_quorum(event):
    c = Commitment(event, first(5), 4)
    assert matched(c, event, ("s1", 3), ("s2", 3), ("s3", 3)) == (0, False)
    assert matched(c, event, ("s1", 4), ("s2", 4), ("s3", 4)) == (4, True)


def test_without_voters_nothing_commits(event):
    c = Commitment(event, cluster(), 4)
    assert matched(c, event, ("s1", 10)) == (0, False)
    assert reconfigured(c, event, cluster()) == (0, False)
    assert matched(c, event, ("s1", 10)) == (0, False)

    assert reconfigured(c, event, first(1)) == (0, False)
    assert matched(c, event, ("s1", 10)) == (10, True)

    assert reconfigured(c, event, cluster()) == (10, False)
    assert matched(c, event, ("s1", 20)) == (10, False)


def test_lone_voter_commits_at_once(event):
    c = Commitment(event, first(1), 4)
    assert matched(c, event, ("s1", 10)) == (10, True)
    assert reconfigured(c, event, first(1)) == (10, False)
    assert matched(c, event, ("s1", 12)) == (12, True)