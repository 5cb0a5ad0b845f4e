from datetime import timedelta

import pytest

from nesstate.persistence import RetentionPolicy, SnapshotEntry

from conftest import T0


def entry(sid: int, seconds: int, auto: bool) -> SnapshotEntry:
    return SnapshotEntry(snapshot_id=sid, date=T0 + timedelta(seconds=seconds), is_auto_save=auto)


def test_defaults():
    policy = RetentionPolicy()
    assert policy.max_auto == 3
    assert policy.max_manual == 13
    assert policy.cap_for(True) == 3
    assert policy.cap_for(False) == 13


def test_oldest_auto_saves_are_evicted():
    policy = RetentionPolicy(max_auto=3, max_manual=13)
    entries = [entry(i, i, True) for i in range(1, 6)]
    evicted = policy.evictions(entries)
    assert sorted(e.snapshot_id for e in evicted) == [1, 2]


def test_categories_are_independent():
    policy = RetentionPolicy(max_auto=1, max_manual=2)
    entries = [entry(1, 1, False), entry(2, 2, True), entry(3, 3, False), entry(4, 4, True), entry(5, 5, False)]
    evicted = {e.snapshot_id for e in policy.evictions(entries)}
    # newest auto is 4, newest two manual are 5 and 3
    assert evicted == {1, 2}


def test_many_manual_saves_never_evict_auto_saves():
    policy = RetentionPolicy(max_auto=3, max_manual=2)
    entries = [entry(1, 0, True)] + [entry(i, i, False) for i in range(2, 10)]
    evicted = policy.evictions(entries)
    assert all(not e.is_auto_save for e in evicted)
    assert len(evicted) == 6


def test_pruning_is_idempotent():
    policy = RetentionPolicy(max_auto=2, max_manual=2)
    entries = [entry(i, i, i % 2 == 0) for i in range(1, 12)]
    doomed = {e.snapshot_id for e in policy.evictions(entries)}
    survivors = [e for e in entries if e.snapshot_id not in doomed]
    assert len(survivors) == 4
    assert policy.evictions(survivors) == []


def test_equal_dates_keep_the_latest_insertion():
    policy = RetentionPolicy(max_auto=1, max_manual=13)
    entries = [entry(7, 0, True), entry(8, 0, True), entry(6, 0, True)]
    evicted = {e.snapshot_id for e in policy.evictions(entries)}
    assert evicted == {6, 7}


def test_zero_cap_evicts_everything_in_category():
    policy = RetentionPolicy(max_auto=0, max_manual=1)
    entries = [entry(1, 1, True), entry(2, 2, False)]
    assert [e.snapshot_id for e in policy.evictions(entries)] == [1]


def test_under_cap_evicts_nothing():
    assert RetentionPolicy().evictions([entry(1, 1, True), entry(2, 2, False)]) == []
    assert RetentionPolicy().evictions([]) == []


@pytest.mark.parametrize("caps", [(-1, 13), (3, -1)])
def test_negative_caps_rejected(caps):
    with pytest.raises(ValueError):
        RetentionPolicy(max_auto=caps[0], max_manual=caps[1])
