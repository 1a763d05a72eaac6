import sqlite3

import pytest

from swipe.database import ChallengeStore, get_db_path
from swipe.errors import ChallengeNotFound, RemoteWriteFailure
from swipe.models import CounterField


def test_add_and_get(store):
    created = store.add_challenge("Do ten push-ups", challenge_id="A")
    fetched = store.get_challenge("A")
    assert fetched.text == "Do ten push-ups"
    assert (fetched.yes_count, fetched.no_count, fetched.skip_count) == (0, 0, 0)
    assert not fetched.retired
    assert fetched.created_at == created.created_at


def test_missing_challenge(store):
    assert store.get_challenge("nope") is None


def test_increment_each_counter(store):
    store.add_challenge("x", challenge_id="A")
    store.increment_counter("A", CounterField.YES)
    store.increment_counter("A", CounterField.YES)
    store.increment_counter("A", CounterField.NO)
    store.increment_counter("A", CounterField.SKIP)
    c = store.get_challenge("A")
    assert (c.yes_count, c.no_count, c.skip_count) == (2, 1, 1)


def test_increments_from_two_handles_are_not_lost(tmp_path):
    path = str(tmp_path / "shared.db")
    first = ChallengeStore(path)
    second = ChallengeStore(path)
    first.add_challenge("x", challenge_id="A")

    for _ in range(5):
        first.increment_counter("A", CounterField.YES)
        second.increment_counter("A", CounterField.YES)

    assert first.get_challenge("A").yes_count == 10


def test_increment_unknown_challenge(store):
    with pytest.raises(ChallengeNotFound):
        store.increment_counter("nope", CounterField.YES)


def test_not_found_is_a_write_failure():
    assert issubclass(ChallengeNotFound, RemoteWriteFailure)


def test_set_retired_is_one_way(store):
    store.add_challenge("x", challenge_id="A")
    store.set_retired("A")
    store.set_retired("A")
    assert store.get_challenge("A").retired
    assert store.list_active_challenges() == []


def test_set_retired_unknown(store):
    with pytest.raises(ChallengeNotFound):
        store.set_retired("nope")


def test_active_excludes_retired_and_blank(store):
    store.add_challenge("live", challenge_id="A")
    store.add_challenge("dead", challenge_id="B", retired=True)
    store.add_challenge("   ", challenge_id="C")
    assert [c.challenge_id for c in store.list_active_challenges()] == ["A"]
    assert len(store.list_challenges()) == 3
    assert len(store.list_challenges(include_retired=False)) == 2


def test_backfills_null_counters(tmp_path):
    path = str(tmp_path / "legacy.db")
    store = ChallengeStore(path)
    with sqlite3.connect(path) as conn:
        conn.execute(
            "INSERT INTO challenges (challenge_id, text, yes_count, no_count, skip_count, retired, created_at) "
            "VALUES ('old', 'legacy', NULL, 2, NULL, NULL, '2024-01-01T00:00:00')"
        )

    assert store.backfill_missing_fields() == 3
    c = store.get_challenge("old")
    assert (c.yes_count, c.no_count, c.skip_count, c.retired) == (0, 2, 0, False)
    assert [x.challenge_id for x in store.list_active_challenges()] == ["old"]


def test_pending_queue(store):
    store.enqueue_pending("first")
    store.enqueue_pending("second")
    assert [p.text for p in store.list_pending()] == ["first", "second"]
    assert store.list_challenges() == []


def test_sqlite_errors_become_write_failures(store):
    store.add_challenge("x", challenge_id="A")
    with sqlite3.connect(store.db_path) as conn:
        conn.execute("DROP TABLE challenges")

    with pytest.raises(RemoteWriteFailure):
        store.increment_counter("A", CounterField.YES)


def test_stats(store):
    store.add_challenge("a", challenge_id="A", yes_count=2, skip_count=1)
    store.add_challenge("b", challenge_id="B", no_count=5, retired=True)
    store.enqueue_pending("c")
    stats = store.get_stats()
    assert stats == {
        "challenges": 2,
        "retired": 1,
        "active": 1,
        "reactions": 8,
        "pending_submissions": 1
    }


def test_device_flag_errors_become_write_failures(store):
    store.set_device_flag("dev", "voted_A", "true")
    assert store.get_device_flag("dev", "voted_A") == "true"
    with sqlite3.connect(store.db_path) as conn:
        conn.execute("DROP TABLE device_flags")

    with pytest.raises(RemoteWriteFailure):
        store.set_device_flag("dev", "voted_B", "true")
    with pytest.raises(RemoteWriteFailure):
        store.get_device_flag("dev", "voted_A")


def test_explicit_path_is_never_redirected(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")

    with pytest.raises(OSError):
        get_db_path(str(blocker / "nested" / "swiper.db"))
