from swipe.database import ChallengeStore
from swipe.vote_guard import InMemoryKeyValueStore, SqliteKeyValueStore, VoteGuard


def test_fresh_guard_has_no_votes(guard):
    assert not guard.has_voted("chl_a")


def test_record_then_has_voted(guard):
    guard.record_vote("chl_a")
    assert guard.has_voted("chl_a")
    assert not guard.has_voted("chl_b")


def test_record_is_idempotent():
    storage = InMemoryKeyValueStore()
    guard = VoteGuard(storage)
    guard.record_vote("chl_a")
    guard.record_vote("chl_a")
    assert len(storage) == 1
    assert storage.get("voted_chl_a") == "true"


def test_sqlite_flags_survive_reopen(tmp_path):
    path = str(tmp_path / "guard.db")
    VoteGuard(SqliteKeyValueStore(ChallengeStore(path), "device-1")).record_vote("chl_a")

    reopened = ChallengeStore(path)
    assert VoteGuard(SqliteKeyValueStore(reopened, "device-1")).has_voted("chl_a")


def test_sqlite_flags_are_per_device(store):
    VoteGuard(SqliteKeyValueStore(store, "device-1")).record_vote("chl_a")
    assert not VoteGuard(SqliteKeyValueStore(store, "device-2")).has_voted("chl_a")
