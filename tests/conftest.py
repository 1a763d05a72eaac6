"""Global test fixtures: fresh store per test, reset singletons."""
import pytest

from swipe.database import ChallengeStore
from swipe.errors import RemoteWriteFailure
from swipe.vote_guard import InMemoryKeyValueStore, VoteGuard


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset module-level singletons before and after each test."""
    _do_reset()
    yield
    _do_reset()


def _do_reset():
    import swipe.manager as manager_mod
    manager_mod._swiper_manager = None
    try:
        import api as api_mod
        api_mod.rate_limit_store.clear()
        api_mod.app.dependency_overrides.clear()
    except ImportError:
        pass


@pytest.fixture
def store(tmp_path):
    return ChallengeStore(str(tmp_path / "swiper.db"))


@pytest.fixture
def guard():
    return VoteGuard(InMemoryKeyValueStore())


def _in_order(challenges, rng):
    return list(challenges)


@pytest.fixture
def keep_order():
    """Shuffle stand-in that keeps the store's order."""
    return _in_order


class FlakyStore(ChallengeStore):
    """Store whose writes can be switched off."""

    def __init__(self, db_path):
        super().__init__(db_path)
        self.fail_increments = False
        self.fail_retire = False
        self.fail_flags = False

    def set_device_flag(self, device_id, key, value):
        if self.fail_flags:
            raise RemoteWriteFailure(key, "set_flag", "network down")
        super().set_device_flag(device_id, key, value)

    def increment_counter(self, challenge_id, counter):
        if self.fail_increments:
            raise RemoteWriteFailure(challenge_id, f"increment:{counter.value}", "network down")
        super().increment_counter(challenge_id, counter)

    def set_retired(self, challenge_id):
        if self.fail_retire:
            raise RemoteWriteFailure(challenge_id, "retire", "network down")
        super().set_retired(challenge_id)


@pytest.fixture
def flaky_store(tmp_path):
    return FlakyStore(str(tmp_path / "flaky.db"))
