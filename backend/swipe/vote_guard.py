"""
Vote Guard - Challenge Swiper

Remembers, per device, which challenges already got a counted vote so the
same device never increments a counter twice. Enforcement is client-side
only; there is no cryptographic proof behind it.
"""

import logging
from typing import Dict, Optional, Protocol

logger = logging.getLogger(__name__)

VOTED_KEY_PREFIX = "voted_"


class KeyValueStore(Protocol):
    """Minimal device-local key/value capability."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...


class InMemoryKeyValueStore:
    """Dict-backed store. Lives as long as the process."""

    def __init__(self, initial: Dict[str, str] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def __len__(self) -> int:
        return len(self._data)


class SqliteKeyValueStore:
    """Device-scoped flags persisted in the challenge database."""

    def __init__(self, store, device_id: str):
        self.store = store
        self.device_id = device_id

    def get(self, key: str) -> Optional[str]:
        return self.store.get_device_flag(self.device_id, key)

    def set(self, key: str, value: str) -> None:
        self.store.set_device_flag(self.device_id, key, value)


class VoteGuard:
    """Presence set of challenge ids this device has voted on."""

    def __init__(self, storage: KeyValueStore = None):
        self.storage = storage if storage is not None else InMemoryKeyValueStore()

    @staticmethod
    def key_for(challenge_id: str) -> str:
        return f"{VOTED_KEY_PREFIX}{challenge_id}"

    def has_voted(self, challenge_id: str) -> bool:
        return bool(self.storage.get(self.key_for(challenge_id)))

    def record_vote(self, challenge_id: str):
        """Persist the vote flag. Calling it again is a no-op."""
        if self.has_voted(challenge_id):
            return
        self.storage.set(self.key_for(challenge_id), "true")
        logger.debug(f"Recorded vote for {challenge_id}")
