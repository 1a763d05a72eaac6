"""
Swiper Manager - With SQLite Persistence

Core operations for the challenge swiper:
- Start / restart a device's deck session
- Cast votes and spend skips
- Queue challenge submissions
- Build the leaderboard

Sessions live in memory, keyed by device id. Counters, retirement and
per-device vote flags live in SQLite.
"""

import logging
from typing import Dict, List, Optional, Tuple, Any

from swipe.database import ChallengeStore
from swipe.errors import NoActiveChallenge, RemoteWriteFailure, SkipBudgetExhausted
from swipe.leaderboard import build_leaderboard
from swipe.models import Challenge, SwiperConfig, VoteDirection
from swipe.session import DeckSession
from swipe.submissions import SubmissionQueue
from swipe.vote_guard import SqliteKeyValueStore, VoteGuard

logger = logging.getLogger(__name__)

REMOTE_WRITE_FAILURE = "remote_write_failure"
SKIP_BUDGET_EXHAUSTED = "skip_budget_exhausted"
NO_ACTIVE_CHALLENGE = "no_active_challenge"
NO_SESSION = "no_session"


class SwiperManager:
    """
    Manages deck sessions, submissions and the leaderboard.
    Uses SQLite for persistent storage.
    """

    def __init__(self, config: SwiperConfig = None, store: ChallengeStore = None):
        self.config = config or SwiperConfig.from_env()
        self.store = store or ChallengeStore()
        self.submissions = SubmissionQueue(self.store, max_length=self.config.max_submission_length)

        self._sessions: Dict[str, DeckSession] = {}

        logger.info("Swiper Manager initialized with SQLite persistence")

    # ==================== SESSIONS ====================

    def get_session(self, device_id: str) -> Optional[DeckSession]:
        return self._sessions.get(device_id)

    def start_session(self, device_id: str, seed: Optional[int] = None) -> Dict[str, Any]:
        """Start (or restart) the deck for a device. Returns the session snapshot."""
        session = self.get_session(device_id)
        if session is None:
            guard = VoteGuard(SqliteKeyValueStore(self.store, device_id))
            session = DeckSession(self.store, guard, config=self.config)
            session.add_completion_listener(
                lambda s: logger.info(f"Device {device_id} finished a deck of {len(s.deck)} challenges")
            )
            self._sessions[device_id] = session

        session.start(seed=seed)
        return session.snapshot()

    def get_session_state(self, device_id: str) -> Optional[Dict[str, Any]]:
        session = self.get_session(device_id)
        return session.snapshot() if session else None

    # ==================== GESTURES ====================

    def cast_vote(self, device_id: str, direction: str) -> Tuple[bool, str, Optional[Dict[str, Any]]]:
        """
        Vote on the device's current challenge.

        Returns: (success, message, data)
        """
        session = self.get_session(device_id)
        if session is None:
            return False, "No session started for this device", {"error": NO_SESSION}

        try:
            direction = VoteDirection(direction)
        except ValueError:
            return False, f"Invalid direction: {direction}", {"error": "invalid_direction"}

        try:
            outcome = session.vote(direction)
        except NoActiveChallenge as e:
            return False, str(e), {"error": NO_ACTIVE_CHALLENGE, "session": session.snapshot()}
        except RemoteWriteFailure as e:
            logger.error(f"Vote by {device_id} not saved: {e}")
            return False, "Error saving vote - please try again.", {
                "error": REMOTE_WRITE_FAILURE,
                "outcome": self._outcome_dict(e),
                "session": session.snapshot()
            }

        message = "Vote recorded" if outcome.counted else "Already voted on this challenge"
        return True, message, {"outcome": outcome.to_dict(), "session": session.snapshot()}

    def skip(self, device_id: str) -> Tuple[bool, str, Optional[Dict[str, Any]]]:
        """
        Skip the device's current challenge.

        Returns: (success, message, data)
        """
        session = self.get_session(device_id)
        if session is None:
            return False, "No session started for this device", {"error": NO_SESSION}

        try:
            outcome = session.skip()
        except SkipBudgetExhausted as e:
            return False, str(e), {"error": SKIP_BUDGET_EXHAUSTED, "session": session.snapshot()}
        except NoActiveChallenge as e:
            return False, str(e), {"error": NO_ACTIVE_CHALLENGE, "session": session.snapshot()}
        except RemoteWriteFailure as e:
            logger.error(f"Skip by {device_id} not saved: {e}")
            return False, "Error saving skip - please try again.", {
                "error": REMOTE_WRITE_FAILURE,
                "outcome": self._outcome_dict(e),
                "session": session.snapshot()
            }

        return True, "Skipped", {"outcome": outcome.to_dict(), "session": session.snapshot()}

    @staticmethod
    def _outcome_dict(error: RemoteWriteFailure) -> Optional[Dict[str, Any]]:
        outcome = getattr(error, "outcome", None)
        return outcome.to_dict() if outcome else None

    # ==================== SUBMISSIONS ====================

    def submit_challenge(self, text: str) -> Tuple[bool, str]:
        """Queue a proposed challenge. Blank text is ignored."""
        try:
            queued = self.submissions.submit(text)
        except ValueError as e:
            return False, str(e)
        if queued:
            return True, "Thanks! Pending review."
        return False, "Nothing to submit"

    def get_pending_submissions(self, limit: int = 100) -> List[Dict[str, Any]]:
        return [s.to_dict() for s in self.submissions.pending(limit)]

    # ==================== CHALLENGES ====================

    def add_challenge(self, text: str) -> Challenge:
        """Put a live challenge straight into circulation."""
        return self.store.add_challenge(text.strip())

    # ==================== LEADERBOARD ====================

    def get_leaderboard(self, limit: Optional[int] = None,
                        include_retired: Optional[bool] = None) -> List[Dict[str, Any]]:
        """Ranked rows computed from the store's current counters."""
        if include_retired is None:
            include_retired = self.config.show_retired_on_leaderboard
        rows = build_leaderboard(
            self.store.list_challenges(include_retired=include_retired),
            include_retired=include_retired,
            smoothing_k=self.config.smoothing_k,
            limit=limit
        )
        return [r.to_dict() for r in rows]

    def get_stats(self) -> Dict[str, Any]:
        stats = self.store.get_stats()
        stats["sessions"] = len(self._sessions)
        return stats


# Singleton instance
_swiper_manager: Optional[SwiperManager] = None


def get_swiper_manager() -> SwiperManager:
    """Get the singleton swiper manager instance."""
    global _swiper_manager
    if _swiper_manager is None:
        _swiper_manager = SwiperManager()
    return _swiper_manager
