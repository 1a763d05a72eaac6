"""
Challenge Swiper - voting and ranking engine

Devices swipe approve/reject on short challenges, skip a few per session,
and a confidence-weighted leaderboard ranks the results.

SQLite persistence for counters, retirement and device vote flags.
"""

from swipe.models import (
    Challenge,
    CounterField,
    GestureOutcome,
    LeaderboardRow,
    PendingSubmission,
    SessionState,
    SwiperConfig,
    VoteDirection,
    generate_challenge_id,
    generate_submission_id
)

from swipe.errors import (
    SwiperError,
    SkipBudgetExhausted,
    NoActiveChallenge,
    RemoteWriteFailure,
    ChallengeNotFound
)

from swipe.scoring import ScoringEngine, approval_rate, rank_score
from swipe.retirement import RetirementPolicy, should_retire
from swipe.vote_guard import VoteGuard, KeyValueStore, InMemoryKeyValueStore, SqliteKeyValueStore
from swipe.session import DeckSession, shuffle_deck
from swipe.submissions import SubmissionQueue
from swipe.leaderboard import build_leaderboard
from swipe.database import ChallengeStore
from swipe.manager import SwiperManager, get_swiper_manager

__all__ = [
    # Models
    "Challenge",
    "CounterField",
    "GestureOutcome",
    "LeaderboardRow",
    "PendingSubmission",
    "SessionState",
    "SwiperConfig",
    "VoteDirection",

    # Errors
    "SwiperError",
    "SkipBudgetExhausted",
    "NoActiveChallenge",
    "RemoteWriteFailure",
    "ChallengeNotFound",

    # Utilities
    "generate_challenge_id",
    "generate_submission_id",

    # Engine
    "ScoringEngine",
    "approval_rate",
    "rank_score",
    "RetirementPolicy",
    "should_retire",
    "VoteGuard",
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "SqliteKeyValueStore",
    "DeckSession",
    "shuffle_deck",
    "SubmissionQueue",
    "build_leaderboard",

    # Storage
    "ChallengeStore",

    # Manager
    "SwiperManager",
    "get_swiper_manager"
]
