"""
Swiper Data Models - Challenge Swiper

Data models for the challenge voting engine.
Anonymous devices vote approve/reject on short challenges, skip a limited
number per session, and the leaderboard ranks what the crowd liked.
"""

import logging
import os
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Any

logger = logging.getLogger(__name__)


# ==================== ENUMS ====================

class VoteDirection(Enum):
    """Vote directions."""
    APPROVE = "approve"              # Swipe right / "yes"
    REJECT = "reject"                # Swipe left / "no"


class CounterField(Enum):
    """Counters that can be incremented on a challenge."""
    YES = "yes_count"
    NO = "no_count"
    SKIP = "skip_count"

    @classmethod
    def for_direction(cls, direction: VoteDirection) -> "CounterField":
        return cls.YES if direction == VoteDirection.APPROVE else cls.NO


class SessionState(Enum):
    """Deck session lifecycle."""
    LOADING = "loading"              # Created, deck not fetched yet
    ACTIVE = "active"                # Cursor points at a challenge
    EXHAUSTED = "exhausted"          # Cursor ran off the end of the deck


# ==================== CONFIG ====================

@dataclass
class SwiperConfig:
    """Configuration for the voting engine."""
    # Session
    skip_budget: int = 7             # Skips allowed per deck session

    # Scoring
    smoothing_k: float = 5.0         # Votes needed before the score trusts the approval rate

    # Retirement
    retire_min_total: int = 5        # Minimum votes+skips before a challenge can retire
    retire_ratio: float = 0.8        # no/total or skip/total at which it retires

    # Leaderboard
    show_retired_on_leaderboard: bool = False

    # Submissions
    max_submission_length: int = 500

    @classmethod
    def from_env(cls) -> "SwiperConfig":
        """Build a config from SWIPER_* environment variables."""
        config = cls()
        if os.getenv("SWIPER_SKIP_BUDGET"):
            config.skip_budget = int(os.environ["SWIPER_SKIP_BUDGET"])
        if os.getenv("SWIPER_SMOOTHING_K"):
            smoothing_k = float(os.environ["SWIPER_SMOOTHING_K"])
            if smoothing_k > 0:
                config.smoothing_k = smoothing_k
            else:
                logger.warning(
                    f"Ignoring SWIPER_SMOOTHING_K={smoothing_k}; must be positive, "
                    f"keeping {config.smoothing_k}"
                )
        if os.getenv("SWIPER_SHOW_RETIRED"):
            config.show_retired_on_leaderboard = os.environ["SWIPER_SHOW_RETIRED"].lower() in ("1", "true", "yes")
        return config


# ==================== ID GENERATORS ====================

def generate_challenge_id() -> str:
    """Generate unique challenge ID."""
    return f"chl_{uuid.uuid4().hex[:12]}"


def generate_submission_id() -> str:
    """Generate unique pending submission ID."""
    return f"sub_{uuid.uuid4().hex[:12]}"


# ==================== DATA MODELS ====================

@dataclass
class Challenge:
    """A votable challenge with its crowd counters."""
    challenge_id: str
    text: str

    # Counters
    yes_count: int = 0
    no_count: int = 0
    skip_count: int = 0

    retired: bool = False
    created_at: str = field(default_factory=lambda: datetime.utcnow().isoformat())

    @property
    def total(self) -> int:
        """Every recorded reaction: votes plus skips."""
        return self.yes_count + self.no_count + self.skip_count

    def increment(self, counter: CounterField):
        """Apply a +1 to the in-memory copy."""
        setattr(self, counter.value, getattr(self, counter.value) + 1)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Challenge":
        return cls(
            challenge_id=row["challenge_id"],
            text=row["text"],
            yes_count=row.get("yes_count") or 0,
            no_count=row.get("no_count") or 0,
            skip_count=row.get("skip_count") or 0,
            retired=bool(row.get("retired")),
            created_at=row.get("created_at") or "",
        )

    def to_dict(self) -> Dict:
        return {
            "challenge_id": self.challenge_id,
            "text": self.text,
            "yes_count": self.yes_count,
            "no_count": self.no_count,
            "skip_count": self.skip_count,
            "total": self.total,
            "retired": self.retired,
            "created_at": self.created_at
        }


@dataclass
class PendingSubmission:
    """A proposed challenge waiting for out-of-band review."""
    submission_id: str
    text: str
    created_at: str = field(default_factory=lambda: datetime.utcnow().isoformat())

    def to_dict(self) -> Dict:
        return {
            "submission_id": self.submission_id,
            "text": self.text,
            "created_at": self.created_at
        }


@dataclass(frozen=True)
class LeaderboardRow:
    """Single leaderboard row. Derived on every request, never stored."""
    rank: int
    challenge_id: str
    text: str
    yes_count: int
    no_count: int
    skip_count: int
    total: int
    approval_rate: float       # 0.0 - 1.0
    rank_score: float
    retired: bool = False

    @property
    def approval_percent(self) -> float:
        return round(self.approval_rate * 100, 1)

    def to_dict(self) -> Dict:
        return {
            "rank": self.rank,
            "challenge_id": self.challenge_id,
            "text": self.text,
            "yes_count": self.yes_count,
            "no_count": self.no_count,
            "skip_count": self.skip_count,
            "total": self.total,
            "approval_rate": self.approval_rate,
            "approval_percent": self.approval_percent,
            "rank_score": round(self.rank_score, 6),
            "retired": self.retired
        }


@dataclass
class GestureOutcome:
    """What a vote or skip did to the session."""
    challenge_id: str
    direction: Optional[VoteDirection] = None   # None for skips
    counted: bool = True       # False when the device had already voted
    retired: bool = False      # Retirement fired on this gesture
    completed: bool = False    # This gesture exhausted the deck

    def to_dict(self) -> Dict:
        return {
            "challenge_id": self.challenge_id,
            "direction": self.direction.value if self.direction else None,
            "counted": self.counted,
            "retired": self.retired,
            "completed": self.completed
        }


def trail_to_list(trail: List[VoteDirection]) -> List[str]:
    return [d.value for d in trail]
