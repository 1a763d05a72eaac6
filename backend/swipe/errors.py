"""
Swiper error taxonomy.

SkipBudgetExhausted and NoActiveChallenge are policy rejections: the gesture
has no effect. RemoteWriteFailure means the store did not confirm a write;
the local session has already moved on and the user may simply retry.
"""

from typing import Optional


class SwiperError(Exception):
    """Base class for voting engine errors."""


class SkipBudgetExhausted(SwiperError):
    """Raised when skip() is called with no skips left."""

    def __init__(self, budget: int = 0):
        self.budget = budget
        super().__init__("No skips left.")


class NoActiveChallenge(SwiperError):
    """Raised when a gesture arrives while no challenge is on screen."""

    def __init__(self, message: str = "No challenge to act on"):
        super().__init__(message)


class RemoteWriteFailure(SwiperError):
    """A counter or retirement write did not reach the store."""

    def __init__(self, challenge_id: str, operation: str, reason: Optional[str] = None):
        self.challenge_id = challenge_id
        self.operation = operation
        self.reason = reason
        message = f"Write '{operation}' failed for challenge {challenge_id}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ChallengeNotFound(RemoteWriteFailure):
    """The store has no row for the challenge being written."""

    def __init__(self, challenge_id: str, operation: str = "lookup"):
        super().__init__(challenge_id, operation, "challenge not found")
