"""
Deck Session - Challenge Swiper

Owns one device's pass through a shuffled deck of active challenges:
the cursor, the skip budget and the feedback trail.

States:
    LOADING -> ACTIVE (cursor in [0, N)) -> EXHAUSTED (cursor == N)

Every vote and skip is applied to the local working copy first and then
written to the store. A failed store write never rolls the cursor back;
the failure is raised after the deck has already advanced.
"""

import logging
import random
from typing import Callable, Dict, List, Optional, Any, Sequence, Tuple

from swipe.errors import NoActiveChallenge, RemoteWriteFailure, SkipBudgetExhausted
from swipe.models import (
    Challenge,
    CounterField,
    GestureOutcome,
    SessionState,
    SwiperConfig,
    VoteDirection,
    trail_to_list
)
from swipe.retirement import RetirementPolicy
from swipe.vote_guard import VoteGuard

logger = logging.getLogger(__name__)

CompletionListener = Callable[["DeckSession"], None]


def shuffle_deck(challenges: Sequence[Challenge], rng: random.Random) -> List[Challenge]:
    """Uniform shuffle of a copy of the challenge list."""
    deck = list(challenges)
    rng.shuffle(deck)
    return deck


class DeckSession:
    """
    Forward-only walk through a shuffled deck.

    The store must provide list_active_challenges(), increment_counter()
    and set_retired().
    """

    def __init__(
        self,
        store,
        vote_guard: VoteGuard,
        config: SwiperConfig = None,
        policy: RetirementPolicy = None,
        on_complete: Optional[CompletionListener] = None,
        shuffle: Callable[[Sequence[Challenge], random.Random], List[Challenge]] = shuffle_deck
    ):
        self.store = store
        self.vote_guard = vote_guard
        self.shuffle = shuffle
        self.config = config or SwiperConfig()
        self.policy = policy or RetirementPolicy(
            min_total=self.config.retire_min_total,
            ratio=self.config.retire_ratio
        )

        self.state = SessionState.LOADING
        self._deck: List[Challenge] = []
        self._cursor = 0
        self._skips_remaining = self.config.skip_budget
        self._trail: List[VoteDirection] = []
        self._completion_fired = False
        self._listeners: List[CompletionListener] = []
        if on_complete:
            self._listeners.append(on_complete)

    # ==================== READ ACCESSORS ====================

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def skips_remaining(self) -> int:
        return self._skips_remaining

    @property
    def trail(self) -> List[VoteDirection]:
        return list(self._trail)

    @property
    def deck(self) -> Tuple[Challenge, ...]:
        return tuple(self._deck)

    @property
    def is_exhausted(self) -> bool:
        return self.state == SessionState.EXHAUSTED

    @property
    def completion_fired(self) -> bool:
        return self._completion_fired

    @property
    def current_challenge(self) -> Optional[Challenge]:
        """The challenge on screen, or None when not started or exhausted."""
        if self.state != SessionState.ACTIVE:
            return None
        return self._deck[self._cursor]

    @property
    def progress(self) -> float:
        """Fraction of the deck already dealt with."""
        if not self._deck:
            return 0.0 if self.state == SessionState.LOADING else 1.0
        return self._cursor / len(self._deck)

    def add_completion_listener(self, listener: CompletionListener):
        self._listeners.append(listener)

    # ==================== TRANSITIONS ====================

    def start(self, seed: Optional[int] = None):
        """
        (Re)build the deck from the store's active challenges.

        Valid from any state. `seed` makes the shuffle reproducible; None
        draws a fresh seed.
        """
        self.state = SessionState.LOADING
        challenges = [c for c in self.store.list_active_challenges() if not c.retired]

        self._deck = list(self.shuffle(challenges, random.Random(seed)))
        self._cursor = 0
        self._skips_remaining = self.config.skip_budget
        self._trail = []
        self._completion_fired = False

        # An empty deck never passes through ACTIVE, so no completion signal
        self.state = SessionState.ACTIVE if self._deck else SessionState.EXHAUSTED
        logger.info(f"Deck session started with {len(self._deck)} challenges")

    def vote(self, direction) -> GestureOutcome:
        """
        Approve or reject the current challenge, then advance.

        A repeat vote from the same device writes nothing but still advances.
        Raises RemoteWriteFailure (with `.outcome` attached) if the store
        write failed; the session has advanced regardless.

        If the vote guard itself cannot be read or written, its
        RemoteWriteFailure propagates with no `.outcome`: the cursor, the
        trail and the working copy are all left untouched.
        """
        direction = VoteDirection(direction)
        challenge = self._require_current()

        if self.vote_guard.has_voted(challenge.challenge_id):
            logger.info(f"Challenge {challenge.challenge_id} already voted on this device; not counted")
            self._trail.append(direction)
            completed = self.advance()
            return GestureOutcome(
                challenge_id=challenge.challenge_id,
                direction=direction,
                counted=False,
                completed=completed
            )

        # Guard first, so a failed flag write never inflates the working copy
        self.vote_guard.record_vote(challenge.challenge_id)
        self._trail.append(direction)

        counter = CounterField.for_direction(direction)
        challenge.increment(counter)

        failure, retired = self._commit(challenge, counter)
        completed = self.advance()

        outcome = GestureOutcome(
            challenge_id=challenge.challenge_id,
            direction=direction,
            retired=retired,
            completed=completed
        )
        return self._finish(outcome, failure)

    def skip(self) -> GestureOutcome:
        """Spend one skip on the current challenge, then advance."""
        if self._skips_remaining <= 0:
            raise SkipBudgetExhausted(self.config.skip_budget)
        challenge = self._require_current()

        challenge.increment(CounterField.SKIP)
        self._skips_remaining -= 1

        failure, retired = self._commit(challenge, CounterField.SKIP)
        completed = self.advance()

        outcome = GestureOutcome(
            challenge_id=challenge.challenge_id,
            retired=retired,
            completed=completed
        )
        return self._finish(outcome, failure)

    def advance(self) -> bool:
        """
        Move the cursor forward by one.

        Returns True only on the step that exhausts the deck; that is also
        the only time completion listeners run.
        """
        if self.state != SessionState.ACTIVE:
            return False

        self._cursor += 1
        if self._cursor < len(self._deck):
            return False

        self.state = SessionState.EXHAUSTED
        if self._completion_fired:
            return False
        self._completion_fired = True
        logger.info(f"Deck exhausted after {self._cursor} challenges")
        for listener in self._listeners:
            listener(self)
        return True

    # ==================== INTERNALS ====================

    def _require_current(self) -> Challenge:
        challenge = self.current_challenge
        if challenge is None:
            if self.state == SessionState.LOADING:
                raise NoActiveChallenge("Session has not been started")
            raise NoActiveChallenge("Deck is exhausted")
        return challenge

    def _commit(self, challenge: Challenge, counter: CounterField) -> Tuple[Optional[RemoteWriteFailure], bool]:
        """
        Push an increment to the store and re-check retirement.

        Returns: (failure or None, retired_now)
        """
        try:
            self.store.increment_counter(challenge.challenge_id, counter)
        except RemoteWriteFailure as e:
            logger.warning(f"Could not save {counter.value} for {challenge.challenge_id}: {e}")
            return e, False

        if challenge.retired:
            return None, False
        if not self.policy.should_retire(challenge.yes_count, challenge.no_count, challenge.skip_count):
            return None, False

        challenge.retired = True
        logger.info(
            f"Retiring {challenge.challenge_id} "
            f"(yes={challenge.yes_count}, no={challenge.no_count}, skip={challenge.skip_count})"
        )
        try:
            self.store.set_retired(challenge.challenge_id)
        except RemoteWriteFailure as e:
            logger.warning(f"Could not retire {challenge.challenge_id}: {e}")
            return e, True
        return None, True

    @staticmethod
    def _finish(outcome: GestureOutcome, failure: Optional[RemoteWriteFailure]) -> GestureOutcome:
        if failure is not None:
            failure.outcome = outcome
            raise failure
        return outcome

    def snapshot(self) -> Dict[str, Any]:
        current = self.current_challenge
        return {
            "state": self.state.value,
            "cursor": self._cursor,
            "deck_size": len(self._deck),
            "current_challenge": current.to_dict() if current else None,
            "skips_remaining": self._skips_remaining,
            "progress": round(self.progress, 4),
            "trail": trail_to_list(self._trail),
            "completed": self.completion_fired
        }
