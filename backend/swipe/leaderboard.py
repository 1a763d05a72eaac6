"""
Leaderboard read model.

A pure projection from challenges to ranked rows. Rows are sorted by rank
score, highest first; equal scores fall back to ascending challenge id so
the order never depends on how the store happened to return rows.
"""

from typing import Iterable, List, Optional

from swipe.models import Challenge, LeaderboardRow
from swipe.scoring import DEFAULT_SMOOTHING_K, ScoringEngine


def build_leaderboard(
    challenges: Iterable[Challenge],
    include_retired: bool = False,
    smoothing_k: float = DEFAULT_SMOOTHING_K,
    limit: Optional[int] = None
) -> List[LeaderboardRow]:
    """Rank challenges by confidence-weighted approval."""
    engine = ScoringEngine(smoothing_k)

    scored = []
    for c in challenges:
        if c.retired and not include_retired:
            continue
        rate, score = engine.score(c.yes_count, c.no_count, c.skip_count)
        scored.append((c, rate, score))

    scored.sort(key=lambda item: (-item[2], item[0].challenge_id))
    if limit is not None:
        scored = scored[:limit]

    return [
        LeaderboardRow(
            rank=i + 1,
            challenge_id=c.challenge_id,
            text=c.text,
            yes_count=c.yes_count,
            no_count=c.no_count,
            skip_count=c.skip_count,
            total=c.total,
            approval_rate=rate,
            rank_score=score,
            retired=c.retired
        )
        for i, (c, rate, score) in enumerate(scored)
    ]
