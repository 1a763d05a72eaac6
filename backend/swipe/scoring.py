"""
Scoring Engine - Challenge Swiper

Turns raw counters into an approval rate and a confidence-weighted rank score.

    approval_rate = yes / total                       (0 when total == 0)
    rank_score    = approval_rate * (1 - e^(-total / k))

The damping factor starts at 0 and approaches 1 as votes pile up, so a
challenge with a single "yes" cannot outrank one with 200 votes at 90%.
"""

import math
from typing import Tuple

DEFAULT_SMOOTHING_K = 5.0


def approval_rate(yes_count: int, no_count: int, skip_count: int) -> float:
    """Fraction of all reactions that were approvals."""
    total = yes_count + no_count + skip_count
    if total == 0:
        return 0.0
    return yes_count / total


def confidence_factor(total: int, smoothing_k: float = DEFAULT_SMOOTHING_K) -> float:
    """1 - e^(-total/k), in [0, 1)."""
    return 1 - math.exp(-total / smoothing_k)


def rank_score(yes_count: int, no_count: int, skip_count: int,
               smoothing_k: float = DEFAULT_SMOOTHING_K) -> float:
    """Approval rate damped by sample size."""
    total = yes_count + no_count + skip_count
    return approval_rate(yes_count, no_count, skip_count) * confidence_factor(total, smoothing_k)


class ScoringEngine:
    """Scores challenges with a fixed smoothing constant."""

    def __init__(self, smoothing_k: float = DEFAULT_SMOOTHING_K):
        if smoothing_k <= 0:
            raise ValueError("smoothing_k must be positive")
        self.smoothing_k = smoothing_k

    def score(self, yes_count: int, no_count: int, skip_count: int) -> Tuple[float, float]:
        """
        Score a set of counters.

        Returns: (approval_rate, rank_score)
        """
        rate = approval_rate(yes_count, no_count, skip_count)
        total = yes_count + no_count + skip_count
        return rate, rate * confidence_factor(total, self.smoothing_k)
