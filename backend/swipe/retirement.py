"""
Retirement Policy - Challenge Swiper

Decides when a challenge has collected enough negative or confused signal
to be pulled from future decks for good.
"""

from dataclasses import dataclass


@dataclass
class RetirementPolicy:
    """Volume-qualified retirement rule."""
    min_total: int = 5          # Never retire on fewer reactions than this
    ratio: float = 0.8          # Share of no votes (or skips) that retires

    def should_retire(self, yes_count: int, no_count: int, skip_count: int) -> bool:
        """
        True when total >= min_total and either the reject share or the
        skip share reaches the ratio.
        """
        total = yes_count + no_count + skip_count
        if total < self.min_total or total == 0:
            return False
        return no_count / total >= self.ratio or skip_count / total >= self.ratio


_default_policy = RetirementPolicy()


def should_retire(yes_count: int, no_count: int, skip_count: int) -> bool:
    """Evaluate the default policy (5 reactions, 80%)."""
    return _default_policy.should_retire(yes_count, no_count, skip_count)
