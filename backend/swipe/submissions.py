"""
Submission Queue - Challenge Swiper

Takes free-text challenge proposals and parks them in the pending bucket.
Nothing in here is ever dealt into a deck or ranked until someone promotes
it by hand.
"""

import logging
from typing import List

from swipe.models import PendingSubmission

logger = logging.getLogger(__name__)


class SubmissionQueue:
    """Front door for user-proposed challenges."""

    def __init__(self, store, max_length: int = 500):
        self.store = store
        self.max_length = max_length

    def submit(self, text: str) -> bool:
        """
        Queue a proposal.

        Empty or whitespace-only text is dropped silently.
        Returns True when something was queued.
        """
        cleaned = (text or "").strip()
        if not cleaned:
            logger.debug("Ignoring empty submission")
            return False
        if len(cleaned) > self.max_length:
            raise ValueError(f"Submission too long (max {self.max_length} chars)")

        submission = self.store.enqueue_pending(cleaned)
        logger.info(f"Submission {submission.submission_id} queued for review")
        return True

    def pending(self, limit: int = 100) -> List[PendingSubmission]:
        return self.store.list_pending(limit)
