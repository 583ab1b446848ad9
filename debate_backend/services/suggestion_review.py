"""
Review sessions for AI suggestions.

A successful AI check opens a review over its suggestions. The user walks
through them in order: confirming one creates an objection under the checked
block (optionally with edited text), rejecting one skips it. A review that
runs out of suggestions is closed.
"""

import asyncio
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple

from debate_backend import config
from debate_backend.domain import Debate, new_id, utcnow
from debate_backend.services.debate_service import DebateService
from debate_backend.services.errors import NotFoundError
from debate_backend.services.suggestion_parser import Suggestion

logger = logging.getLogger(__name__)


@dataclass
class SuggestionReview:
    debate_id: str
    block_id: str
    suggestions: List[Suggestion]
    id: str = field(default_factory=new_id)
    position: int = 0
    confirmed: int = 0
    rejected: int = 0
    created_at: datetime = field(default_factory=utcnow)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    @property
    def current(self) -> Optional[Suggestion]:
        if self.position < len(self.suggestions):
            return self.suggestions[self.position]
        return None

    @property
    def finished(self) -> bool:
        return self.position >= len(self.suggestions)

    @property
    def remaining(self) -> int:
        return max(len(self.suggestions) - self.position, 0)


class SuggestionReviewRegistry:
    """Open reviews, oldest evicted first once ``max_open`` is reached."""

    def __init__(self, debate_service: DebateService, max_open: Optional[int] = None):
        self.debate_service = debate_service
        self.max_open = max_open or config.MAX_OPEN_REVIEWS
        self._reviews: "OrderedDict[str, SuggestionReview]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._reviews)

    def open(self, debate_id: str, block_id: str, suggestions: List[Suggestion]) -> SuggestionReview:
        review = SuggestionReview(debate_id=debate_id, block_id=block_id, suggestions=list(suggestions))
        self._reviews[review.id] = review
        while len(self._reviews) > self.max_open:
            evicted_id, _ = self._reviews.popitem(last=False)
            logger.info("Evicted review %s", evicted_id)
        return review

    def get(self, review_id: str) -> SuggestionReview:
        review = self._reviews.get(review_id)
        if review is None:
            raise NotFoundError(f"Review {review_id} not found")
        return review

    def _advance(self, review: SuggestionReview) -> Optional[SuggestionReview]:
        review.position += 1
        if review.finished:
            self._reviews.pop(review.id, None)
            logger.info(
                "Review %s finished: %d confirmed, %d rejected",
                review.id, review.confirmed, review.rejected,
            )
            return None
        return review

    async def confirm(
        self,
        review_id: str,
        edited_text: Optional[str] = None,
    ) -> Tuple[Debate, Optional[SuggestionReview]]:
        """
        Create an objection from the current suggestion, then move on.

        If block creation fails the review stays on the same suggestion.
        Only this review is held while the block is created.
        """
        review = self.get(review_id)
        async with review.lock:
            # Re-check: the review may have finished or been evicted while waiting.
            review = self.get(review_id)
            suggestion = review.current
            text = edited_text if edited_text is not None else suggestion.text
            debate = await self.debate_service.create_block(
                review.debate_id,
                review.block_id,
                text,
                category=suggestion.category,
            )
            review.confirmed += 1
            return debate, self._advance(review)

    async def reject(self, review_id: str) -> Optional[SuggestionReview]:
        review = self.get(review_id)
        async with review.lock:
            review = self.get(review_id)
            review.rejected += 1
            return self._advance(review)
