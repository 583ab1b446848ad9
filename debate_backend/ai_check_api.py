"""
AI check and suggestion review endpoints.

``POST /api/debate/{id}/ai-check`` asks the model for weaknesses in a block.
When it finds some, a review is opened and returned with the suggestions;
the client then confirms or rejects them one at a time through
``/api/reviews/{review_id}``.
"""

import logging

from fastapi import APIRouter, Depends

from debate_backend.api_errors import to_http_exception
from debate_backend.dependencies import get_review_registry, get_suggestion_service
from debate_backend.schemas import (
    AiCheckRequest,
    AiCheckResponse,
    ConfirmSuggestionRequest,
    ConfirmSuggestionResponse,
    ReviewResponse,
    debate_to_response,
    review_to_response,
    suggestions_to_response,
)
from debate_backend.services.suggestion_parser import SuggestionsFound
from debate_backend.services.suggestion_review import SuggestionReviewRegistry
from debate_backend.services.suggestion_service import SuggestionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["ai-check"])


@router.post("/debate/{debate_id}/ai-check", response_model=AiCheckResponse)
async def ai_check(
    debate_id: str,
    request: AiCheckRequest,
    suggestion_service: SuggestionService = Depends(get_suggestion_service),
    registry: SuggestionReviewRegistry = Depends(get_review_registry),
):
    """
    Check a block's text for weaknesses.

    Returns:
        ``suggestions`` (null when the model found nothing usable) and the
        review opened for them
    """
    logger.info(f"=== AI check for block {request.block_id} in debate {debate_id} ===")
    try:
        result = await suggestion_service.check_block(
            debate_id, request.block_id, text=request.text, block_type=request.block_type
        )
    except Exception as e:
        raise to_http_exception(e) from e

    if not isinstance(result, SuggestionsFound):
        logger.info("AI found no significant issues")
        return AiCheckResponse(suggestions=None, review=None)

    review = registry.open(debate_id, request.block_id, result.suggestions)
    logger.info(f"Opened review {review.id} with {len(result.suggestions)} suggestion(s)")
    return AiCheckResponse(
        suggestions=suggestions_to_response(result.suggestions),
        review=review_to_response(review),
    )


@router.get("/reviews/{review_id}", response_model=ReviewResponse)
async def get_review(
    review_id: str,
    registry: SuggestionReviewRegistry = Depends(get_review_registry),
):
    try:
        review = registry.get(review_id)
    except Exception as e:
        raise to_http_exception(e) from e
    return review_to_response(review)


@router.post("/reviews/{review_id}/confirm", response_model=ConfirmSuggestionResponse)
async def confirm_suggestion(
    review_id: str,
    request: ConfirmSuggestionRequest,
    registry: SuggestionReviewRegistry = Depends(get_review_registry),
):
    """Add the current suggestion (or the edited ``text``) as an objection. ``review`` is null once done."""
    try:
        debate, review = await registry.confirm(review_id, edited_text=request.text)
    except Exception as e:
        raise to_http_exception(e) from e
    return ConfirmSuggestionResponse(
        debate=debate_to_response(debate),
        review=review_to_response(review),
    )


@router.post("/reviews/{review_id}/reject")
async def reject_suggestion(
    review_id: str,
    registry: SuggestionReviewRegistry = Depends(get_review_registry),
):
    try:
        review = await registry.reject(review_id)
    except Exception as e:
        raise to_http_exception(e) from e
    return {"review": review_to_response(review)}
