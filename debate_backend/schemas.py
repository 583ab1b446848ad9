"""Shared Pydantic request/response models used across the routers."""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from debate_backend.domain import Block, Debate, HistoryEntry
from debate_backend.services.debug_log import DebugLogEntry
from debate_backend.services.suggestion_parser import Suggestion
from debate_backend.services.suggestion_review import SuggestionReview


# Requests
# Text fields are optional here so that missing or empty text is reported
# by the tree rules as a 400, not as a 422 from request parsing.

class CreateBlockRequest(BaseModel):
    parent_id: Optional[str] = None
    text: Optional[str] = None
    category: Optional[str] = None


class UpdateBlockRequest(BaseModel):
    text: Optional[str] = None
    order: Optional[int] = None


class ResolvedRequest(BaseModel):
    resolved: bool


class AiCheckRequest(BaseModel):
    block_id: str
    text: Optional[str] = None
    block_type: Optional[str] = None


class ConfirmSuggestionRequest(BaseModel):
    text: Optional[str] = None


class PromptUpdateRequest(BaseModel):
    prompt: Optional[str] = None


class AdminTestAiRequest(BaseModel):
    text: Optional[str] = None
    block_type: Optional[str] = None


# Responses

class HistoryEntryResponse(BaseModel):
    text: str
    at: datetime


class BlockResponse(BaseModel):
    id: str
    parent_id: Optional[str]
    depth: int
    order: int
    static_number: str
    text: str
    history: List[HistoryEntryResponse]
    disabled: bool
    disabled_at: Optional[datetime]
    category: Optional[str]
    created_at: datetime


class DebateResponse(BaseModel):
    id: str
    resolved: bool
    created_at: datetime
    updated_at: datetime
    blocks: List[BlockResponse]


class DebatesListResponse(BaseModel):
    debates: List[DebateResponse]
    count: int


class BlockHistoryResponse(BaseModel):
    block_id: str
    history: List[HistoryEntryResponse]


class RenderedBlockResponse(BaseModel):
    block_id: str
    elements: List[Dict[str, Any]]
    html: str


class SuggestionResponse(BaseModel):
    category: str
    text: str


class ReviewResponse(BaseModel):
    id: str
    debate_id: str
    block_id: str
    current: Optional[SuggestionResponse]
    position: int
    total: int
    remaining: int


class AiCheckResponse(BaseModel):
    suggestions: Optional[List[SuggestionResponse]]
    review: Optional[ReviewResponse]


class ConfirmSuggestionResponse(BaseModel):
    debate: DebateResponse
    review: Optional[ReviewResponse]


class PromptResponse(BaseModel):
    block_type: str
    prompt: str
    is_default: bool


class DebugLogResponse(BaseModel):
    timestamp: datetime
    block_id: str
    block_type: str
    input_text: str
    prompt: str
    raw_response: str
    parsed_suggestions: Optional[List[Dict[str, Any]]]
    error: Optional[str]


class AdminTestAiResponse(BaseModel):
    suggestions: Optional[List[SuggestionResponse]]
    debug: Dict[str, Any]


# Converters

def history_to_response(entry: HistoryEntry) -> HistoryEntryResponse:
    return HistoryEntryResponse(text=entry.text, at=entry.at)


def block_to_response(block: Block) -> BlockResponse:
    return BlockResponse(
        id=block.id,
        parent_id=block.parent_id,
        depth=block.depth,
        order=block.order,
        static_number=block.static_number,
        text=block.text,
        history=[history_to_response(h) for h in block.history],
        disabled=block.disabled,
        disabled_at=block.disabled_at,
        category=block.category,
        created_at=block.created_at,
    )


def debate_to_response(debate: Debate) -> DebateResponse:
    """Blocks are listed in tree order: parents before children, siblings by order."""
    return DebateResponse(
        id=debate.id,
        resolved=debate.resolved,
        created_at=debate.created_at,
        updated_at=debate.updated_at,
        blocks=[block_to_response(b) for b in debate.ordered_blocks()],
    )


def suggestions_to_response(suggestions: Optional[List[Suggestion]]) -> Optional[List[SuggestionResponse]]:
    if not suggestions:
        return None
    return [SuggestionResponse(category=s.category, text=s.text) for s in suggestions]


def review_to_response(review: Optional[SuggestionReview]) -> Optional[ReviewResponse]:
    if review is None:
        return None
    current = review.current
    return ReviewResponse(
        id=review.id,
        debate_id=review.debate_id,
        block_id=review.block_id,
        current=SuggestionResponse(category=current.category, text=current.text) if current else None,
        position=review.position,
        total=len(review.suggestions),
        remaining=review.remaining,
    )


def debug_entry_to_response(entry: DebugLogEntry) -> DebugLogResponse:
    return DebugLogResponse(
        timestamp=entry.timestamp,
        block_id=entry.block_id,
        block_type=entry.block_type,
        input_text=entry.input_text,
        prompt=entry.prompt,
        raw_response=entry.raw_response,
        parsed_suggestions=entry.parsed_suggestions,
        error=entry.error,
    )
