"""
API endpoints for debates and their blocks.

Provides endpoints for:
- Listing, creating, selecting, resetting and deleting debates
- Marking a debate resolved
- Creating, editing, moving, deleting, disabling and restoring blocks
- Block text history and restoring an earlier text
- Rendering a block's inline markdown

Every mutating endpoint returns the whole refreshed debate.
"""

import logging

from fastapi import APIRouter, Depends

from debate_backend.api_errors import to_http_exception
from debate_backend.dependencies import get_debate_service
from debate_backend.schemas import (
    BlockHistoryResponse,
    CreateBlockRequest,
    DebateResponse,
    DebatesListResponse,
    RenderedBlockResponse,
    ResolvedRequest,
    UpdateBlockRequest,
    debate_to_response,
    history_to_response,
)
from debate_backend.services.debate_service import DebateService
from debate_backend.services.markdown import elements_to_html, parse_markdown

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["debates"])


# ---------------------------------------------------------------------------
# Debates
# ---------------------------------------------------------------------------

@router.get("/debates", response_model=DebatesListResponse)
async def list_debates(service: DebateService = Depends(get_debate_service)):
    """All debates, most recently updated first."""
    try:
        debates = await service.list_debates()
    except Exception as e:
        raise to_http_exception(e) from e
    return DebatesListResponse(
        debates=[debate_to_response(d) for d in debates],
        count=len(debates),
    )


@router.post("/debate", response_model=DebateResponse)
async def create_debate(service: DebateService = Depends(get_debate_service)):
    try:
        debate = await service.create_debate()
    except Exception as e:
        raise to_http_exception(e) from e
    logger.info(f"✅ Debate created: {debate.id}")
    return debate_to_response(debate)


@router.get("/debate/{debate_id}", response_model=DebateResponse)
async def get_debate(debate_id: str, service: DebateService = Depends(get_debate_service)):
    """Fetch a debate and make it the current one for the legacy endpoints."""
    try:
        debate = await service.select_debate(debate_id)
    except Exception as e:
        raise to_http_exception(e) from e
    return debate_to_response(debate)


@router.delete("/debate/{debate_id}")
async def delete_debate(debate_id: str, service: DebateService = Depends(get_debate_service)):
    logger.info(f"=== Deleting debate {debate_id} ===")
    try:
        await service.delete_debate(debate_id)
    except Exception as e:
        raise to_http_exception(e) from e
    return {"message": "Debate deleted successfully", "current_debate_id": service.current_debate_id}


@router.post("/debate/{debate_id}/reset", response_model=DebateResponse)
async def reset_debate(debate_id: str, service: DebateService = Depends(get_debate_service)):
    try:
        debate = await service.reset_debate(debate_id)
    except Exception as e:
        raise to_http_exception(e) from e
    return debate_to_response(debate)


@router.put("/debate/{debate_id}/resolved", response_model=DebateResponse)
async def set_resolved(
    debate_id: str,
    request: ResolvedRequest,
    service: DebateService = Depends(get_debate_service),
):
    try:
        debate = await service.set_resolved(debate_id, request.resolved)
    except Exception as e:
        raise to_http_exception(e) from e
    return debate_to_response(debate)


# ---------------------------------------------------------------------------
# Blocks
# ---------------------------------------------------------------------------

@router.post("/debate/{debate_id}/blocks", response_model=DebateResponse)
async def create_block(
    debate_id: str,
    request: CreateBlockRequest,
    service: DebateService = Depends(get_debate_service),
):
    """
    Add an opening statement (no ``parent_id``) or an objection.

    Returns:
        The debate including the new block
    """
    logger.info(f"=== Creating block in debate {debate_id} (parent: {request.parent_id}) ===")
    try:
        debate = await service.create_block(
            debate_id, request.parent_id, request.text, category=request.category
        )
    except Exception as e:
        raise to_http_exception(e) from e
    return debate_to_response(debate)


@router.patch("/debate/{debate_id}/blocks/{block_id}", response_model=DebateResponse)
async def update_block(
    debate_id: str,
    block_id: str,
    request: UpdateBlockRequest,
    service: DebateService = Depends(get_debate_service),
):
    """Edit text and/or move the block to ``order`` among its siblings."""
    try:
        debate = await service.update_block(debate_id, block_id, text=request.text, order=request.order)
    except Exception as e:
        raise to_http_exception(e) from e
    return debate_to_response(debate)


@router.delete("/debate/{debate_id}/blocks/{block_id}", response_model=DebateResponse)
async def delete_block(
    debate_id: str,
    block_id: str,
    cascade: bool = False,
    service: DebateService = Depends(get_debate_service),
):
    """
    Delete a block.

    With ``?cascade=true`` its whole subtree goes; otherwise its children
    move up to take its place.
    """
    logger.info(f"=== Deleting block {block_id} from debate {debate_id} (cascade={cascade}) ===")
    try:
        debate = await service.delete_block(debate_id, block_id, cascade=cascade)
    except Exception as e:
        raise to_http_exception(e) from e
    return debate_to_response(debate)


@router.patch("/debate/{debate_id}/blocks/{block_id}/disable", response_model=DebateResponse)
async def disable_block(
    debate_id: str,
    block_id: str,
    service: DebateService = Depends(get_debate_service),
):
    try:
        debate = await service.disable_block(debate_id, block_id)
    except Exception as e:
        raise to_http_exception(e) from e
    return debate_to_response(debate)


@router.patch("/debate/{debate_id}/blocks/{block_id}/restore", response_model=DebateResponse)
async def restore_block(
    debate_id: str,
    block_id: str,
    service: DebateService = Depends(get_debate_service),
):
    try:
        debate = await service.restore_block(debate_id, block_id)
    except Exception as e:
        raise to_http_exception(e) from e
    return debate_to_response(debate)


@router.get("/debate/{debate_id}/blocks/{block_id}/history", response_model=BlockHistoryResponse)
async def get_block_history(
    debate_id: str,
    block_id: str,
    service: DebateService = Depends(get_debate_service),
):
    try:
        history = await service.get_block_history(debate_id, block_id)
    except Exception as e:
        raise to_http_exception(e) from e
    return BlockHistoryResponse(
        block_id=block_id,
        history=[history_to_response(h) for h in history],
    )


@router.post(
    "/debate/{debate_id}/blocks/{block_id}/history/{history_index}/restore",
    response_model=DebateResponse,
)
async def restore_block_history(
    debate_id: str,
    block_id: str,
    history_index: int,
    service: DebateService = Depends(get_debate_service),
):
    """Put an earlier text back; the text it replaces joins the history."""
    try:
        debate = await service.restore_block_history(debate_id, block_id, history_index)
    except Exception as e:
        raise to_http_exception(e) from e
    return debate_to_response(debate)


@router.get("/debate/{debate_id}/blocks/{block_id}/rendered", response_model=RenderedBlockResponse)
async def render_block(
    debate_id: str,
    block_id: str,
    service: DebateService = Depends(get_debate_service),
):
    try:
        block = await service.get_block(debate_id, block_id)
    except Exception as e:
        raise to_http_exception(e) from e
    elements = parse_markdown(block.text)
    return RenderedBlockResponse(
        block_id=block.id,
        elements=[element.to_dict() for element in elements],
        html=elements_to_html(elements),
    )
