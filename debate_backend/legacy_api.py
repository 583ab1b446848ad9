"""
Single-debate endpoints kept for older clients.

These act on the service's current debate instead of taking a debate id.
Reading the debate or adding a block falls back to the newest debate (or a
new one); every other route needs a current debate and returns 404 without
one.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends

from debate_backend.api_errors import to_http_exception
from debate_backend.dependencies import get_debate_service
from debate_backend.schemas import (
    CreateBlockRequest,
    DebateResponse,
    UpdateBlockRequest,
    debate_to_response,
)
from debate_backend.services.debate_service import DebateService
from debate_backend.services.errors import NotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["legacy"])


def _current_id(service: DebateService) -> str:
    if service.current_debate_id is None:
        raise NotFoundError("No current debate")
    return service.current_debate_id


@router.get("/debate", response_model=DebateResponse)
async def get_current_debate(service: DebateService = Depends(get_debate_service)):
    try:
        debate = await service.current_debate()
    except Exception as e:
        raise to_http_exception(e) from e
    return debate_to_response(debate)


@router.put("/debate", response_model=DebateResponse)
async def update_current_debate(
    resolve: Optional[str] = None,
    service: DebateService = Depends(get_debate_service),
):
    """``?resolve=true|false`` sets the resolved flag; any other value just returns the debate."""
    try:
        debate_id = _current_id(service)
        if resolve in ("true", "false"):
            debate = await service.set_resolved(debate_id, resolve == "true")
        else:
            debate = await service.get_debate(debate_id)
    except Exception as e:
        raise to_http_exception(e) from e
    return debate_to_response(debate)


@router.delete("/debate", response_model=DebateResponse)
async def reset_current_debate(service: DebateService = Depends(get_debate_service)):
    try:
        debate = await service.reset_debate(_current_id(service))
    except Exception as e:
        raise to_http_exception(e) from e
    return debate_to_response(debate)


@router.post("/block", response_model=DebateResponse)
async def create_block(
    request: CreateBlockRequest,
    service: DebateService = Depends(get_debate_service),
):
    try:
        current = await service.current_debate()
        debate = await service.create_block(
            current.id, request.parent_id, request.text, category=request.category
        )
    except Exception as e:
        raise to_http_exception(e) from e
    return debate_to_response(debate)


@router.patch("/block/{block_id}", response_model=DebateResponse)
async def update_block(
    block_id: str,
    request: UpdateBlockRequest,
    service: DebateService = Depends(get_debate_service),
):
    try:
        debate = await service.update_block(
            _current_id(service), block_id, text=request.text, order=request.order
        )
    except Exception as e:
        raise to_http_exception(e) from e
    return debate_to_response(debate)


@router.delete("/block/{block_id}", response_model=DebateResponse)
async def delete_block(
    block_id: str,
    cascade: bool = False,
    service: DebateService = Depends(get_debate_service),
):
    try:
        debate = await service.delete_block(_current_id(service), block_id, cascade=cascade)
    except Exception as e:
        raise to_http_exception(e) from e
    return debate_to_response(debate)


@router.patch("/block/{block_id}/disable", response_model=DebateResponse)
async def disable_block(block_id: str, service: DebateService = Depends(get_debate_service)):
    try:
        debate = await service.disable_block(_current_id(service), block_id)
    except Exception as e:
        raise to_http_exception(e) from e
    return debate_to_response(debate)


@router.patch("/block/{block_id}/restore", response_model=DebateResponse)
async def restore_block(block_id: str, service: DebateService = Depends(get_debate_service)):
    try:
        debate = await service.restore_block(_current_id(service), block_id)
    except Exception as e:
        raise to_http_exception(e) from e
    return debate_to_response(debate)
