"""Admin endpoints: AI-check prompts, the debug log, and a dry-run check."""
import logging
from typing import List

from fastapi import APIRouter, Depends

from debate_backend.api_errors import to_http_exception
from debate_backend.dependencies import get_debug_log, get_prompt_manager, get_suggestion_service
from debate_backend.schemas import (
    AdminTestAiRequest,
    AdminTestAiResponse,
    DebugLogResponse,
    PromptResponse,
    PromptUpdateRequest,
    debug_entry_to_response,
    suggestions_to_response,
)
from debate_backend.services.debug_log import AiDebugLog
from debate_backend.services.prompt_manager import PromptManager
from debate_backend.services.suggestion_parser import SuggestionsFound
from debate_backend.services.suggestion_service import SuggestionService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/admin", tags=["admin"])


def _prompt_response(pm: PromptManager, block_type: str) -> PromptResponse:
    return PromptResponse(
        block_type=block_type,
        prompt=pm.get_prompt(block_type),
        is_default=not pm.is_overridden(block_type),
    )


@router.get("/prompts")
async def list_prompts(pm: PromptManager = Depends(get_prompt_manager)):
    """
    List the prompt for every block type

    Returns list of prompts and count
    """
    try:
        prompts = pm.list_prompts()
    except Exception as e:
        raise to_http_exception(e) from e
    return {"prompts": prompts, "count": len(prompts)}


# Registered before /prompts/{block_type} so "reset" is not taken as a block type.
@router.post("/prompts/reset")
async def reset_all_prompts(pm: PromptManager = Depends(get_prompt_manager)):
    try:
        pm.reset_all()
        prompts = pm.list_prompts()
    except Exception as e:
        raise to_http_exception(e) from e
    logger.info("All prompts reset to defaults")
    return {"prompts": prompts, "count": len(prompts)}


@router.get("/prompts/{block_type}", response_model=PromptResponse)
async def get_prompt(block_type: str, pm: PromptManager = Depends(get_prompt_manager)):
    try:
        return _prompt_response(pm, block_type)
    except Exception as e:
        raise to_http_exception(e) from e


@router.post("/prompts/{block_type}", response_model=PromptResponse)
async def save_prompt(
    block_type: str,
    request: PromptUpdateRequest,
    pm: PromptManager = Depends(get_prompt_manager),
):
    """
    Replace the prompt for a block type

    Args:
        block_type: "opening" or "objection"
        request: New template; must contain ${text}

    Returns:
        The stored prompt
    """
    try:
        pm.save_prompt(block_type, request.prompt)
        return _prompt_response(pm, block_type)
    except Exception as e:
        raise to_http_exception(e) from e


@router.post("/prompts/{block_type}/reset", response_model=PromptResponse)
async def reset_prompt(block_type: str, pm: PromptManager = Depends(get_prompt_manager)):
    try:
        pm.reset_prompt(block_type)
        return _prompt_response(pm, block_type)
    except Exception as e:
        raise to_http_exception(e) from e


@router.get("/debug-logs", response_model=List[DebugLogResponse])
async def get_debug_logs(debug_log: AiDebugLog = Depends(get_debug_log)):
    """Recent AI-check attempts, newest first."""
    return [debug_entry_to_response(entry) for entry in debug_log.entries()]


@router.delete("/debug-logs")
async def clear_debug_logs(debug_log: AiDebugLog = Depends(get_debug_log)):
    debug_log.clear()
    return {"message": "Debug logs cleared"}


@router.post("/test-ai", response_model=AdminTestAiResponse)
async def test_ai(
    request: AdminTestAiRequest,
    suggestion_service: SuggestionService = Depends(get_suggestion_service),
):
    """Run the current prompt against arbitrary text without touching any debate."""
    logger.info(f"=== Admin AI test ({request.block_type}) ===")
    try:
        result, entry = await suggestion_service.test_prompt(request.text, request.block_type)
    except Exception as e:
        raise to_http_exception(e) from e

    suggestions = result.suggestions if isinstance(result, SuggestionsFound) else None
    return AdminTestAiResponse(
        suggestions=suggestions_to_response(suggestions),
        debug={
            "prompt": entry.prompt,
            "raw_response": entry.raw_response,
            "timestamp": entry.timestamp.isoformat(),
        },
    )
