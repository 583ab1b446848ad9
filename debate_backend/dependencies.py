"""FastAPI dependencies resolving the services wired onto ``app.state``."""
from fastapi import Request

from debate_backend.services.debate_service import DebateService
from debate_backend.services.debug_log import AiDebugLog
from debate_backend.services.prompt_manager import PromptManager
from debate_backend.services.suggestion_review import SuggestionReviewRegistry
from debate_backend.services.suggestion_service import SuggestionService


def get_debate_service(request: Request) -> DebateService:
    return request.app.state.debate_service


def get_suggestion_service(request: Request) -> SuggestionService:
    return request.app.state.suggestion_service


def get_review_registry(request: Request) -> SuggestionReviewRegistry:
    return request.app.state.review_registry


def get_prompt_manager(request: Request) -> PromptManager:
    return request.app.state.prompt_manager


def get_debug_log(request: Request) -> AiDebugLog:
    return request.app.state.debug_log
