"""Services for the debate tree backend."""

from .debate_service import DebateService
from .prompt_manager import PromptManager

__all__ = [
    'DebateService',
    'PromptManager',
]
