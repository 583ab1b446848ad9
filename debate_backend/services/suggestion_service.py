"""
AI check: render the prompt for a block, ask the model, parse the reply.

Every attempt lands in the debug log, whether it produced suggestions,
found nothing, failed to parse, or never got a reply.
"""

import logging
from typing import Optional, Tuple, Union

from debate_backend.services.debate_service import DebateService
from debate_backend.services.debug_log import PROMPT_NOT_SENT, AiDebugLog, DebugLogEntry
from debate_backend.services.errors import UpstreamError, UpstreamErrorKind, ValidationError
from debate_backend.services.prompt_manager import PromptManager
from debate_backend.services.suggestion_parser import (
    NoIssues,
    ParseFailed,
    SuggestionResult,
    SuggestionsFound,
    UpstreamFailed,
    parse_suggestions,
)

logger = logging.getLogger(__name__)

ADMIN_TEST_BLOCK_ID = "ADMIN_TEST"


def raise_for_failure(result: SuggestionResult) -> Union[SuggestionsFound, NoIssues]:
    """Turn the failure variants into ``UpstreamError``; pass the others through."""
    if isinstance(result, ParseFailed):
        raise UpstreamError(UpstreamErrorKind.UNPARSEABLE, result.reason)
    if isinstance(result, UpstreamFailed):
        raise UpstreamError(result.kind, result.detail)
    return result


class SuggestionService:
    def __init__(
        self,
        debate_service: DebateService,
        client,
        prompts: PromptManager,
        debug_log: AiDebugLog,
    ):
        self.debate_service = debate_service
        self.client = client
        self.prompts = prompts
        self.debug_log = debug_log

    def _validate(self, text, block_type: str) -> None:
        if not isinstance(text, str) or not text.strip():
            raise ValidationError("Text is required and must be a string")
        if block_type not in self.prompts.block_types():
            allowed = " or ".join(f'"{t}"' for t in self.prompts.block_types())
            raise ValidationError(f"Block type must be {allowed}")

    async def _run(self, block_id: str, block_type: str, text: str) -> Tuple[SuggestionResult, DebugLogEntry]:
        logger.info("=== AI check: block=%s type=%s chars=%d ===", block_id, block_type, len(text))
        entry = DebugLogEntry(
            block_id=block_id,
            block_type=block_type,
            input_text=text,
            prompt=PROMPT_NOT_SENT,
        )
        try:
            entry.prompt = self.prompts.render_prompt(block_type, text)
            raw = await self.client.generate(entry.prompt)
        except UpstreamError as e:
            entry.error = e.detail or e.message
            self.debug_log.record(entry)
            return UpstreamFailed(kind=e.kind, detail=e.detail), entry

        entry.raw_response = raw
        result = parse_suggestions(raw)
        if isinstance(result, SuggestionsFound):
            entry.parsed_suggestions = [
                {"category": s.category, "text": s.text} for s in result.suggestions
            ]
        elif isinstance(result, ParseFailed):
            entry.error = result.reason
        self.debug_log.record(entry)
        logger.info("AI check for %s finished: %s", block_id, type(result).__name__)
        return result, entry

    async def check_block(
        self,
        debate_id: str,
        block_id: str,
        text: Optional[str] = None,
        block_type: Optional[str] = None,
    ) -> Union[SuggestionsFound, NoIssues]:
        """
        Run the AI check for one block.

        ``text`` and ``block_type`` default to the stored block's text and to
        opening/objection by depth. Raises ``UpstreamError`` when the model
        call fails or its reply cannot be parsed.
        """
        block = await self.debate_service.get_block(debate_id, block_id)
        text = block.text if text is None else text
        block_type = block_type or block.block_type
        self._validate(text, block_type)

        result, _ = await self._run(block_id, block_type, text)
        return raise_for_failure(result)

    async def test_prompt(self, text: str, block_type: str) -> Tuple[Union[SuggestionsFound, NoIssues], DebugLogEntry]:
        """Admin dry run of the current prompt. No debate is read or changed."""
        self._validate(text, block_type)
        result, entry = await self._run(ADMIN_TEST_BLOCK_ID, block_type, text)
        return raise_for_failure(result), entry
