import json

import pytest

from debate_backend.services.debug_log import PROMPT_NOT_SENT, AiDebugLog
from debate_backend.services.errors import (
    NotFoundError,
    UpstreamError,
    UpstreamErrorKind,
    ValidationError,
)
from debate_backend.services.suggestion_parser import NoIssues, SuggestionsFound
from debate_backend.services.suggestion_service import ADMIN_TEST_BLOCK_ID, SuggestionService


def _suggestion_service(service, fake_client, prompt_manager, debug_log=None):
    return SuggestionService(service, fake_client, prompt_manager, debug_log or AiDebugLog())


async def _debate_with_opening(service, text="The sky is blue"):
    debate = await service.create_debate()
    debate = await service.create_block(debate.id, None, text)
    return debate, debate.opening_statement()


@pytest.mark.asyncio
async def test_null_response_reports_no_suggestions(service, fake_client, prompt_manager):
    debate, opening = await _debate_with_opening(service)
    fake_client.queue("null")
    ai = _suggestion_service(service, fake_client, prompt_manager)

    result = await ai.check_block(debate.id, opening.id)

    assert isinstance(result, NoIssues)
    after = await service.get_debate(debate.id)
    assert len(after.blocks) == 1
    assert len(ai.debug_log) == 1


@pytest.mark.asyncio
async def test_over_limit_only_suggestion_reports_none(service, fake_client, prompt_manager):
    debate, opening = await _debate_with_opening(service)
    fake_client.queue(json.dumps([{"category": "Factual Error", "text": "x" * 301}]))
    ai = _suggestion_service(service, fake_client, prompt_manager)

    result = await ai.check_block(debate.id, opening.id)

    assert isinstance(result, NoIssues)


@pytest.mark.asyncio
async def test_suggestions_found_and_logged(service, fake_client, prompt_manager):
    debate, opening = await _debate_with_opening(service)
    fake_client.queue(json.dumps([{"category": "Missing evidence", "text": "Cite a source"}]))
    ai = _suggestion_service(service, fake_client, prompt_manager)

    result = await ai.check_block(debate.id, opening.id)

    assert isinstance(result, SuggestionsFound)
    entry = ai.debug_log.entries()[0]
    assert entry.block_id == opening.id
    assert entry.block_type == "opening"
    assert entry.input_text == "The sky is blue"
    assert "The sky is blue" in entry.prompt
    assert entry.parsed_suggestions == [{"category": "Missing evidence", "text": "Cite a source"}]
    assert entry.error is None


@pytest.mark.asyncio
async def test_prompt_uses_objection_template_for_children(service, fake_client, prompt_manager):
    debate, opening = await _debate_with_opening(service)
    debate = await service.create_block(debate.id, opening.id, "Not at sunset")
    child = debate.children_of(opening.id)[0]
    ai = _suggestion_service(service, fake_client, prompt_manager)

    await ai.check_block(debate.id, child.id)

    assert fake_client.prompts[0] == prompt_manager.render_prompt("objection", "Not at sunset")


@pytest.mark.asyncio
async def test_text_override_is_checked_instead_of_stored_text(service, fake_client, prompt_manager):
    debate, opening = await _debate_with_opening(service)
    ai = _suggestion_service(service, fake_client, prompt_manager)

    await ai.check_block(debate.id, opening.id, text="Draft wording")

    assert "Draft wording" in fake_client.prompts[0]
    assert "The sky is blue" not in fake_client.prompts[0]


@pytest.mark.asyncio
async def test_malformed_response_is_upstream_error(service, fake_client, prompt_manager):
    debate, opening = await _debate_with_opening(service)
    fake_client.queue("this is not json at all")
    ai = _suggestion_service(service, fake_client, prompt_manager)

    with pytest.raises(UpstreamError) as exc:
        await ai.check_block(debate.id, opening.id)

    assert exc.value.kind == UpstreamErrorKind.UNPARSEABLE
    entry = ai.debug_log.entries()[0]
    assert entry.raw_response == "this is not json at all"
    assert entry.error


@pytest.mark.asyncio
async def test_client_failure_logged_and_raised(service, fake_client, prompt_manager):
    debate, opening = await _debate_with_opening(service)
    fake_client.queue(UpstreamErrorKind.OVERLOADED)
    ai = _suggestion_service(service, fake_client, prompt_manager)

    with pytest.raises(UpstreamError) as exc:
        await ai.check_block(debate.id, opening.id)

    assert exc.value.kind == UpstreamErrorKind.OVERLOADED
    assert len(ai.debug_log) == 1
    assert ai.debug_log.entries()[0].error
    after = await service.get_debate(debate.id)
    assert len(after.blocks) == 1


@pytest.mark.asyncio
async def test_missing_block_is_not_found(service, fake_client, prompt_manager):
    debate, _ = await _debate_with_opening(service)
    ai = _suggestion_service(service, fake_client, prompt_manager)

    with pytest.raises(NotFoundError):
        await ai.check_block(debate.id, "missing")
    assert fake_client.prompts == []


@pytest.mark.asyncio
async def test_unknown_block_type_rejected(service, fake_client, prompt_manager):
    debate, opening = await _debate_with_opening(service)
    ai = _suggestion_service(service, fake_client, prompt_manager)

    with pytest.raises(ValidationError):
        await ai.check_block(debate.id, opening.id, block_type="rebuttal")


@pytest.mark.asyncio
async def test_admin_dry_run_logs_with_admin_block_id(service, fake_client, prompt_manager):
    fake_client.queue(json.dumps([{"category": "c", "text": "t"}]))
    ai = _suggestion_service(service, fake_client, prompt_manager)

    result, entry = await ai.test_prompt("Some argument", "opening")

    assert isinstance(result, SuggestionsFound)
    assert entry.block_id == ADMIN_TEST_BLOCK_ID
    assert entry.raw_response
    assert await service.list_debates() == []


@pytest.mark.asyncio
async def test_admin_dry_run_requires_text(service, fake_client, prompt_manager):
    ai = _suggestion_service(service, fake_client, prompt_manager)
    with pytest.raises(ValidationError):
        await ai.test_prompt("", "opening")


def test_debug_log_is_bounded_newest_first():
    log = AiDebugLog(max_entries=3)
    from debate_backend.services.debug_log import DebugLogEntry

    for i in range(5):
        log.record(DebugLogEntry(block_id=str(i), block_type="opening", input_text="t", prompt=PROMPT_NOT_SENT))

    assert [e.block_id for e in log.entries()] == ["4", "3", "2"]
    log.clear()
    assert log.entries() == []
