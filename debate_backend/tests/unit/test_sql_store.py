"""
SqlDebateStore against in-memory SQLite (aiosqlite).
"""

import pytest

from debate_backend.db_session import build_engine, normalize_database_url
from debate_backend.domain import Debate
from debate_backend.services import tree_engine
from debate_backend.services.debate_service import DebateService
from debate_backend.services.debate_store import SqlDebateStore


async def _store():
    store = SqlDebateStore(build_engine("sqlite+aiosqlite:///:memory:"))
    await store.init_schema()
    return store


def test_normalize_database_url():
    assert normalize_database_url("postgresql://u:p@h/db") == "postgresql+asyncpg://u:p@h/db"
    assert normalize_database_url("postgres://u:p@h/db") == "postgresql+asyncpg://u:p@h/db"
    assert normalize_database_url("sqlite:///./x.db") == "sqlite+aiosqlite:///./x.db"
    assert normalize_database_url("sqlite+aiosqlite:///./x.db") == "sqlite+aiosqlite:///./x.db"


@pytest.mark.asyncio
async def test_round_trip_preserves_tree():
    store = await _store()
    try:
        debate = Debate()
        opening = tree_engine.create_block(debate, None, "root")
        child = tree_engine.create_block(debate, opening.id, "child", category="Missing evidence")
        tree_engine.update_block_text(debate, child.id, "child v2")
        tree_engine.disable_block(debate, child.id)
        await store.save_debate(debate)

        loaded = await store.get_debate(debate.id)

        assert loaded is not None
        assert set(loaded.blocks) == {opening.id, child.id}
        loaded_child = loaded.blocks[child.id]
        assert loaded_child.parent_id == opening.id
        assert loaded_child.static_number == "1.1"
        assert loaded_child.category == "Missing evidence"
        assert loaded_child.text == "child v2"
        assert [h.text for h in loaded_child.history] == ["child"]
        assert loaded_child.disabled is True
        assert loaded_child.disabled_at.tzinfo is not None
        assert loaded.updated_at.tzinfo is not None
        assert loaded.children_of(opening.id)[0].id == child.id
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_history_is_appended_not_duplicated():
    store = await _store()
    try:
        debate = Debate()
        opening = tree_engine.create_block(debate, None, "v1")
        await store.save_debate(debate)

        loaded = await store.get_debate(debate.id)
        tree_engine.update_block_text(loaded, opening.id, "v2")
        await store.save_debate(loaded)
        loaded = await store.get_debate(debate.id)
        tree_engine.update_block_text(loaded, opening.id, "v3")
        await store.save_debate(loaded)

        final = await store.get_debate(debate.id)
        assert [h.text for h in final.blocks[opening.id].history] == ["v1", "v2"]
        assert final.blocks[opening.id].text == "v3"
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_removed_blocks_are_deleted():
    store = await _store()
    try:
        debate = Debate()
        opening = tree_engine.create_block(debate, None, "root")
        child = tree_engine.create_block(debate, opening.id, "child")
        tree_engine.create_block(debate, child.id, "grandchild")
        await store.save_debate(debate)

        loaded = await store.get_debate(debate.id)
        tree_engine.delete_block(loaded, child.id, cascade=True)
        await store.save_debate(loaded)

        final = await store.get_debate(debate.id)
        assert set(final.blocks) == {opening.id}
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_static_numbers_not_reused_across_round_trip():
    store = await _store()
    try:
        service = DebateService(store)
        debate = await service.create_debate()
        debate = await service.create_block(debate.id, None, "root")
        root_id = debate.opening_statement().id
        await service.create_block(debate.id, root_id, "a")
        debate = await service.create_block(debate.id, root_id, "b")
        b_id = [b.id for b in debate.children_of(root_id) if b.text == "b"][0]
        await service.delete_block(debate.id, b_id, cascade=True)

        debate = await service.create_block(debate.id, root_id, "c")

        numbers = sorted(b.static_number for b in debate.children_of(root_id))
        assert numbers == ["1.1", "1.3"]
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_list_and_delete():
    store = await _store()
    try:
        older = Debate()
        newer = Debate()
        tree_engine.create_block(newer, None, "root")
        await store.save_debate(older)
        await store.save_debate(newer)

        listed = await store.list_debates()
        assert [d.id for d in listed] == [newer.id, older.id]
        assert len(listed[0].blocks) == 1

        assert await store.delete_debate(newer.id) is True
        assert await store.delete_debate(newer.id) is False
        assert await store.get_debate(newer.id) is None
        assert [d.id for d in await store.list_debates()] == [older.id]
    finally:
        await store.close()
