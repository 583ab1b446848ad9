"""
Debate persistence.

``DebateStore`` is the async interface the lifecycle manager talks to. Two
implementations ship: an in-memory store for tests and throwaway runs, and a
SQLAlchemy store writing the ``debates``, ``debate_blocks`` and
``debate_block_history`` tables.

Stores hand out copies. A caller mutating a loaded ``Debate`` changes nothing
until it calls ``save_debate``.
"""

import copy
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from debate_backend.db_session import build_session_factory
from debate_backend.domain import Block, Debate, HistoryEntry, new_id
from debate_backend.models import (
    Base,
    DebateRecord,
    DebateBlockRecord,
    DebateBlockHistoryRecord,
)

logger = logging.getLogger(__name__)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite drops tzinfo on the way back; everything stored is UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class DebateStore:
    """Async persistence interface for whole debates."""

    async def init_schema(self) -> None:
        pass

    async def list_debates(self) -> List[Debate]:
        """All debates, most recently updated first."""
        raise NotImplementedError

    async def get_debate(self, debate_id: str) -> Optional[Debate]:
        raise NotImplementedError

    async def save_debate(self, debate: Debate) -> None:
        raise NotImplementedError

    async def delete_debate(self, debate_id: str) -> bool:
        """Remove a debate and everything it owns. Returns False if it was absent."""
        raise NotImplementedError

    async def close(self) -> None:
        pass


class InMemoryDebateStore(DebateStore):
    def __init__(self):
        self._debates: Dict[str, Debate] = {}

    async def list_debates(self) -> List[Debate]:
        debates = [copy.deepcopy(d) for d in self._debates.values()]
        debates.sort(key=lambda d: d.updated_at, reverse=True)
        return debates

    async def get_debate(self, debate_id: str) -> Optional[Debate]:
        debate = self._debates.get(debate_id)
        return copy.deepcopy(debate) if debate is not None else None

    async def save_debate(self, debate: Debate) -> None:
        self._debates[debate.id] = copy.deepcopy(debate)

    async def delete_debate(self, debate_id: str) -> bool:
        return self._debates.pop(debate_id, None) is not None


class SqlDebateStore(DebateStore):
    """
    SQLAlchemy-backed store.

    ``save_debate`` diffs the loaded tree against the stored rows: new blocks
    are inserted, existing ones updated, missing ones deleted with their
    history. History rows are append-only, only entries past the stored count
    are written.
    """

    def __init__(self, engine: AsyncEngine, session_factory: Optional[async_sessionmaker] = None):
        self.engine = engine
        self.session_factory = session_factory or build_session_factory(engine)

    async def init_schema(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Debate tables ready")

    async def close(self) -> None:
        await self.engine.dispose()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_debates(self) -> List[Debate]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(DebateRecord).order_by(DebateRecord.updated_at.desc())
            )
            records = result.scalars().all()
            debates = []
            for record in records:
                debates.append(await self._load_tree(session, record))
        return debates

    async def get_debate(self, debate_id: str) -> Optional[Debate]:
        async with self.session_factory() as session:
            record = await session.get(DebateRecord, debate_id)
            if record is None:
                return None
            return await self._load_tree(session, record)

    async def _load_tree(self, session, record: DebateRecord) -> Debate:
        block_rows = (
            await session.execute(
                select(DebateBlockRecord)
                .where(DebateBlockRecord.debate_id == record.id)
                .order_by(DebateBlockRecord.created_at, DebateBlockRecord.order_index)
            )
        ).scalars().all()

        history: Dict[str, List[HistoryEntry]] = {}
        block_ids = [row.id for row in block_rows]
        if block_ids:
            history_rows = (
                await session.execute(
                    select(DebateBlockHistoryRecord)
                    .where(DebateBlockHistoryRecord.block_id.in_(block_ids))
                    .order_by(DebateBlockHistoryRecord.block_id, DebateBlockHistoryRecord.position)
                )
            ).scalars().all()
            for row in history_rows:
                history.setdefault(row.block_id, []).append(
                    HistoryEntry(text=row.text, at=_aware(row.created_at))
                )

        blocks = {}
        for row in block_rows:
            blocks[row.id] = Block(
                id=row.id,
                parent_id=row.parent_id,
                depth=row.depth,
                order=row.order_index,
                static_number=row.static_number,
                text=row.text,
                history=history.get(row.id, []),
                disabled=bool(row.disabled),
                disabled_at=_aware(row.disabled_at),
                category=row.category,
                last_child_number=row.last_child_number or 0,
                created_at=_aware(row.created_at),
            )

        return Debate(
            id=record.id,
            resolved=bool(record.resolved),
            created_at=_aware(record.created_at),
            updated_at=_aware(record.updated_at),
            blocks=blocks,
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def save_debate(self, debate: Debate) -> None:
        async with self.session_factory() as session:
            async with session.begin():
                record = await session.get(DebateRecord, debate.id)
                if record is None:
                    record = DebateRecord(id=debate.id, created_at=debate.created_at)
                    session.add(record)
                record.resolved = debate.resolved
                record.updated_at = debate.updated_at

                stored = {
                    row.id: row
                    for row in (
                        await session.execute(
                            select(DebateBlockRecord).where(DebateBlockRecord.debate_id == debate.id)
                        )
                    ).scalars().all()
                }

                removed = [block_id for block_id in stored if block_id not in debate.blocks]
                if removed:
                    await session.execute(
                        delete(DebateBlockHistoryRecord).where(DebateBlockHistoryRecord.block_id.in_(removed))
                    )
                    await session.execute(
                        delete(DebateBlockRecord).where(DebateBlockRecord.id.in_(removed))
                    )

                history_counts: Dict[str, int] = {}
                if stored:
                    rows = await session.execute(
                        select(DebateBlockHistoryRecord.block_id, func.count(DebateBlockHistoryRecord.id))
                        .where(DebateBlockHistoryRecord.block_id.in_(list(stored)))
                        .group_by(DebateBlockHistoryRecord.block_id)
                    )
                    history_counts = {block_id: count for block_id, count in rows.all()}

                for block in debate.blocks.values():
                    row = stored.get(block.id)
                    if row is None:
                        row = DebateBlockRecord(id=block.id, debate_id=debate.id, created_at=block.created_at)
                        session.add(row)
                    row.parent_id = block.parent_id
                    row.depth = block.depth
                    row.order_index = block.order
                    row.static_number = block.static_number
                    row.last_child_number = block.last_child_number
                    row.text = block.text
                    row.category = block.category
                    row.disabled = block.disabled
                    row.disabled_at = block.disabled_at
                    row.updated_at = debate.updated_at

                    already = history_counts.get(block.id, 0)
                    for position, entry in enumerate(block.history[already:], start=already):
                        session.add(DebateBlockHistoryRecord(
                            id=new_id(),
                            block_id=block.id,
                            position=position,
                            text=entry.text,
                            created_at=entry.at,
                        ))

        logger.debug("Saved debate %s (%d blocks)", debate.id, len(debate.blocks))

    async def delete_debate(self, debate_id: str) -> bool:
        async with self.session_factory() as session:
            async with session.begin():
                record = await session.get(DebateRecord, debate_id)
                if record is None:
                    return False
                block_ids = select(DebateBlockRecord.id).where(DebateBlockRecord.debate_id == debate_id)
                await session.execute(
                    delete(DebateBlockHistoryRecord).where(DebateBlockHistoryRecord.block_id.in_(block_ids))
                )
                await session.execute(
                    delete(DebateBlockRecord).where(DebateBlockRecord.debate_id == debate_id)
                )
                await session.delete(record)
        return True
