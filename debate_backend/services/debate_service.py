"""
Debate lifecycle manager.

Owns the store, the per-debate locks and the "current debate" pointer used
by the single-debate legacy routes. Every block operation follows the same
path: lock, load, apply a tree operation to the loaded copy, save, return the
refreshed debate. An operation that raises is never saved.
"""

import asyncio
import logging
from collections import defaultdict
from typing import Callable, Dict, List, Optional, TypeVar

from debate_backend.domain import Block, Debate, HistoryEntry
from debate_backend.services import tree_engine
from debate_backend.services.debate_store import DebateStore
from debate_backend.services.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DebateService:
    def __init__(self, store: DebateStore):
        self.store = store
        self.current_debate_id: Optional[str] = None
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._pointer_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _load(self, debate_id: str) -> Debate:
        debate = await self.store.get_debate(debate_id)
        if debate is None:
            raise NotFoundError(f"Debate {debate_id} not found")
        return debate

    async def _mutate(self, debate_id: str, operation: Callable[[Debate], T]):
        lock = self._locks[debate_id]
        async with lock:
            try:
                debate = await self._load(debate_id)
            except NotFoundError:
                # Unknown ids must not leave a lock behind.
                if self._locks.get(debate_id) is lock:
                    del self._locks[debate_id]
                raise
            result = operation(debate)
            await self.store.save_debate(debate)
            return debate, result

    # ------------------------------------------------------------------
    # Debates
    # ------------------------------------------------------------------

    async def list_debates(self) -> List[Debate]:
        debates = await self.store.list_debates()
        debates.sort(key=lambda d: d.updated_at, reverse=True)
        return debates

    async def create_debate(self) -> Debate:
        debate = Debate()
        await self.store.save_debate(debate)
        self.current_debate_id = debate.id
        logger.info("Created debate %s", debate.id)
        return debate

    async def get_debate(self, debate_id: str) -> Debate:
        return await self._load(debate_id)

    async def select_debate(self, debate_id: str) -> Debate:
        """Fetch a debate and make it the current one."""
        debate = await self._load(debate_id)
        self.current_debate_id = debate.id
        return debate

    async def reset_debate(self, debate_id: str) -> Debate:
        def reset(debate: Debate) -> None:
            debate.clear()
            debate.resolved = False
            debate.touch()

        debate, _ = await self._mutate(debate_id, reset)
        self.current_debate_id = debate.id
        logger.info("Reset debate %s", debate_id)
        return debate

    async def delete_debate(self, debate_id: str) -> Optional[Debate]:
        """
        Delete a debate.

        When the deleted debate was current, the most recently updated
        remaining debate becomes current, or a fresh one is created. Returns
        the new current debate in that case, otherwise None.
        """
        async with self._pointer_lock:
            async with self._locks[debate_id]:
                deleted = await self.store.delete_debate(debate_id)
            self._locks.pop(debate_id, None)
            if not deleted:
                raise NotFoundError(f"Debate {debate_id} not found")
            logger.info("Deleted debate %s", debate_id)

            if self.current_debate_id != debate_id:
                return None
            self.current_debate_id = None
            remaining = await self.list_debates()
            if remaining:
                self.current_debate_id = remaining[0].id
                return remaining[0]
            return await self.create_debate()

    async def set_resolved(self, debate_id: str, resolved: bool) -> Debate:
        if not isinstance(resolved, bool):
            raise ValidationError("Resolved must be a boolean")

        def apply(debate: Debate) -> None:
            debate.resolved = resolved
            debate.touch()

        debate, _ = await self._mutate(debate_id, apply)
        return debate

    async def current_debate(self) -> Debate:
        """The current debate, falling back to the newest one or a new one."""
        async with self._pointer_lock:
            if self.current_debate_id is not None:
                debate = await self.store.get_debate(self.current_debate_id)
                if debate is not None:
                    return debate
                self.current_debate_id = None

            debates = await self.list_debates()
            if debates:
                self.current_debate_id = debates[0].id
                return debates[0]
            return await self.create_debate()

    # ------------------------------------------------------------------
    # Blocks
    # ------------------------------------------------------------------

    async def create_block(
        self,
        debate_id: str,
        parent_id: Optional[str],
        text: str,
        category: Optional[str] = None,
    ) -> Debate:
        debate, block = await self._mutate(
            debate_id,
            lambda d: tree_engine.create_block(d, parent_id, text, category=category),
        )
        logger.info("Debate %s: added block %s", debate_id, block.static_number)
        return debate

    async def update_block(
        self,
        debate_id: str,
        block_id: str,
        text: Optional[str] = None,
        order: Optional[int] = None,
    ) -> Debate:
        """Edit a block's text, move it among its siblings, or both."""
        if text is None and order is None:
            raise ValidationError("Nothing to update: provide text or order")

        def apply(debate: Debate) -> None:
            tree_engine.require_block(debate, block_id)
            if text is not None:
                tree_engine.update_block_text(debate, block_id, text)
            if order is not None:
                tree_engine.reorder_block(debate, block_id, order)

        debate, _ = await self._mutate(debate_id, apply)
        return debate

    async def get_block_history(self, debate_id: str, block_id: str) -> List[HistoryEntry]:
        debate = await self._load(debate_id)
        return list(tree_engine.require_block(debate, block_id).history)

    async def restore_block_history(self, debate_id: str, block_id: str, history_index: int) -> Debate:
        debate, _ = await self._mutate(
            debate_id,
            lambda d: tree_engine.restore_block_text(d, block_id, history_index),
        )
        return debate

    async def delete_block(self, debate_id: str, block_id: str, cascade: bool = False) -> Debate:
        debate, removed = await self._mutate(
            debate_id,
            lambda d: tree_engine.delete_block(d, block_id, cascade=cascade),
        )
        logger.info("Debate %s: removed %d block(s) (cascade=%s)", debate_id, len(removed), cascade)
        return debate

    async def disable_block(self, debate_id: str, block_id: str) -> Debate:
        debate, _ = await self._mutate(
            debate_id,
            lambda d: tree_engine.disable_block(d, block_id),
        )
        return debate

    async def restore_block(self, debate_id: str, block_id: str) -> Debate:
        debate, _ = await self._mutate(
            debate_id,
            lambda d: tree_engine.restore_block_and_children(d, block_id),
        )
        return debate

    async def get_block(self, debate_id: str, block_id: str) -> Block:
        debate = await self._load(debate_id)
        return tree_engine.require_block(debate, block_id)
