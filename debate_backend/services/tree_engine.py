"""
Tree integrity rules for a debate's block tree.

Every function validates first and mutates second: a raised error means the
debate passed in is untouched. Callers own persistence; these functions only
operate on a loaded ``Debate``.
"""

import logging
from datetime import datetime
from typing import List, Optional

from debate_backend import config
from debate_backend.domain import Block, Debate, HistoryEntry, new_id, utcnow
from debate_backend.services.errors import (
    ConflictError,
    NotFoundError,
    PreconditionError,
    ValidationError,
)

logger = logging.getLogger(__name__)

OPENING_STATIC_NUMBER = "1"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def require_block(debate: Debate, block_id: str) -> Block:
    block = debate.get_block(block_id)
    if block is None:
        raise NotFoundError(f"Block {block_id} not found")
    return block


def validate_block_text(text, depth: int) -> None:
    """Objections are capped at ``OBJECTION_CHAR_LIMIT``; the opening statement is not."""
    if not isinstance(text, str) or not text:
        raise ValidationError("Text is required")
    limit = config.OBJECTION_CHAR_LIMIT
    if depth > 0 and len(text) > limit:
        raise ValidationError(
            f"Objections must be {limit} characters or less (current: {len(text)})"
        )


def _last_segment(static_number: str) -> int:
    try:
        return int(static_number.rsplit(".", 1)[-1])
    except (ValueError, AttributeError):
        return 0


def next_static_number(debate: Debate, parent: Optional[Block]) -> str:
    """
    Allocate the next dotted label under ``parent``.

    Numbers come from the parent's persisted high-water mark, so a number
    freed by a deletion is never handed out again.
    """
    if parent is None:
        return OPENING_STATIC_NUMBER
    highest = parent.last_child_number
    for sibling_id in debate.child_ids(parent.id):
        highest = max(highest, _last_segment(debate.blocks[sibling_id].static_number))
    return f"{parent.static_number}.{highest + 1}"


def reindex_children(debate: Debate, parent_id: Optional[str]) -> None:
    """Reassign sibling orders to ``0..N-1`` keeping the current sort."""
    for index, child in enumerate(debate.children_of(parent_id)):
        child.order = index


def _refresh_subtree_depths(debate: Debate, block: Block) -> None:
    parent = debate.get_block(block.parent_id) if block.parent_id else None
    block.depth = parent.depth + 1 if parent else 0
    for descendant in debate.descendants(block.id):
        descendant.depth = debate.blocks[descendant.parent_id].depth + 1


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

def create_block(
    debate: Debate,
    parent_id: Optional[str],
    text: str,
    category: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Block:
    """Append a new block at the end of its parent's children."""
    if parent_id is None:
        if debate.opening_statement() is not None:
            raise ValidationError("Debate already has an opening statement")
        parent = None
        depth = 0
    else:
        parent = require_block(debate, parent_id)
        if parent.disabled:
            raise ConflictError("Cannot add an objection to a disabled block")
        depth = parent.depth + 1

    validate_block_text(text, depth)
    if category is not None and not isinstance(category, str):
        raise ValidationError("Category must be a string")

    now = now or utcnow()
    static_number = next_static_number(debate, parent)
    block = Block(
        id=new_id(),
        parent_id=parent_id,
        depth=depth,
        order=len(debate.child_ids(parent_id)),
        static_number=static_number,
        text=text,
        category=category,
        created_at=now,
    )
    if parent is not None:
        parent.last_child_number = _last_segment(static_number)

    debate.add_block(block)
    debate.touch(now)
    logger.debug("Created block %s (%s) in debate %s", block.id, static_number, debate.id)
    return block


def update_block_text(
    debate: Debate,
    block_id: str,
    new_text: str,
    now: Optional[datetime] = None,
) -> bool:
    """
    Replace a block's text, pushing the old text onto its history.

    Returns False (and changes nothing) when the text is identical.
    """
    block = require_block(debate, block_id)
    validate_block_text(new_text, block.depth)
    if new_text == block.text:
        return False

    now = now or utcnow()
    block.history.append(HistoryEntry(text=block.text, at=now))
    block.text = new_text
    debate.touch(now)
    return True


def restore_block_text(
    debate: Debate,
    block_id: str,
    history_index: int,
    now: Optional[datetime] = None,
) -> bool:
    """Re-apply an earlier text as a fresh edit."""
    block = require_block(debate, block_id)
    if history_index < 0 or history_index >= len(block.history):
        raise NotFoundError(f"History entry {history_index} not found for block {block_id}")
    return update_block_text(debate, block_id, block.history[history_index].text, now=now)


def reorder_block(
    debate: Debate,
    block_id: str,
    new_order: int,
    now: Optional[datetime] = None,
) -> None:
    """Move a block to ``new_order`` among its siblings, then re-index."""
    block = require_block(debate, block_id)
    if isinstance(new_order, bool) or not isinstance(new_order, int) or new_order < 0:
        raise ValidationError("Order must be a non-negative integer")

    siblings = [b for b in debate.children_of(block.parent_id) if b.id != block.id]
    target = min(new_order, len(siblings))
    siblings.insert(target, block)
    for index, sibling in enumerate(siblings):
        sibling.order = index
    debate.touch(now)


def delete_block(
    debate: Debate,
    block_id: str,
    cascade: bool = False,
    now: Optional[datetime] = None,
) -> List[str]:
    """
    Remove a block.

    With ``cascade`` the whole subtree goes. Without it, the block's children
    are reattached to its parent in the slot the block occupied. Returns the
    ids removed.
    """
    block = require_block(debate, block_id)
    parent_id = block.parent_id

    if cascade:
        removed = [descendant.id for descendant in debate.descendants(block_id)]
        for descendant_id in reversed(removed):
            debate.remove_block(descendant_id)
        debate.remove_block(block_id)
        removed.insert(0, block_id)
        reindex_children(debate, parent_id)
    else:
        orphans = debate.children_of(block_id)
        if parent_id is None and orphans:
            raise PreconditionError(
                "Cannot delete the opening statement without cascade while it has objections"
            )
        siblings = debate.children_of(parent_id)
        slot = siblings.index(block)
        reordered = siblings[:slot] + orphans + siblings[slot + 1:]

        for orphan in orphans:
            debate.reparent(orphan.id, parent_id)
            _refresh_subtree_depths(debate, orphan)
        debate.remove_block(block_id)
        for index, sibling in enumerate(reordered):
            sibling.order = index
        removed = [block_id]

    debate.touch(now)
    return removed


def disable_block(debate: Debate, block_id: str, now: Optional[datetime] = None) -> List[str]:
    """Soft-delete a block and its entire subtree. Returns the ids marked."""
    block = require_block(debate, block_id)
    if block.depth == 0:
        raise PreconditionError("Cannot disable opening statement")

    now = now or utcnow()
    marked = [block] + list(debate.descendants(block_id))
    for node in marked:
        node.disabled = True
        node.disabled_at = now
    debate.touch(now)
    return [node.id for node in marked]


def restore_block_and_children(
    debate: Debate,
    block_id: str,
    now: Optional[datetime] = None,
) -> List[str]:
    """
    Re-enable a block and its subtree.

    Only the immediate parent is checked: restoring is bottom-up, one level
    at a time.
    """
    block = require_block(debate, block_id)
    if block.parent_id is not None:
        parent = debate.get_block(block.parent_id)
        if parent is not None and parent.disabled:
            raise ConflictError("Cannot restore block while parent is disabled")

    marked = [block] + list(debate.descendants(block_id))
    for node in marked:
        node.disabled = False
        node.disabled_at = None
    debate.touch(now)
    return [node.id for node in marked]
