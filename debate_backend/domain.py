"""
In-memory debate tree.

A ``Debate`` owns a flat, insertion-ordered map of ``Block`` records plus an
adjacency index (parent id -> child ids) kept in step with every add, remove
and reparent, so child lookups never scan the whole block map.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class HistoryEntry:
    """A previous value of a block's text and when it was replaced."""

    text: str
    at: datetime


@dataclass
class Block:
    """One statement in the debate tree (opening statement or objection)."""

    id: str
    parent_id: Optional[str]
    depth: int
    order: int
    static_number: str
    text: str
    history: List[HistoryEntry] = field(default_factory=list)
    disabled: bool = False
    disabled_at: Optional[datetime] = None
    category: Optional[str] = None
    last_child_number: int = 0
    created_at: datetime = field(default_factory=utcnow)

    @property
    def block_type(self) -> str:
        return "opening" if self.depth == 0 else "objection"


@dataclass
class Debate:
    id: str = field(default_factory=new_id)
    resolved: bool = False
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    blocks: Dict[str, Block] = field(default_factory=dict)
    _children: Dict[Optional[str], List[str]] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self):
        self._rebuild_index()

    def _rebuild_index(self) -> None:
        self._children = {}
        for block in self.blocks.values():
            self._children.setdefault(block.parent_id, []).append(block.id)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_block(self, block_id: str) -> Optional[Block]:
        return self.blocks.get(block_id)

    def child_ids(self, parent_id: Optional[str]) -> List[str]:
        """Child ids in insertion order (not sibling order)."""
        return list(self._children.get(parent_id, []))

    def children_of(self, parent_id: Optional[str]) -> List[Block]:
        """Direct children sorted by ``order``, ties broken by insertion order."""
        ids = self._children.get(parent_id, [])
        indexed = [(self.blocks[child_id], position) for position, child_id in enumerate(ids)]
        indexed.sort(key=lambda pair: (pair[0].order, pair[1]))
        return [block for block, _ in indexed]

    def opening_statement(self) -> Optional[Block]:
        roots = self._children.get(None, [])
        return self.blocks[roots[0]] if roots else None

    def descendants(self, block_id: str) -> Iterator[Block]:
        """Depth-first walk of every transitive descendant of ``block_id``."""
        stack = list(reversed(self._children.get(block_id, [])))
        while stack:
            child = self.blocks[stack.pop()]
            yield child
            stack.extend(reversed(self._children.get(child.id, [])))

    def ordered_blocks(self) -> List[Block]:
        """Pre-order traversal from the root, siblings in ``order``."""
        result: List[Block] = []

        def walk(parent_id: Optional[str]) -> None:
            for child in self.children_of(parent_id):
                result.append(child)
                walk(child.id)

        walk(None)
        return result

    # ------------------------------------------------------------------
    # Structural mutation (index-maintaining)
    # ------------------------------------------------------------------

    def add_block(self, block: Block) -> None:
        self.blocks[block.id] = block
        self._children.setdefault(block.parent_id, []).append(block.id)

    def remove_block(self, block_id: str) -> Block:
        block = self.blocks.pop(block_id)
        siblings = self._children.get(block.parent_id, [])
        if block_id in siblings:
            siblings.remove(block_id)
        if not siblings:
            self._children.pop(block.parent_id, None)
        return block

    def reparent(self, block_id: str, new_parent_id: Optional[str]) -> None:
        block = self.blocks[block_id]
        siblings = self._children.get(block.parent_id, [])
        if block_id in siblings:
            siblings.remove(block_id)
        if not siblings:
            self._children.pop(block.parent_id, None)
        block.parent_id = new_parent_id
        self._children.setdefault(new_parent_id, []).append(block_id)

    def clear(self) -> None:
        self.blocks = {}
        self._children = {}

    def touch(self, now: Optional[datetime] = None) -> None:
        self.updated_at = now or utcnow()
