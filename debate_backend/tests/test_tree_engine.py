"""
Tests for the debate tree rules.

Run with: pytest debate_backend/tests/test_tree_engine.py -v
"""

import copy

import pytest

from debate_backend.domain import Debate
from debate_backend.services import tree_engine
from debate_backend.services.errors import (
    ConflictError,
    NotFoundError,
    PreconditionError,
    ValidationError,
)
from invariants import assert_tree_invariants


def _opening(debate, text="The sky is blue"):
    return tree_engine.create_block(debate, None, text)


def _snapshot(debate):
    return copy.deepcopy(debate.blocks), debate.updated_at


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------

def test_opening_then_objection_numbers_and_depths(debate):
    opening = _opening(debate)
    child = tree_engine.create_block(debate, opening.id, "Not always, at sunset it's orange")

    assert opening.depth == 0
    assert opening.static_number == "1"
    assert child.depth == 1
    assert child.order == 0
    assert child.static_number == "1.1"
    assert_tree_invariants(debate)


def test_nested_static_numbers():
    debate = Debate()
    opening = _opening(debate)
    first = tree_engine.create_block(debate, opening.id, "first")
    second = tree_engine.create_block(debate, opening.id, "second")
    nested = tree_engine.create_block(debate, second.id, "nested")

    assert first.static_number == "1.1"
    assert second.static_number == "1.2"
    assert second.order == 1
    assert nested.static_number == "1.2.1"
    assert nested.depth == 2


def test_static_numbers_never_reused_after_delete(debate):
    opening = _opening(debate)
    tree_engine.create_block(debate, opening.id, "a")
    last = tree_engine.create_block(debate, opening.id, "b")
    tree_engine.delete_block(debate, last.id, cascade=True)

    again = tree_engine.create_block(debate, opening.id, "c")
    assert again.static_number == "1.3"
    assert opening.last_child_number == 3


def test_second_opening_statement_rejected(debate):
    _opening(debate)
    with pytest.raises(ValidationError):
        tree_engine.create_block(debate, None, "another root")
    assert len(debate.blocks) == 1


def test_empty_text_rejected(debate):
    with pytest.raises(ValidationError):
        tree_engine.create_block(debate, None, "")
    assert debate.blocks == {}


def test_objection_length_limit(debate):
    opening = _opening(debate, "x" * 1000)
    tree_engine.create_block(debate, opening.id, "y" * 300)
    with pytest.raises(ValidationError) as exc:
        tree_engine.create_block(debate, opening.id, "y" * 301)
    assert "300" in exc.value.message
    assert len(debate.children_of(opening.id)) == 1


def test_unknown_parent_is_not_found(debate):
    with pytest.raises(NotFoundError):
        tree_engine.create_block(debate, "missing", "text")


def test_cannot_add_under_disabled_block(debate):
    opening = _opening(debate)
    child = tree_engine.create_block(debate, opening.id, "child")
    tree_engine.disable_block(debate, child.id)

    with pytest.raises(ConflictError):
        tree_engine.create_block(debate, child.id, "grandchild")


def test_create_bumps_debate_timestamp(debate):
    before = debate.updated_at
    _opening(debate)
    assert debate.updated_at >= before


# ---------------------------------------------------------------------------
# Editing
# ---------------------------------------------------------------------------

def test_edit_pushes_history(debate):
    opening = _opening(debate, "v1")
    assert tree_engine.update_block_text(debate, opening.id, "v2") is True
    assert tree_engine.update_block_text(debate, opening.id, "v3") is True

    assert opening.text == "v3"
    assert [h.text for h in opening.history] == ["v1", "v2"]


def test_identical_edit_is_a_noop(debate):
    opening = _opening(debate, "same")
    stamp = debate.updated_at

    assert tree_engine.update_block_text(debate, opening.id, "same") is False
    assert opening.history == []
    assert debate.updated_at == stamp


def test_edit_respects_length_limit(debate):
    opening = _opening(debate)
    child = tree_engine.create_block(debate, opening.id, "short")
    with pytest.raises(ValidationError):
        tree_engine.update_block_text(debate, child.id, "z" * 301)
    assert child.text == "short"
    assert child.history == []


def test_restore_history_applies_as_new_edit(debate):
    opening = _opening(debate, "v1")
    tree_engine.update_block_text(debate, opening.id, "v2")

    tree_engine.restore_block_text(debate, opening.id, 0)

    assert opening.text == "v1"
    assert [h.text for h in opening.history] == ["v1", "v2"]


def test_restore_history_out_of_range(debate):
    opening = _opening(debate)
    with pytest.raises(NotFoundError):
        tree_engine.restore_block_text(debate, opening.id, 0)


# ---------------------------------------------------------------------------
# Reordering
# ---------------------------------------------------------------------------

def _three_children(debate):
    opening = _opening(debate)
    kids = [tree_engine.create_block(debate, opening.id, name) for name in ("a", "b", "c")]
    return opening, kids


def test_reorder_moves_block_to_target(debate):
    opening, (a, b, c) = _three_children(debate)

    tree_engine.reorder_block(debate, c.id, 0)

    assert [k.text for k in debate.children_of(opening.id)] == ["c", "a", "b"]
    assert_tree_invariants(debate)


def test_reorder_clamps_past_end(debate):
    opening, (a, b, c) = _three_children(debate)

    tree_engine.reorder_block(debate, a.id, 99)

    assert [k.text for k in debate.children_of(opening.id)] == ["b", "c", "a"]
    assert a.order == 2


def test_reorder_negative_rejected(debate):
    opening, (a, b, c) = _three_children(debate)
    with pytest.raises(ValidationError):
        tree_engine.reorder_block(debate, a.id, -1)
    assert [k.order for k in (a, b, c)] == [0, 1, 2]


def test_reindex_children_closes_gaps(debate):
    opening, (a, b, c) = _three_children(debate)
    a.order, b.order, c.order = 5, 9, 7

    tree_engine.reindex_children(debate, opening.id)

    assert (a.order, c.order, b.order) == (0, 1, 2)


# ---------------------------------------------------------------------------
# Deletion
# ---------------------------------------------------------------------------

def test_delete_first_child_reindexes_sibling(debate):
    opening = _opening(debate)
    first = tree_engine.create_block(debate, opening.id, "first")
    second = tree_engine.create_block(debate, opening.id, "second")

    tree_engine.delete_block(debate, first.id, cascade=False)

    assert first.id not in debate.blocks
    assert second.order == 0
    assert_tree_invariants(debate)


def test_cascade_delete_removes_subtree(debate):
    opening = _opening(debate)
    child = tree_engine.create_block(debate, opening.id, "child")
    grandchild = tree_engine.create_block(debate, child.id, "grandchild")
    sibling = tree_engine.create_block(debate, opening.id, "sibling")

    removed = tree_engine.delete_block(debate, child.id, cascade=True)

    assert set(removed) == {child.id, grandchild.id}
    assert set(debate.blocks) == {opening.id, sibling.id}
    assert sibling.order == 0


def test_non_cascade_delete_reattaches_children_in_place(debate):
    opening = _opening(debate)
    a = tree_engine.create_block(debate, opening.id, "a")
    b = tree_engine.create_block(debate, opening.id, "b")
    c = tree_engine.create_block(debate, opening.id, "c")
    b1 = tree_engine.create_block(debate, b.id, "b1")
    b2 = tree_engine.create_block(debate, b.id, "b2")
    deep = tree_engine.create_block(debate, b1.id, "deep")

    tree_engine.delete_block(debate, b.id, cascade=False)

    assert [k.text for k in debate.children_of(opening.id)] == ["a", "b1", "b2", "c"]
    assert b1.parent_id == opening.id
    assert b1.depth == 1
    assert deep.depth == 2
    assert b1.static_number == "1.2.1"  # labels are stable
    assert_tree_invariants(debate)


def test_non_cascade_delete_of_opening_with_children_rejected(debate):
    opening = _opening(debate)
    tree_engine.create_block(debate, opening.id, "child")
    before = _snapshot(debate)

    with pytest.raises(PreconditionError):
        tree_engine.delete_block(debate, opening.id, cascade=False)
    assert _snapshot(debate) == before


def test_delete_lone_opening(debate):
    opening = _opening(debate)
    tree_engine.delete_block(debate, opening.id, cascade=False)
    assert debate.blocks == {}
    assert debate.opening_statement() is None


def test_delete_missing_block(debate):
    with pytest.raises(NotFoundError):
        tree_engine.delete_block(debate, "nope")


# ---------------------------------------------------------------------------
# Disable / restore
# ---------------------------------------------------------------------------

def test_disable_marks_whole_subtree(debate):
    opening = _opening(debate)
    child = tree_engine.create_block(debate, opening.id, "child")
    grandchild = tree_engine.create_block(debate, child.id, "grandchild")

    marked = tree_engine.disable_block(debate, child.id)

    assert set(marked) == {child.id, grandchild.id}
    assert child.disabled and grandchild.disabled
    assert child.disabled_at is not None
    assert not opening.disabled
    assert_tree_invariants(debate)


def test_cannot_disable_opening(debate):
    opening = _opening(debate)
    with pytest.raises(PreconditionError):
        tree_engine.disable_block(debate, opening.id)
    assert not opening.disabled


def test_restore_under_disabled_parent_rejected(debate):
    opening = _opening(debate)
    child = tree_engine.create_block(debate, opening.id, "child")
    grandchild = tree_engine.create_block(debate, child.id, "grandchild")
    tree_engine.disable_block(debate, child.id)

    with pytest.raises(ConflictError):
        tree_engine.restore_block_and_children(debate, grandchild.id)
    assert grandchild.disabled


def test_restore_clears_subtree(debate):
    opening = _opening(debate)
    child = tree_engine.create_block(debate, opening.id, "child")
    grandchild = tree_engine.create_block(debate, child.id, "grandchild")
    tree_engine.disable_block(debate, child.id)

    tree_engine.restore_block_and_children(debate, child.id)

    assert not child.disabled and not grandchild.disabled
    assert child.disabled_at is None and grandchild.disabled_at is None


# ---------------------------------------------------------------------------
# Properties over a mixed sequence of operations
# ---------------------------------------------------------------------------

def test_invariants_hold_through_mixed_operations(debate):
    opening = _opening(debate)
    ids = [opening.id]
    for i in range(12):
        parent_id = ids[i // 2]
        ids.append(tree_engine.create_block(debate, parent_id, f"objection {i}").id)
        assert_tree_invariants(debate)

    tree_engine.reorder_block(debate, ids[3], 0)
    assert_tree_invariants(debate)
    tree_engine.delete_block(debate, ids[2], cascade=False)
    assert_tree_invariants(debate)
    tree_engine.disable_block(debate, ids[1])
    assert_tree_invariants(debate)
    tree_engine.delete_block(debate, ids[1], cascade=True)
    assert_tree_invariants(debate)

    numbers = [b.static_number for b in debate.blocks.values()]
    assert len(numbers) == len(set(numbers))
