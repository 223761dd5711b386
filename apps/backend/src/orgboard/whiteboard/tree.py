"""Pure structural operations over a whiteboard node tree.

Every operation takes the current root and returns a new root. Nodes are
immutable, so untouched subtrees are shared between the old and new tree and
the caller's previous root stays valid (undo is just keeping it around).

A command that cannot be applied (unknown id, disallowed type, a move into
the node's own subtree) is never an error: the operation returns the very
object it was given, so ``result is root`` tells the caller nothing changed.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Collection, Iterator, Mapping
from datetime import datetime
from typing import Any, Optional, TypeVar, Union

from pydantic import BaseModel, ValidationError

from .breadcrumbs import breadcrumb_path, normalize_breadcrumb_ids
from .hierarchy import can_contain
from .schema import (
    BoardKind,
    CreateNodeInput,
    Position,
    UpdateNodeInput,
    WhiteboardNode,
    utcnow,
)

__all__ = [
    "add_node_to_tree",
    "breadcrumb_path",
    "collect_node_ids",
    "create_node",
    "delete_node_from_tree",
    "find_node_by_id",
    "find_parent",
    "iter_nodes",
    "normalize_breadcrumb_ids",
    "reparent_node_in_tree",
    "set_node_positions_in_tree",
    "update_node_in_tree",
]

_M = TypeVar("_M", bound=BaseModel)


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

def find_node_by_id(node: WhiteboardNode, node_id: str) -> Optional[WhiteboardNode]:
    """Depth-first search in children order. Returns the first match."""
    if node.id == node_id:
        return node
    for child in node.children:
        match = find_node_by_id(child, node_id)
        if match is not None:
            return match
    return None


def find_parent(root: WhiteboardNode, node_id: str) -> Optional[WhiteboardNode]:
    """Return the node whose ``children`` owns *node_id*, or None for the root."""
    for node in iter_nodes(root):
        if any(child.id == node_id for child in node.children):
            return node
    return None


def iter_nodes(node: WhiteboardNode) -> Iterator[WhiteboardNode]:
    """Yield every node of the tree in depth-first pre-order."""
    yield node
    for child in node.children:
        yield from iter_nodes(child)


def collect_node_ids(node: WhiteboardNode) -> set[str]:
    return {current.id for current in iter_nodes(node)}


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

def create_node(
    node_input: CreateNodeInput,
    parent_id: Optional[str],
    *,
    existing_ids: Collection[str] = (),
    now: Optional[datetime] = None,
) -> WhiteboardNode:
    """Build a fresh leaf node with an id not present in *existing_ids*."""
    now = now or utcnow()
    node_id = str(uuid.uuid4())
    while node_id in existing_ids:
        node_id = str(uuid.uuid4())

    return WhiteboardNode(
        id=node_id,
        type=node_input.type,
        name=node_input.name,
        description=node_input.description,
        department_head=node_input.department_head,
        workflow_type=node_input.workflow_type,
        documentation_url=node_input.documentation_url,
        metadata=dict(node_input.metadata),
        position=node_input.position or Position(),
        parent_id=parent_id,
        children=(),
        created_at=now,
        updated_at=now,
    )


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

def add_node_to_tree(
    root: WhiteboardNode,
    node_input: Union[CreateNodeInput, Mapping[str, Any]],
    board_kind: BoardKind = BoardKind.ORGANISATION,
    *,
    now: Optional[datetime] = None,
) -> WhiteboardNode:
    """Append a new node under ``node_input.parent_id`` (the root when unset).

    Rejected when the parent does not exist or the hierarchy rules for
    *board_kind* do not allow the type there. The parent's own ``updated_at``
    is left alone: it changed structurally, not semantically.
    """
    node_input = _coerce(CreateNodeInput, node_input)
    if node_input is None:
        return root

    parent_id = node_input.parent_id or root.id
    parent = find_node_by_id(root, parent_id)
    if parent is None or not can_contain(parent.type, node_input.type, board_kind):
        return root

    new_node = create_node(
        node_input,
        parent.id,
        existing_ids=collect_node_ids(root),
        now=now,
    )

    def attach(node: WhiteboardNode) -> WhiteboardNode:
        if node.id != parent.id:
            return node
        return node.model_copy(update={"children": node.children + (new_node,)})

    return _rebuild(root, attach)


def update_node_in_tree(
    root: WhiteboardNode,
    node_input: Union[UpdateNodeInput, Mapping[str, Any]],
    *,
    now: Optional[datetime] = None,
) -> WhiteboardNode:
    """Merge the provided fields into one node and refresh its ``updated_at``.

    ``id``, ``type`` and structure are never touched. An empty patch or an
    unknown id leaves the tree as it is.
    """
    node_input = _coerce(UpdateNodeInput, node_input)
    if node_input is None or find_node_by_id(root, node_input.id) is None:
        return root

    patch = node_input.patch()
    if not patch:
        return root
    patch["updated_at"] = now or utcnow()

    def apply_patch(node: WhiteboardNode) -> WhiteboardNode:
        if node.id != node_input.id:
            return node
        return node.model_copy(update=patch)

    return _rebuild(root, apply_patch)


def delete_node_from_tree(root: WhiteboardNode, node_id: str) -> WhiteboardNode:
    """Remove a node and its whole subtree. Deleting the root is a no-op."""
    if node_id == root.id:
        return root
    parent = find_parent(root, node_id)
    if parent is None:
        return root

    def detach(node: WhiteboardNode) -> WhiteboardNode:
        if node.id != parent.id:
            return node
        children = tuple(child for child in node.children if child.id != node_id)
        return node.model_copy(update={"children": children})

    return _rebuild(root, detach)


def reparent_node_in_tree(
    root: WhiteboardNode,
    node_id: str,
    new_parent_id: str,
    board_kind: BoardKind = BoardKind.ORGANISATION,
    *,
    now: Optional[datetime] = None,
) -> WhiteboardNode:
    """Move a node, with its subtree, to the end of another node's children.

    Rejected when either node is missing, when the target is the node itself
    or one of its descendants, or when the target's type may not contain the
    node's type on this board kind.
    """
    moving = find_node_by_id(root, node_id)
    if moving is None or moving.id == root.id:
        return root
    if find_node_by_id(moving, new_parent_id) is not None:
        return root
    new_parent = find_node_by_id(root, new_parent_id)
    if new_parent is None or not can_contain(new_parent.type, moving.type, board_kind):
        return root

    moved = moving.model_copy(
        update={"parent_id": new_parent.id, "updated_at": now or utcnow()}
    )

    def relocate(node: WhiteboardNode) -> WhiteboardNode:
        children = node.children
        if any(child.id == node_id for child in children):
            children = tuple(child for child in children if child.id != node_id)
        if node.id == new_parent.id:
            children = children + (moved,)
        if children is node.children:
            return node
        return node.model_copy(update={"children": children})

    return _rebuild(root, relocate)


def set_node_positions_in_tree(
    root: WhiteboardNode,
    positions: Mapping[str, Union[Position, Mapping[str, float]]],
    *,
    now: Optional[datetime] = None,
) -> WhiteboardNode:
    """Commit a batch of canvas positions in one traversal.

    Ids that are not in the tree are ignored. Every matched node gets the
    same ``updated_at``.
    """
    resolved: dict[str, Position] = {}
    for node_id, position in positions.items():
        position = _coerce(Position, position)
        if position is not None:
            resolved[node_id] = position
    if not resolved.keys() & collect_node_ids(root):
        return root

    stamp = now or utcnow()

    def reposition(node: WhiteboardNode) -> WhiteboardNode:
        if node.id not in resolved:
            return node
        return node.model_copy(
            update={"position": resolved[node.id], "updated_at": stamp}
        )

    return _rebuild(root, reposition)


# ---------------------------------------------------------------------------
# Internals
# ---------------------------------------------------------------------------

def _rebuild(
    node: WhiteboardNode,
    transform: Callable[[WhiteboardNode], WhiteboardNode],
) -> WhiteboardNode:
    """Apply *transform* to every node bottom-up and rebuild changed paths.

    A node whose children all come back unchanged keeps its identity, so only
    the path from each modified node up to the root is copied.
    """
    children = tuple(_rebuild(child, transform) for child in node.children)
    if any(new is not old for new, old in zip(children, node.children)):
        node = node.model_copy(update={"children": children})
    return transform(node)


def _coerce(model: type[_M], value: Union[_M, Mapping[str, Any]]) -> Optional[_M]:
    """Accept a model instance or a plain mapping; malformed payloads yield None."""
    if isinstance(value, model):
        return value
    try:
        return model.model_validate(value)
    except ValidationError:
        return None
