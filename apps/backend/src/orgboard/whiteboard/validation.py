"""Structural integrity checks for whole trees (e.g. boards read back from disk).

The mutation engine keeps these invariants on its own; this module exists for
trees that did not come out of the engine.
"""

from __future__ import annotations

from .hierarchy import can_contain
from .schema import LEGACY_NODE_TYPES, BoardKind, WhiteboardNode


class TreeIntegrityError(ValueError):
    """Raised when a tree breaks the parent/identity/type invariants."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__("; ".join(errors))


def validate_tree(
    root: WhiteboardNode,
    board_kind: BoardKind = BoardKind.ORGANISATION,
) -> list[str]:
    """Return a list of error strings. An empty list means the tree is valid.

    Legacy ``workflow`` and ``process`` children are exempt from the type
    check wherever they sit. Org templates place workflows directly under the
    organisation, a department or a team, and boards saved before the current
    rules do the same, so those trees pass even though the engine would
    refuse to insert or move a legacy node there.
    """
    errors: list[str] = []

    if root.parent_id is not None:
        errors.append(f"Root '{root.id}' has parentId '{root.parent_id}'")

    seen: set[str] = set()
    stack = [root]
    while stack:
        node = stack.pop()
        if node.id in seen:
            errors.append(f"Duplicate node id '{node.id}'")
        seen.add(node.id)

        for child in node.children:
            if child.parent_id != node.id:
                errors.append(
                    f"Node '{child.id}' is owned by '{node.id}' "
                    f"but has parentId '{child.parent_id}'"
                )
            # Legacy workflow/process nodes predate the current rules.
            if child.type not in LEGACY_NODE_TYPES and not can_contain(
                node.type, child.type, board_kind
            ):
                errors.append(
                    f"A {child.type.value} ('{child.id}') cannot sit under "
                    f"a {node.type.value} ('{node.id}')"
                )
            stack.append(child)

    return errors


def ensure_valid_tree(
    root: WhiteboardNode,
    board_kind: BoardKind = BoardKind.ORGANISATION,
) -> WhiteboardNode:
    errors = validate_tree(root, board_kind)
    if errors:
        raise TreeIntegrityError(errors)
    return root
