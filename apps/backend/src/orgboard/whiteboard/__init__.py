from .schema import (
    BoardKind,
    CreateNodeInput,
    NodeType,
    Position,
    UpdateNodeInput,
    Whiteboard,
    WhiteboardNode,
    create_whiteboard,
)
from .hierarchy import can_contain, get_allowed_child_types
from .tree import (
    add_node_to_tree,
    collect_node_ids,
    delete_node_from_tree,
    find_node_by_id,
    normalize_breadcrumb_ids,
    reparent_node_in_tree,
    set_node_positions_in_tree,
    update_node_in_tree,
)
from .commands import CommandResult, apply_commands
from .session import WhiteboardSession
from .store import WhiteboardStore
from .validation import TreeIntegrityError, validate_tree

__all__ = [
    "BoardKind",
    "CreateNodeInput",
    "NodeType",
    "Position",
    "UpdateNodeInput",
    "Whiteboard",
    "WhiteboardNode",
    "create_whiteboard",
    "can_contain",
    "get_allowed_child_types",
    "add_node_to_tree",
    "collect_node_ids",
    "delete_node_from_tree",
    "find_node_by_id",
    "normalize_breadcrumb_ids",
    "reparent_node_in_tree",
    "set_node_positions_in_tree",
    "update_node_in_tree",
    "CommandResult",
    "apply_commands",
    "WhiteboardSession",
    "WhiteboardStore",
    "TreeIntegrityError",
    "validate_tree",
]
