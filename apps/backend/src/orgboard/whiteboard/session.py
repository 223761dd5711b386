"""Single-writer editing session around one whiteboard.

The tree engine is pure and holds no state; something has to own the current
tree value and put edits from the canvas and from the org builder into one
sequence. That is this class. It also keeps the navigation state (breadcrumb
trail, selection) and undo/redo history, which are plain lists of earlier
root values.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Callable, Mapping, Sequence
from typing import Any, Optional, Union

from .breadcrumbs import breadcrumb_path, normalize_breadcrumb_ids
from .commands import CommandResult, NodeCommand, apply_commands
from .schema import (
    CreateNodeInput,
    NodeType,
    Position,
    UpdateNodeInput,
    Whiteboard,
    WhiteboardNode,
    utcnow,
)
from .tree import (
    add_node_to_tree,
    delete_node_from_tree,
    find_node_by_id,
    reparent_node_in_tree,
    set_node_positions_in_tree,
    update_node_in_tree,
)

logger = logging.getLogger(__name__)


class WhiteboardSession:
    """Owns the current tree of one board and serialises every edit to it.

    ``on_change`` is called with the new whiteboard after every accepted
    edit, undo or redo, while the session lock is still held. Callers that
    persist from it therefore write versions in the order they were made.
    """

    def __init__(
        self,
        whiteboard: Whiteboard,
        history_limit: int = 100,
        on_change: Optional[Callable[[Whiteboard], None]] = None,
    ):
        self._whiteboard = whiteboard
        self._on_change = on_change
        self._lock = threading.RLock()
        self._undo: deque[WhiteboardNode] = deque(maxlen=history_limit)
        self._redo: deque[WhiteboardNode] = deque(maxlen=history_limit)
        self._breadcrumbs: list[str] = [whiteboard.root_node.id]
        self._selected_id: Optional[str] = None

    # -- State access -------------------------------------------------------

    @property
    def lock(self):
        """Hold this to read state and edit it as one step."""
        return self._lock

    @property
    def whiteboard(self) -> Whiteboard:
        return self._whiteboard

    @property
    def root(self) -> WhiteboardNode:
        return self._whiteboard.root_node

    @property
    def breadcrumbs(self) -> list[str]:
        return list(self._breadcrumbs)

    @property
    def current_node(self) -> WhiteboardNode:
        """The node the canvas is focused on (last breadcrumb)."""
        return find_node_by_id(self.root, self._breadcrumbs[-1]) or self.root

    @property
    def selected_node(self) -> Optional[WhiteboardNode]:
        if self._selected_id is None:
            return None
        return find_node_by_id(self.root, self._selected_id)

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    # -- Edits --------------------------------------------------------------

    def create_node(self, node_input: Union[CreateNodeInput, Mapping[str, Any]]) -> bool:
        with self._lock:
            return self._commit(
                "create_node",
                add_node_to_tree(self.root, node_input, self._whiteboard.kind),
            )

    def update_node(self, node_input: Union[UpdateNodeInput, Mapping[str, Any]]) -> bool:
        with self._lock:
            return self._commit("update_node", update_node_in_tree(self.root, node_input))

    def delete_node(self, node_id: str) -> bool:
        with self._lock:
            return self._commit("delete_node", delete_node_from_tree(self.root, node_id))

    def move_node(self, node_id: str, new_parent_id: str) -> bool:
        with self._lock:
            return self._commit(
                "move_node",
                reparent_node_in_tree(
                    self.root, node_id, new_parent_id, self._whiteboard.kind
                ),
            )

    def set_positions(self, positions: Mapping[str, Union[Position, Mapping[str, float]]]) -> bool:
        with self._lock:
            return self._commit(
                "set_positions", set_node_positions_in_tree(self.root, positions)
            )

    def apply_commands(
        self,
        commands: Sequence[Union[NodeCommand, Mapping[str, Any]]],
    ) -> list[CommandResult]:
        """Apply a batch as a single history entry."""
        with self._lock:
            new_root, results = apply_commands(self.root, commands, self._whiteboard.kind)
            self._commit("apply_commands", new_root)
            rejected = sum(1 for r in results if not r.applied)
            if rejected:
                logger.info(
                    "Board %s: %d of %d commands rejected",
                    self._whiteboard.id,
                    rejected,
                    len(results),
                )
            return results

    def set_layer_colors(self, layer_colors: Mapping[NodeType, str]) -> None:
        """Override canvas colours per node type. Not part of undo history."""
        with self._lock:
            merged = {**self._whiteboard.layer_colors, **layer_colors}
            self._whiteboard = self._whiteboard.model_copy(
                update={"layer_colors": merged, "updated_at": utcnow()}
            )
            self._notify()

    # -- History ------------------------------------------------------------

    def undo(self) -> bool:
        with self._lock:
            if not self._undo:
                return False
            self._redo.append(self.root)
            self._replace_root(self._undo.pop())
            return True

    def redo(self) -> bool:
        with self._lock:
            if not self._redo:
                return False
            self._undo.append(self.root)
            self._replace_root(self._redo.pop())
            return True

    # -- Navigation ---------------------------------------------------------

    def select_node(self, node_id: Optional[str]) -> bool:
        with self._lock:
            if node_id is not None and find_node_by_id(self.root, node_id) is None:
                return False
            self._selected_id = node_id
            return True

    def drill_down(self, node_id: str) -> bool:
        """Focus a direct child of the current node."""
        with self._lock:
            if not any(child.id == node_id for child in self.current_node.children):
                return False
            self._breadcrumbs.append(node_id)
            self._selected_id = None
            return True

    def drill_up(self) -> bool:
        with self._lock:
            if len(self._breadcrumbs) <= 1:
                return False
            self._breadcrumbs.pop()
            self._selected_id = None
            return True

    def navigate_to_breadcrumb(self, index: int) -> bool:
        with self._lock:
            if index < 0 or index >= len(self._breadcrumbs):
                return False
            del self._breadcrumbs[index + 1:]
            self._selected_id = None
            return True

    def focus_node(self, node_id: str) -> None:
        """Jump straight to any node, rebuilding the trail from the root."""
        with self._lock:
            self._breadcrumbs = breadcrumb_path(self.root, node_id)
            self._selected_id = None

    # -- Internals ----------------------------------------------------------

    def _commit(self, action: str, new_root: WhiteboardNode) -> bool:
        if new_root is self.root:
            logger.debug("Board %s: %s rejected", self._whiteboard.id, action)
            return False
        self._undo.append(self.root)
        self._redo.clear()
        self._replace_root(new_root)
        return True

    def _replace_root(self, new_root: WhiteboardNode) -> None:
        self._whiteboard = self._whiteboard.model_copy(
            update={"root_node": new_root, "updated_at": utcnow()}
        )
        self._breadcrumbs = normalize_breadcrumb_ids(new_root, self._breadcrumbs)
        if self._selected_id is not None and find_node_by_id(new_root, self._selected_id) is None:
            self._selected_id = None
        self._notify()

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self._whiteboard)
