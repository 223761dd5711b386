"""Breadcrumb trails: root-to-node id paths for "you are here" navigation."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Optional

from .schema import WhiteboardNode


def normalize_breadcrumb_ids(
    root: WhiteboardNode,
    breadcrumb_ids: Sequence[str],
) -> list[str]:
    """Repair a candidate trail against the current tree.

    Walks the candidate ids from the root; each id must be a direct child of
    the previously accepted node. Returns the longest valid prefix, or just
    ``[root.id]`` when the trail does not start at the root.
    """
    if not breadcrumb_ids or breadcrumb_ids[0] != root.id:
        return [root.id]

    trail = [root.id]
    current = root
    for crumb in breadcrumb_ids[1:]:
        child = next((c for c in current.children if c.id == crumb), None)
        if child is None:
            break
        trail.append(child.id)
        current = child
    return trail


def breadcrumb_path(root: WhiteboardNode, node_id: str) -> list[str]:
    """Derive the trail from the root to *node_id*; ``[root.id]`` if it is gone."""
    return _path_to(root, node_id) or [root.id]


def _path_to(node: WhiteboardNode, node_id: str) -> Optional[list[str]]:
    if node.id == node_id:
        return [node.id]
    for child in node.children:
        path = _path_to(child, node_id)
        if path is not None:
            return [node.id, *path]
    return None
