"""API models for the org whiteboard service."""

from typing import Annotated, Optional

from pydantic import Field, StringConstraints

from .whiteboard.commands import CommandResult, NodeCommand
from .whiteboard.schema import BoardKind, CamelModel, NodeType, Position, Whiteboard, WorkflowType


class WhiteboardCreateRequest(CamelModel):
    """Request to create an empty board."""

    name: str = Field(..., min_length=1, description="Board and root node name")
    description: Optional[str] = Field(None, description="Optional board description")
    kind: Optional[BoardKind] = Field(
        None,
        description="Hierarchy rule set for the board; defaults to the configured kind",
    )


class NodeUpdateRequest(CamelModel):
    """Partial patch for a node; omitted fields stay as they are."""

    name: Optional[str] = None
    description: Optional[str] = None
    department_head: Optional[str] = None
    workflow_type: Optional[WorkflowType] = None
    documentation_url: Optional[str] = None
    metadata: Optional[dict] = None
    position: Optional[Position] = None


class MoveNodeRequest(CamelModel):
    new_parent_id: str = Field(..., description="Node that should own the moved node")


class PositionsRequest(CamelModel):
    positions: dict[str, Position] = Field(
        ..., description="Canvas positions keyed by node id; unknown ids are ignored"
    )


ColorStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class LayerColorsRequest(CamelModel):
    layer_colors: dict[NodeType, ColorStr] = Field(
        ..., description="Canvas colour overrides keyed by node type; merged into the board"
    )


class CommandBatchRequest(CamelModel):
    commands: list[NodeCommand]


class CommandBatchResponse(CamelModel):
    whiteboard: Whiteboard
    results: list[CommandResult]


class BreadcrumbRequest(CamelModel):
    breadcrumb_ids: list[str]


class BreadcrumbResponse(CamelModel):
    breadcrumb_ids: list[str]


class HierarchyResponse(CamelModel):
    """The active rule table with display metadata, for building canvas menus."""

    board_kind: BoardKind
    allowed_children: dict[NodeType, list[NodeType]]
    labels: dict[NodeType, str]
    colors: dict[NodeType, str]


class HealthResponse(CamelModel):
    """Health check response."""

    status: str
    service: str = "Org Whiteboard Backend"
