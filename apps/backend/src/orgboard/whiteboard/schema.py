"""Pydantic models defining the whiteboard node tree."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NodeType(str, Enum):
    """Role classification of a node on the board."""

    ORGANISATION = "organisation"
    DEPARTMENT = "department"
    TEAM = "team"
    AGENT_SWARM = "agentSwarm"
    TEAM_LEAD = "teamLead"
    TEAM_MEMBER = "teamMember"
    AGENT_LEAD = "agentLead"
    AGENT_MEMBER = "agentMember"
    ROLE = "role"
    SUB_ROLE = "subRole"
    TOOL = "tool"
    WORKFLOW = "workflow"  # legacy
    PROCESS = "process"  # legacy
    AGENT = "agent"
    AUTOMATION = "automation"


# Kept so boards saved before teams/agents replaced workflows still load.
LEGACY_NODE_TYPES = frozenset({NodeType.WORKFLOW, NodeType.PROCESS})


class BoardKind(str, Enum):
    """Selects which hierarchy rule set governs a board."""

    ORGANISATION = "organisation"
    AUTOMATION = "automation"


class WorkflowType(str, Enum):
    AGENTIC = "agentic"
    LINEAR = "linear"


class CamelModel(BaseModel):
    """Base model that serializes with the camelCase keys canvas clients use."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Position(CamelModel):
    """Canvas placement of a node. Has no structural meaning.

    Coordinates must be finite: JSON has no NaN or infinity, so such a value
    would not survive a save and reload.
    """

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    x: float = 0
    y: float = 0


class WhiteboardNode(CamelModel):
    """A single node of the board tree.

    Nodes are immutable values. ``children`` is owned by the node; ``parent_id``
    is a back-reference the tree engine keeps in step with it.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    type: NodeType
    name: str
    description: Optional[str] = None
    department_head: Optional[str] = None
    workflow_type: Optional[WorkflowType] = None
    documentation_url: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    position: Position = Field(default_factory=Position)
    parent_id: Optional[str] = None
    children: tuple[WhiteboardNode, ...] = ()
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class CreateNodeInput(CamelModel):
    """Payload for inserting a node. ``parent_id=None`` targets the root."""

    type: NodeType
    name: str
    parent_id: Optional[str] = None
    description: Optional[str] = None
    department_head: Optional[str] = None
    workflow_type: Optional[WorkflowType] = None
    documentation_url: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    position: Optional[Position] = None


class UpdateNodeInput(CamelModel):
    """Partial patch for a node's descriptive fields and position.

    Only fields the caller provides (and that are not ``None``) are merged.
    Structural keys such as ``type`` or ``parentId`` are ignored.
    """

    id: str
    name: Optional[str] = None
    description: Optional[str] = None
    department_head: Optional[str] = None
    workflow_type: Optional[WorkflowType] = None
    documentation_url: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None
    position: Optional[Position] = None

    def patch(self) -> dict[str, Any]:
        """Return the provided fields as an update mapping for the node."""
        return {
            name: getattr(self, name)
            for name in self.model_fields_set
            if name in PATCHABLE_FIELDS and getattr(self, name) is not None
        }


PATCHABLE_FIELDS = frozenset(
    {
        "name",
        "description",
        "department_head",
        "workflow_type",
        "documentation_url",
        "metadata",
        "position",
    }
)


class Whiteboard(CamelModel):
    """A board: metadata plus the root of its node tree."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    description: Optional[str] = None
    kind: BoardKind = BoardKind.ORGANISATION
    root_node: WhiteboardNode
    layer_colors: dict[NodeType, str] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    created_by: str = "user"


def root_type_for(kind: BoardKind) -> NodeType:
    """Automation boards are rooted at an automation so its overrides apply."""
    if kind == BoardKind.AUTOMATION:
        return NodeType.AUTOMATION
    return NodeType.ORGANISATION


def create_whiteboard(
    name: str,
    description: str | None = None,
    kind: BoardKind = BoardKind.ORGANISATION,
    created_by: str = "user",
) -> Whiteboard:
    """Create an empty board whose root node carries the board's name."""
    now = utcnow()
    root = WhiteboardNode(
        id=str(uuid.uuid4()),
        type=root_type_for(kind),
        name=name,
        description=description,
        created_at=now,
        updated_at=now,
    )
    return Whiteboard(
        name=name,
        description=description,
        kind=kind,
        root_node=root,
        created_at=now,
        updated_at=now,
        created_by=created_by,
    )
