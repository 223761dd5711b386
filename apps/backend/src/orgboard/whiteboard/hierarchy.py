"""Hierarchy rules: which node types may sit directly under which."""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping, Optional

from .schema import BoardKind, NodeType

N = NodeType

DEFAULT_HIERARCHY_RULES: Mapping[NodeType, tuple[NodeType, ...]] = MappingProxyType(
    {
        N.ORGANISATION: (N.DEPARTMENT,),
        N.DEPARTMENT: (N.TEAM, N.AGENT_SWARM),
        N.TEAM: (N.TEAM_LEAD, N.TEAM_MEMBER, N.TOOL, N.AGENT),
        N.AGENT_SWARM: (N.AGENT_LEAD, N.AGENT_MEMBER, N.TOOL, N.AGENT),
        N.TEAM_LEAD: (N.SUB_ROLE, N.TOOL, N.AGENT),
        N.TEAM_MEMBER: (N.SUB_ROLE, N.TOOL, N.AGENT),
        N.AGENT_LEAD: (N.AGENT, N.TOOL, N.AUTOMATION),
        N.AGENT_MEMBER: (N.AGENT, N.TOOL, N.AUTOMATION),
        N.ROLE: (N.SUB_ROLE, N.TOOL, N.AGENT),
        N.SUB_ROLE: (N.TOOL, N.AGENT),
        N.TOOL: (N.AUTOMATION,),
        N.WORKFLOW: (N.AGENT, N.AUTOMATION),
        N.PROCESS: (N.AGENT,),
        N.AGENT: (N.AGENT, N.TOOL, N.AUTOMATION),
        N.AUTOMATION: (),
    }
)

# Automation boards nest agents, tools and further automations under automations.
AUTOMATION_HIERARCHY_RULES: Mapping[NodeType, tuple[NodeType, ...]] = MappingProxyType(
    {
        N.AUTOMATION: (N.AGENT, N.TOOL, N.AUTOMATION),
    }
)

NODE_TYPE_LABELS: Mapping[NodeType, str] = MappingProxyType(
    {
        N.ORGANISATION: "Organisation",
        N.DEPARTMENT: "Department",
        N.TEAM: "Team",
        N.AGENT_SWARM: "Agent Swarm",
        N.TEAM_LEAD: "Team Lead",
        N.TEAM_MEMBER: "Team Member",
        N.AGENT_LEAD: "Agent Lead",
        N.AGENT_MEMBER: "Agent Member",
        N.ROLE: "Role",
        N.SUB_ROLE: "Sub Role",
        N.TOOL: "Tool",
        N.WORKFLOW: "Legacy Workflow",
        N.PROCESS: "Legacy Process",
        N.AGENT: "Agent",
        N.AUTOMATION: "Automation",
    }
)

DEFAULT_NODE_LAYER_COLORS: Mapping[NodeType, str] = MappingProxyType(
    {
        N.ORGANISATION: "#f4d35e",
        N.DEPARTMENT: "#3da5d9",
        N.TEAM: "#5dd39e",
        N.AGENT_SWARM: "#7b6d8d",
        N.TEAM_LEAD: "#84dcc6",
        N.TEAM_MEMBER: "#95a3b3",
        N.AGENT_LEAD: "#4f7cac",
        N.AGENT_MEMBER: "#6ea8a1",
        N.ROLE: "#95a3b3",
        N.SUB_ROLE: "#a9b8c6",
        N.TOOL: "#d8b4a0",
        N.WORKFLOW: "#8a9a5b",
        N.PROCESS: "#6b7280",
        N.AGENT: "#f2c14e",
        N.AUTOMATION: "#ef8354",
    }
)


def get_allowed_child_types(
    parent_type: NodeType,
    board_kind: BoardKind = BoardKind.ORGANISATION,
) -> tuple[NodeType, ...]:
    """Return the node types allowed directly under *parent_type*.

    Automation boards use the override for the parent type when one exists and
    fall back to the default rules otherwise. Unknown types are leaves.
    """
    if board_kind == BoardKind.AUTOMATION:
        override = AUTOMATION_HIERARCHY_RULES.get(parent_type)
        if override is not None:
            return override
    return DEFAULT_HIERARCHY_RULES.get(parent_type, ())


def can_contain(
    parent_type: NodeType,
    child_type: NodeType,
    board_kind: BoardKind = BoardKind.ORGANISATION,
) -> bool:
    """Board-kind gate used by insert and reparent."""
    return child_type in get_allowed_child_types(parent_type, board_kind)


def get_node_layer_color(
    node_type: NodeType,
    layer_colors: Optional[Mapping[NodeType, str]] = None,
) -> str:
    if layer_colors and node_type in layer_colors:
        return layer_colors[node_type]
    return DEFAULT_NODE_LAYER_COLORS[node_type]
