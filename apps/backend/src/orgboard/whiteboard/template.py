"""Org templates: nested draft descriptions turned into a linked node tree."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Callable, Optional

from pydantic import Field, StringConstraints

from .schema import (
    BoardKind,
    CamelModel,
    CreateNodeInput,
    NodeType,
    Whiteboard,
    WhiteboardNode,
    WorkflowType,
    utcnow,
)
from .tree import create_node

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
TrimmedStr = Annotated[str, StringConstraints(strip_whitespace=True)]


class OrgTemplateAgent(CamelModel):
    name: NonEmptyStr
    description: Optional[TrimmedStr] = None
    automations: list[NonEmptyStr] = Field(default_factory=list)


class OrgTemplateProcess(CamelModel):
    name: NonEmptyStr
    description: Optional[TrimmedStr] = None
    agents: list[OrgTemplateAgent] = Field(default_factory=list)


class OrgTemplateWorkflow(CamelModel):
    name: NonEmptyStr
    type: WorkflowType
    description: Optional[TrimmedStr] = None
    processes: list[OrgTemplateProcess] = Field(default_factory=list)


class OrgTemplateTeam(CamelModel):
    name: NonEmptyStr
    description: Optional[TrimmedStr] = None
    team_lead: Optional[TrimmedStr] = None
    team_members: list[NonEmptyStr] = Field(default_factory=list)
    tools: list[NonEmptyStr] = Field(default_factory=list)
    workflows: list[OrgTemplateWorkflow] = Field(default_factory=list)


class OrgTemplateDepartment(CamelModel):
    name: NonEmptyStr
    description: Optional[TrimmedStr] = None
    head: Optional[TrimmedStr] = None
    teams: list[OrgTemplateTeam] = Field(default_factory=list)
    workflows: list[OrgTemplateWorkflow] = Field(default_factory=list)


class OrgTemplate(CamelModel):
    """A whole organisation draft, as produced by the org builder."""

    name: NonEmptyStr
    description: Optional[TrimmedStr] = None
    departments: list[OrgTemplateDepartment] = Field(default_factory=list)
    workflows: list[OrgTemplateWorkflow] = Field(default_factory=list)


ChildBuilder = Callable[[str], list[WhiteboardNode]]


class _TreeBuilder:
    """Builds nodes top-down so every child gets its parent's id."""

    def __init__(self, now: datetime) -> None:
        self.now = now
        self.ids: set[str] = set()

    def node(
        self,
        node_type: NodeType,
        name: str,
        parent_id: Optional[str],
        *,
        description: Optional[str] = None,
        department_head: Optional[str] = None,
        workflow_type: Optional[WorkflowType] = None,
        children: Optional[ChildBuilder] = None,
    ) -> WhiteboardNode:
        node = create_node(
            CreateNodeInput(
                type=node_type,
                name=name,
                description=description or None,
                department_head=department_head or None,
                workflow_type=workflow_type,
            ),
            parent_id,
            existing_ids=self.ids,
            now=self.now,
        )
        self.ids.add(node.id)
        if children is None:
            return node
        return node.model_copy(update={"children": tuple(children(node.id))})

    def agent(self, agent: OrgTemplateAgent, parent_id: str) -> WhiteboardNode:
        return self.node(
            NodeType.AGENT,
            agent.name,
            parent_id,
            description=agent.description,
            children=lambda pid: [
                self.node(NodeType.AUTOMATION, automation, pid)
                for automation in agent.automations
            ],
        )

    def process(self, process: OrgTemplateProcess, parent_id: str) -> WhiteboardNode:
        return self.node(
            NodeType.PROCESS,
            process.name,
            parent_id,
            description=process.description,
            children=lambda pid: [self.agent(a, pid) for a in process.agents],
        )

    def workflow(self, workflow: OrgTemplateWorkflow, parent_id: str) -> WhiteboardNode:
        return self.node(
            NodeType.WORKFLOW,
            workflow.name,
            parent_id,
            description=workflow.description,
            workflow_type=workflow.type,
            children=lambda pid: [self.process(p, pid) for p in workflow.processes],
        )

    def team(self, team: OrgTemplateTeam, parent_id: str) -> WhiteboardNode:
        def children(pid: str) -> list[WhiteboardNode]:
            nodes: list[WhiteboardNode] = []
            if team.team_lead:
                nodes.append(self.node(NodeType.TEAM_LEAD, team.team_lead, pid))
            nodes.extend(self.node(NodeType.TEAM_MEMBER, m, pid) for m in team.team_members)
            nodes.extend(self.node(NodeType.TOOL, t, pid) for t in team.tools)
            nodes.extend(self.workflow(w, pid) for w in team.workflows)
            return nodes

        return self.node(
            NodeType.TEAM,
            team.name,
            parent_id,
            description=team.description,
            children=children,
        )

    def department(self, department: OrgTemplateDepartment, parent_id: str) -> WhiteboardNode:
        return self.node(
            NodeType.DEPARTMENT,
            department.name,
            parent_id,
            description=department.description,
            department_head=department.head,
            children=lambda pid: [
                *(self.team(t, pid) for t in department.teams),
                *(self.workflow(w, pid) for w in department.workflows),
            ],
        )

    def root(self, template: OrgTemplate) -> WhiteboardNode:
        return self.node(
            NodeType.ORGANISATION,
            template.name,
            None,
            description=template.description,
            children=lambda pid: [
                *(self.department(d, pid) for d in template.departments),
                *(self.workflow(w, pid) for w in template.workflows),
            ],
        )


def build_root_node_from_template(
    template: OrgTemplate,
    *,
    now: Optional[datetime] = None,
) -> WhiteboardNode:
    return _TreeBuilder(now or utcnow()).root(template)


def build_whiteboard_from_template(
    template: OrgTemplate,
    created_by: str = "user",
    *,
    now: Optional[datetime] = None,
) -> Whiteboard:
    """Create an organisation board populated from *template*."""
    now = now or utcnow()
    return Whiteboard(
        name=template.name,
        description=template.description,
        kind=BoardKind.ORGANISATION,
        root_node=build_root_node_from_template(template, now=now),
        created_at=now,
        updated_at=now,
        created_by=created_by,
    )
