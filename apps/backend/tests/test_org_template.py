import sys
import unittest
from pathlib import Path

from pydantic import ValidationError

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from orgboard.whiteboard.schema import BoardKind, NodeType, WorkflowType
from orgboard.whiteboard.template import (
    OrgTemplate,
    build_root_node_from_template,
    build_whiteboard_from_template,
)
from orgboard.whiteboard.tree import iter_nodes
from orgboard.whiteboard.validation import validate_tree

DRAFT = {
    "name": "  Acme Robotics ",
    "description": "Warehouse automation",
    "departments": [
        {
            "name": "Engineering",
            "head": "Sam Lee",
            "teams": [
                {
                    "name": "Platform",
                    "teamLead": "Ana",
                    "teamMembers": ["Bo", "Cy"],
                    "tools": ["GitHub"],
                    "workflows": [
                        {
                            "name": "Release",
                            "type": "linear",
                            "processes": [
                                {
                                    "name": "Ship",
                                    "agents": [{"name": "Deployer", "automations": ["Tag build"]}],
                                }
                            ],
                        }
                    ],
                }
            ],
        },
        {"name": "Operations"},
    ],
    "workflows": [{"name": "Quarterly planning", "type": "agentic"}],
}


class OrgTemplateTests(unittest.TestCase):
    def test_builds_a_linked_tree_from_a_draft(self):
        root = build_root_node_from_template(OrgTemplate.model_validate(DRAFT))

        self.assertEqual(root.type, NodeType.ORGANISATION)
        self.assertEqual(root.name, "Acme Robotics")
        self.assertIsNone(root.parent_id)
        self.assertEqual(
            [c.name for c in root.children], ["Engineering", "Operations", "Quarterly planning"]
        )

        engineering = root.children[0]
        self.assertEqual(engineering.department_head, "Sam Lee")
        platform = engineering.children[0]
        self.assertEqual(
            [(c.type, c.name) for c in platform.children],
            [
                (NodeType.TEAM_LEAD, "Ana"),
                (NodeType.TEAM_MEMBER, "Bo"),
                (NodeType.TEAM_MEMBER, "Cy"),
                (NodeType.TOOL, "GitHub"),
                (NodeType.WORKFLOW, "Release"),
            ],
        )

        release = platform.children[-1]
        self.assertEqual(release.workflow_type, WorkflowType.LINEAR)
        deployer = release.children[0].children[0]
        self.assertEqual(deployer.type, NodeType.AGENT)
        self.assertEqual(deployer.children[0].type, NodeType.AUTOMATION)

    def test_built_tree_passes_integrity_checks(self):
        root = build_root_node_from_template(OrgTemplate.model_validate(DRAFT))
        self.assertEqual(validate_tree(root), [])
        ids = [n.id for n in iter_nodes(root)]
        self.assertEqual(len(ids), len(set(ids)))

    def test_whiteboard_wraps_the_tree(self):
        whiteboard = build_whiteboard_from_template(
            OrgTemplate.model_validate(DRAFT), created_by="builder"
        )
        self.assertEqual(whiteboard.kind, BoardKind.ORGANISATION)
        self.assertEqual(whiteboard.name, "Acme Robotics")
        self.assertEqual(whiteboard.created_by, "builder")
        self.assertEqual(whiteboard.root_node.created_at, whiteboard.created_at)

    def test_blank_names_are_rejected(self):
        with self.assertRaises(ValidationError):
            OrgTemplate.model_validate({"name": "   "})
        with self.assertRaises(ValidationError):
            OrgTemplate.model_validate({"name": "Acme", "departments": [{"name": ""}]})


if __name__ == "__main__":
    unittest.main()
