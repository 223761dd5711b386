import sys
import unittest
from datetime import datetime, timezone
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from orgboard.whiteboard.commands import (
    AddNodeCommand,
    DeleteNodeCommand,
    MoveNodeCommand,
    apply_commands,
)
from orgboard.whiteboard.schema import BoardKind, NodeType, Position, create_whiteboard
from orgboard.whiteboard.tree import find_node_by_id
from orgboard.whiteboard.validation import validate_tree

T1 = datetime(2026, 3, 1, tzinfo=timezone.utc)


class ApplyCommandsTests(unittest.TestCase):
    def setUp(self) -> None:
        self.root = create_whiteboard("Acme").root_node

    def test_refs_link_commands_within_a_batch(self):
        new_root, results = apply_commands(
            self.root,
            [
                {"op": "add", "ref": "eng", "type": "department", "name": "Engineering"},
                {"op": "add", "ref": "ops", "type": "department", "name": "Operations"},
                {"op": "add", "ref": "fe", "parentId": "eng", "type": "team", "name": "Frontend"},
                {"op": "update", "id": "eng", "departmentHead": "Sam"},
                {"op": "move", "id": "fe", "newParentId": "ops"},
                {"op": "positions", "positions": {"fe": {"x": 40, "y": 80}}},
            ],
            now=T1,
        )

        self.assertTrue(all(r.applied for r in results), results)
        refs = {r.ref: r.node_id for r in results if r.ref}

        eng = find_node_by_id(new_root, refs["eng"])
        self.assertEqual(eng.department_head, "Sam")
        self.assertEqual(eng.children, ())

        frontend = find_node_by_id(new_root, refs["fe"])
        self.assertEqual(frontend.parent_id, refs["ops"])
        self.assertEqual(frontend.position, Position(x=40, y=80))
        self.assertEqual(frontend.updated_at, T1)
        self.assertEqual(validate_tree(new_root), [])

    def test_rejected_steps_are_reported_and_skipped(self):
        new_root, results = apply_commands(
            self.root,
            [
                AddNodeCommand(ref="eng", type=NodeType.DEPARTMENT, name="Engineering"),
                AddNodeCommand(parent_id="eng", type=NodeType.AUTOMATION, name="Cron"),
                MoveNodeCommand(id="eng", new_parent_id="missing"),
                DeleteNodeCommand(id=self.root.id),
                {"op": "explode", "id": "eng"},
                AddNodeCommand(parent_id="eng", type=NodeType.AGENT_SWARM, name="Bots"),
            ],
        )

        self.assertEqual(
            [r.applied for r in results], [True, False, False, False, False, True]
        )
        self.assertEqual(results[4].op, "explode")
        eng = find_node_by_id(new_root, results[0].node_id)
        self.assertEqual([c.name for c in eng.children], ["Bots"])

    def test_empty_or_fully_rejected_batch_returns_the_input_tree(self):
        new_root, results = apply_commands(self.root, [])
        self.assertIs(new_root, self.root)
        self.assertEqual(results, [])

        new_root, results = apply_commands(
            self.root, [{"op": "delete", "id": "nope"}, {"op": "update", "id": "nope", "name": "x"}]
        )
        self.assertIs(new_root, self.root)
        self.assertFalse(any(r.applied for r in results))

    def test_board_kind_governs_adds_and_moves(self):
        root = create_whiteboard("Pipelines", kind=BoardKind.AUTOMATION).root_node
        commands = [
            {"op": "add", "ref": "a", "type": "automation", "name": "Nightly"},
            {"op": "add", "parentId": "a", "type": "agent", "name": "Runner"},
        ]

        _, results = apply_commands(root, commands, BoardKind.AUTOMATION)
        self.assertEqual([r.applied for r in results], [True, True])

        _, results = apply_commands(root, commands, BoardKind.ORGANISATION)
        self.assertEqual([r.applied for r in results], [False, False])

    def test_input_tree_is_not_modified(self):
        snapshot = self.root.model_dump()
        apply_commands(self.root, [{"op": "add", "type": "department", "name": "Sales"}])
        self.assertEqual(self.root.model_dump(), snapshot)


if __name__ == "__main__":
    unittest.main()
