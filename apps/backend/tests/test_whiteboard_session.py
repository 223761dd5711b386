import sys
import threading
import unittest
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from orgboard.whiteboard.schema import BoardKind, NodeType, create_whiteboard
from orgboard.whiteboard.session import WhiteboardSession
from orgboard.whiteboard.tree import collect_node_ids, find_node_by_id
from orgboard.whiteboard.validation import validate_tree


def _child_named(node, name):
    return next(child for child in node.children if child.name == name)


class WhiteboardSessionTests(unittest.TestCase):
    def setUp(self) -> None:
        self.session = WhiteboardSession(create_whiteboard("Acme Org", "Testing structure"))
        self.root_id = self.session.root.id

    def test_create_update_delete_round(self):
        self.assertEqual(self.session.breadcrumbs, [self.root_id])
        self.assertEqual(self.session.root.type, NodeType.ORGANISATION)

        self.assertTrue(
            self.session.create_node(
                {"parentId": self.root_id, "type": "department", "name": "Engineering"}
            )
        )
        department = _child_named(self.session.root, "Engineering")

        self.assertTrue(self.session.select_node(department.id))
        self.assertEqual(self.session.selected_node.name, "Engineering")

        self.assertTrue(
            self.session.update_node({"id": department.id, "name": "Engineering & Platform"})
        )
        self.assertEqual(self.session.selected_node.name, "Engineering & Platform")

        self.assertTrue(self.session.delete_node(department.id))
        self.assertIsNone(find_node_by_id(self.session.root, department.id))
        self.assertIsNone(self.session.selected_node)

    def test_rejected_edits_do_not_touch_history(self):
        self.assertFalse(self.session.create_node({"type": "agent", "name": "Bot"}))
        self.assertFalse(self.session.delete_node(self.root_id))
        self.assertFalse(self.session.move_node("missing", self.root_id))
        self.assertFalse(self.session.set_positions({"missing": {"x": 1, "y": 2}}))
        self.assertFalse(self.session.can_undo)

    def test_undo_and_redo_restore_previous_trees(self):
        before = self.session.root
        self.session.create_node({"type": "department", "name": "Sales"})
        after = self.session.root

        self.assertTrue(self.session.undo())
        self.assertIs(self.session.root, before)
        self.assertFalse(self.session.undo())

        self.assertTrue(self.session.redo())
        self.assertIs(self.session.root, after)
        self.assertFalse(self.session.redo())

    def test_new_edit_clears_redo(self):
        self.session.create_node({"type": "department", "name": "Sales"})
        self.session.undo()
        self.session.create_node({"type": "department", "name": "Finance"})
        self.assertFalse(self.session.can_redo)

    def test_history_is_bounded(self):
        session = WhiteboardSession(create_whiteboard("Acme"), history_limit=2)
        for name in ("A", "B", "C"):
            session.create_node({"type": "department", "name": name})
        self.assertTrue(session.undo())
        self.assertTrue(session.undo())
        self.assertFalse(session.undo())
        self.assertEqual([c.name for c in session.root.children], ["A"])

    def test_navigation_follows_the_tree(self):
        self.session.create_node({"type": "department", "name": "Engineering"})
        department = _child_named(self.session.root, "Engineering")
        self.session.create_node({"parentId": department.id, "type": "team", "name": "Frontend"})
        team = _child_named(find_node_by_id(self.session.root, department.id), "Frontend")

        self.assertFalse(self.session.drill_down(team.id))  # not a direct child of the root
        self.assertTrue(self.session.drill_down(department.id))
        self.assertTrue(self.session.drill_down(team.id))
        self.assertEqual(self.session.breadcrumbs, [self.root_id, department.id, team.id])
        self.assertEqual(self.session.current_node.name, "Frontend")

        self.assertTrue(self.session.navigate_to_breadcrumb(0))
        self.assertEqual(self.session.breadcrumbs, [self.root_id])
        self.assertFalse(self.session.navigate_to_breadcrumb(3))
        self.assertFalse(self.session.drill_up())

        self.session.focus_node(team.id)
        self.assertEqual(self.session.breadcrumbs, [self.root_id, department.id, team.id])
        self.assertTrue(self.session.drill_up())
        self.assertEqual(self.session.current_node.id, department.id)

    def test_breadcrumbs_are_repaired_after_structural_edits(self):
        self.session.create_node({"type": "department", "name": "Engineering"})
        department = _child_named(self.session.root, "Engineering")
        self.session.drill_down(department.id)

        self.session.delete_node(department.id)
        self.assertEqual(self.session.breadcrumbs, [self.root_id])

        self.session.undo()
        self.assertEqual(self.session.breadcrumbs, [self.root_id])

    def test_command_batch_is_one_history_entry(self):
        results = self.session.apply_commands(
            [
                {"op": "add", "ref": "eng", "type": "department", "name": "Engineering"},
                {"op": "add", "parentId": "eng", "type": "team", "name": "Frontend"},
                {"op": "add", "parentId": "eng", "type": "tool", "name": "Hammer"},
            ]
        )
        self.assertEqual([r.applied for r in results], [True, True, False])
        self.assertEqual(len(collect_node_ids(self.session.root)), 3)

        self.session.undo()
        self.assertEqual(collect_node_ids(self.session.root), {self.root_id})

    def test_automation_board_session_uses_board_rules(self):
        session = WhiteboardSession(create_whiteboard("Pipelines", kind=BoardKind.AUTOMATION))
        self.assertTrue(session.create_node({"type": "agent", "name": "Runner"}))
        self.assertTrue(session.create_node({"type": "automation", "name": "Nightly"}))
        self.assertFalse(session.create_node({"type": "department", "name": "Sales"}))

    def test_on_change_sees_every_accepted_version(self):
        seen = []
        session = WhiteboardSession(create_whiteboard("Acme"), on_change=seen.append)

        session.create_node({"type": "department", "name": "Sales"})
        session.create_node({"type": "agent", "name": "Bot"})  # rejected
        session.undo()
        session.redo()

        self.assertEqual(len(seen), 3)
        self.assertEqual([len(wb.root_node.children) for wb in seen], [1, 0, 1])
        self.assertIs(seen[-1], session.whiteboard)

    def test_layer_colors_merge_without_history(self):
        seen = []
        session = WhiteboardSession(create_whiteboard("Acme"), on_change=seen.append)

        session.set_layer_colors({NodeType.TEAM: "#000000"})
        session.set_layer_colors({NodeType.AGENT: "#ffffff"})

        self.assertEqual(
            session.whiteboard.layer_colors,
            {NodeType.TEAM: "#000000", NodeType.AGENT: "#ffffff"},
        )
        self.assertEqual(len(seen), 2)
        self.assertFalse(session.can_undo)

    def test_concurrent_callers_are_serialised(self):
        def add_departments(prefix: str) -> None:
            for i in range(25):
                self.session.create_node({"type": "department", "name": f"{prefix}-{i}"})

        threads = [threading.Thread(target=add_departments, args=(p,)) for p in "abcd"]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(len(self.session.root.children), 100)
        self.assertEqual(validate_tree(self.session.root), [])


if __name__ == "__main__":
    unittest.main()
