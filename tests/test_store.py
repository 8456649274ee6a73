"""Tests for the in-memory design store: mutations, selection and history."""

from __future__ import annotations

import unittest

from playset.catalog import Vector3D, get_component
from playset.store import MAX_HISTORY, DesignStore, new_connection_id, new_instance_id, store_to_dict
from playset.validation import RuleRegistry, ValidationEngine
from tests.playset_fixture import catalog, make_starter_design


def _component(component_id: str):
    return get_component(catalog(), component_id)


class TestIds(unittest.TestCase):

    def test_instance_id_format(self):
        self.assertRegex(new_instance_id("deck-4ft"), r"^deck-4ft-\d{13}-[a-z0-9]{9}$")
        self.assertRegex(new_connection_id(), r"^conn-\d{13}-[a-z0-9]{9}$")

    def test_ids_unique(self):
        self.assertEqual(len({new_instance_id("x") for _ in range(50)}), 50)


class TestComponents(unittest.TestCase):

    def setUp(self):
        self.store = DesignStore()

    def test_add_snaps_selects_and_validates(self):
        iid = self.store.add_component(_component("deck-4ft"), Vector3D(2.4, 3.6, 4))
        placed = self.store.design.find(iid)
        self.assertEqual((placed.position.x, placed.position.y, placed.position.z), (2, 4, 4))
        self.assertEqual(self.store.ui.selected_component_ids, [iid])
        self.assertEqual(self.store.design.metadata.total_price, _component("deck-4ft").price)
        # Elevated deck with no ladder.
        self.assertFalse(self.store.validation.is_valid)

    def test_add_without_snapping(self):
        self.store.toggle_snap_to_grid()
        iid = self.store.add_component(_component("deck-4ft"), Vector3D(2.4, 3.6, 0))
        self.assertEqual(self.store.design.find(iid).position.x, 2.4)

    def test_remove_cascades_connections(self):
        self.store.load_design(make_starter_design())
        self.store.select_component("deck_1")
        self.assertTrue(self.store.remove_component("deck_1"))
        self.assertIsNone(self.store.design.find("deck_1"))
        self.assertEqual(self.store.design.all_connections(), [])
        self.assertEqual(self.store.ui.selected_component_ids, [])
        self.assertEqual(self.store.design.metadata.component_count, 2)

    def test_remove_unknown(self):
        self.assertFalse(self.store.remove_component("nope"))
        self.assertFalse(self.store.can_undo())

    def test_move_and_rotate_not_recorded(self):
        self.store.load_design(make_starter_design())
        self.store.update_component_position("ladder_1", Vector3D(-13, 0, 0))
        self.store.update_component_rotation("ladder_1", Vector3D(0, 0, 90))
        placed = self.store.design.find("ladder_1")
        self.assertEqual(placed.position.x, -13)
        self.assertEqual(placed.rotation.z, 90)
        self.assertFalse(self.store.can_undo())

    def test_duplicate(self):
        self.store.load_design(make_starter_design())
        copy_id = self.store.duplicate_component("ladder_1")
        duplicate = self.store.design.find(copy_id)
        self.assertTrue(copy_id.startswith("ladder-4ft-"))
        self.assertEqual((duplicate.position.x, duplicate.position.y), (-10, 2))
        self.assertEqual(duplicate.connections, [])
        self.assertEqual(self.store.ui.selected_component_ids, [copy_id])
        self.assertEqual(len(self.store.design.find("ladder_1").connections), 1)
        self.assertIsNone(self.store.duplicate_component("nope"))


class TestConnections(unittest.TestCase):

    def setUp(self):
        self.store = DesignStore()
        self.store.load_design(make_starter_design())
        self.store.remove_component("slide_1")

    def test_create_and_remove(self):
        slide = self.store.add_component(_component("wave-slide-8ft"), Vector3D(12, 0, 0))
        self.assertFalse(self.store.validation.is_valid)
        conn_id = self.store.create_connection(slide, "deck_1", "entry", "east", "slide")
        self.assertTrue(conn_id.startswith("conn-"))
        self.assertTrue(self.store.validation.is_valid, [e.message for e in self.store.validation.errors])
        self.store.remove_connection(conn_id)
        self.assertFalse(self.store.validation.is_valid)

    def test_unknown_owner(self):
        with self.assertRaises(KeyError):
            self.store.create_connection("ghost", "deck_1", "entry", "east", "slide")

    def test_unknown_target(self):
        with self.assertRaises(KeyError):
            self.store.create_connection("ladder_1", "ghost", "top", "west", "deck")
        self.assertEqual(len(self.store.design.find("ladder_1").connections), 1)
        self.assertEqual(len(self.store.history.past), 1)

    def test_self_connection_refused(self):
        with self.assertRaises(ValueError):
            self.store.create_connection("deck_1", "deck_1", "east", "west", "deck")
        self.assertEqual(self.store.design.find("deck_1").connections, [])


class TestSelection(unittest.TestCase):

    def test_select_multi_and_clear(self):
        store = DesignStore()
        store.select_component("a")
        store.select_component("b", multi=True)
        self.assertEqual(store.ui.selected_component_ids, ["a", "b"])
        store.select_component("c")
        self.assertEqual(store.ui.selected_component_ids, ["c"])
        store.deselect_component("c")
        self.assertEqual(store.ui.selected_component_ids, [])
        store.highlight_components(["x", "y"])
        self.assertEqual(store.ui.highlighted_component_ids, ["x", "y"])
        store.clear_highlight()
        self.assertEqual(store.ui.highlighted_component_ids, [])


class TestHistory(unittest.TestCase):

    def test_undo_redo_add(self):
        store = DesignStore()
        iid = store.add_component(_component("deck-4ft"), Vector3D(0, 0, 0))
        self.assertTrue(store.undo())
        self.assertIsNone(store.design.find(iid))
        self.assertTrue(store.can_redo())
        self.assertTrue(store.redo())
        self.assertIsNotNone(store.design.find(iid))
        self.assertFalse(store.redo())

    def test_new_mutation_clears_future(self):
        store = DesignStore()
        store.add_component(_component("deck-4ft"), Vector3D(0, 0, 0))
        store.undo()
        store.add_component(_component("deck-5ft"), Vector3D(0, 0, 0))
        self.assertFalse(store.can_redo())

    def test_undo_restores_snapshot_not_alias(self):
        """Edits after a snapshot do not leak back into it."""
        store = DesignStore()
        iid = store.add_component(_component("deck-4ft"), Vector3D(0, 0, 0))
        store.add_component(_component("ladder-4ft"), Vector3D(-10, 0, 0))
        store.update_component_position(iid, Vector3D(50, 50, 0))
        store.undo()
        self.assertEqual(store.design.find(iid).position.x, 0)

    def test_history_capped(self):
        store = DesignStore(ValidationEngine(RuleRegistry()))
        deck = _component("deck-4ft")
        for i in range(MAX_HISTORY + 5):
            store.add_component(deck, Vector3D(i * 10, 0, 0))
        self.assertEqual(len(store.history.past), MAX_HISTORY)

    def test_undo_empty(self):
        self.assertFalse(DesignStore().undo())

    def test_clear_is_undoable(self):
        store = DesignStore()
        store.load_design(make_starter_design())
        self.assertFalse(store.can_undo())
        store.clear_design()
        self.assertEqual(store.design.components, [])
        self.assertTrue(store.validation.is_valid)
        store.undo()
        self.assertEqual(len(store.design.components), 3)


class TestDesignAndUi(unittest.TestCase):

    def test_load_recomputes_metadata(self):
        design = make_starter_design()
        design.metadata.total_price = 1
        store = DesignStore()
        store.load_design(design)
        self.assertEqual(store.design.metadata.total_price, 8900)
        self.assertIsNot(store.design, design)
        self.assertTrue(store.validation.is_valid)

    def test_rename(self):
        store = DesignStore()
        store.update_design_name("Backyard Fort")
        self.assertEqual(store.design.name, "Backyard Fort")
        self.assertFalse(store.can_undo())

    def test_ui_setters(self):
        store = DesignStore()
        store.set_view_mode("3D")
        store.set_active_category("slides")
        store.set_grid_size(0.5)
        self.assertEqual(store.ui.view_mode, "3D")
        self.assertEqual(store.ui.active_category, "slides")
        self.assertEqual(store.snap(Vector3D(1.3, 1.8, 2.2)).y, 2.0)
        with self.assertRaises(ValueError):
            store.set_view_mode("VR")
        with self.assertRaises(ValueError):
            store.set_grid_size(0)

    def test_store_to_dict(self):
        store = DesignStore()
        store.load_design(make_starter_design())
        d = store_to_dict(store)
        self.assertEqual(set(d), {"design", "ui", "validation", "canUndo", "canRedo"})
        self.assertEqual(d["ui"]["viewMode"], "2D")
        self.assertTrue(d["validation"]["isValid"])
        self.assertFalse(d["canUndo"])


if __name__ == "__main__":
    unittest.main()
