from __future__ import annotations

import unittest
from datetime import date, datetime

from pscan.rules.errors import ConfigConversionError, KeyPathError
from pscan.store.keypath import KeySegment, parse_key_path
from pscan.store.tree import ConfigTree, MemoryConfigTree


class KeyPathTests(unittest.TestCase):
    def test_parse_indexed_path(self) -> None:
        self.assertEqual(
            parse_key_path("pscans.autoTagScanners.scanner(12).name"),
            (
                KeySegment("pscans"),
                KeySegment("autoTagScanners"),
                KeySegment("scanner", 12),
                KeySegment("name"),
            ),
        )
        self.assertEqual(str(KeySegment("scanner", 3)), "scanner(3)")

    def test_malformed_paths_rejected(self) -> None:
        for bad in ("", "a..b", "a.b(", "a.b(-1)", "a.b(x)", "a.(0)", "a b"):
            with self.subTest(path=bad):
                with self.assertRaises(KeyPathError):
                    parse_key_path(bad)


class MemoryConfigTreeReadTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tree = MemoryConfigTree(
            {
                "pscans": {
                    "scanOnlyInScope": "TRUE",
                    "count": 3,
                    "flag01": 0,
                    "nested": {"leaf": "v"},
                    "empty": None,
                    "autoTagScanners": {
                        "scanner": [
                            {"name": "a", "enabled": False},
                            {"name": "b"},
                        ]
                    },
                }
            }
        )

    def test_satisfies_protocol(self) -> None:
        self.assertIsInstance(self.tree, ConfigTree)

    def test_read_string_conversions(self) -> None:
        self.assertEqual(self.tree.read_string("pscans.count"), "3")
        self.assertEqual(self.tree.read_string("pscans.autoTagScanners.scanner(0).enabled"), "false")
        self.assertEqual(self.tree.read_string("pscans.nested.leaf"), "v")
        self.assertEqual(self.tree.read_string("pscans.missing", "d"), "d")
        self.assertEqual(self.tree.read_string("pscans.empty", "d"), "d")
        self.assertIsNone(self.tree.read_string("pscans.nested.leaf.deeper"))

    def test_read_string_formats_dates_as_iso_text(self) -> None:
        tree = MemoryConfigTree({"d": date(2024, 1, 1), "ts": datetime(2024, 1, 1, 12, 30)})
        self.assertEqual(tree.read_string("d"), "2024-01-01")
        self.assertEqual(tree.read_string("ts"), "2024-01-01T12:30:00")

    def test_unindexed_segment_uses_first_element(self) -> None:
        self.assertEqual(self.tree.read_string("pscans.autoTagScanners.scanner.name"), "a")
        self.assertEqual(self.tree.read_string("pscans.autoTagScanners.scanner(1).name"), "b")
        self.assertEqual(self.tree.read_string("pscans.autoTagScanners.scanner(2).name", "none"), "none")

    def test_read_string_on_node_raises(self) -> None:
        with self.assertRaises(ConfigConversionError):
            self.tree.read_string("pscans.nested")

    def test_read_bool(self) -> None:
        self.assertTrue(self.tree.read_bool("pscans.scanOnlyInScope"))
        self.assertFalse(self.tree.read_bool("pscans.flag01", True))
        self.assertTrue(self.tree.read_bool("pscans.missing", True))
        with self.assertRaises(ConfigConversionError):
            self.tree.read_bool("pscans.count")
        with self.assertRaises(ConfigConversionError):
            self.tree.read_bool("pscans.nested.leaf")

    def test_list_child_nodes(self) -> None:
        nodes = self.tree.list_child_nodes("pscans.autoTagScanners.scanner")
        self.assertEqual([n.read_string("name") for n in nodes], ["a", "b"])
        only = self.tree.list_child_nodes("pscans.autoTagScanners.scanner(1)")
        self.assertEqual([n.read_string("name") for n in only], ["b"])
        self.assertEqual(self.tree.list_child_nodes("pscans.nothing.here"), [])
        self.assertEqual(self.tree.list_child_nodes("pscans.count.child"), [])

    def test_list_child_nodes_rejects_value_elements(self) -> None:
        with self.assertRaises(ConfigConversionError):
            self.tree.list_child_nodes("pscans.count")

    def test_child_nodes_share_storage(self) -> None:
        node = self.tree.list_child_nodes("pscans.autoTagScanners.scanner")[1]
        node.write("config", "c")
        self.assertEqual(self.tree.read_string("pscans.autoTagScanners.scanner(1).config"), "c")

    def test_root_must_be_mapping(self) -> None:
        with self.assertRaises(ConfigConversionError):
            MemoryConfigTree(["x"])  # type: ignore[arg-type]


class MemoryConfigTreeWriteTests(unittest.TestCase):
    def test_write_creates_intermediate_nodes(self) -> None:
        tree = MemoryConfigTree()
        tree.write("a.b(0).c", "x")
        tree.write("a.b(0).d", True)
        tree.write("a.b(1).c", "y")
        tree.write("a.flag", False)
        self.assertEqual(
            tree.to_dict(),
            {"a": {"b": [{"c": "x", "d": True}, {"c": "y"}], "flag": False}},
        )

    def test_write_index_past_end_rejected(self) -> None:
        tree = MemoryConfigTree()
        with self.assertRaises(KeyPathError):
            tree.write("a.b(1).c", "x")

    def test_write_through_value_rejected(self) -> None:
        tree = MemoryConfigTree({"a": "scalar"})
        with self.assertRaises(ConfigConversionError):
            tree.write("a.b", "x")

    def test_write_rejects_non_scalar(self) -> None:
        tree = MemoryConfigTree()
        with self.assertRaises(ConfigConversionError):
            tree.write("a", {"b": 1})  # type: ignore[arg-type]
        with self.assertRaises(ConfigConversionError):
            tree.write("a", None)  # type: ignore[arg-type]

    def test_write_indexed_over_single_mapping(self) -> None:
        tree = MemoryConfigTree({"a": {"b": {"c": "first"}}})
        tree.write("a.b(1).c", "second")
        self.assertEqual(tree.to_dict(), {"a": {"b": [{"c": "first"}, {"c": "second"}]}})

    def test_clear_subtree(self) -> None:
        tree = MemoryConfigTree({"a": {"b": [{"c": 1}, {"c": 2}], "keep": "k"}})
        tree.clear_subtree("a.b(0)")
        self.assertEqual(tree.to_dict(), {"a": {"b": [{"c": 2}], "keep": "k"}})
        tree.clear_subtree("a.b(0)")
        self.assertEqual(tree.to_dict(), {"a": {"keep": "k"}})
        tree.clear_subtree("a.b")
        tree.clear_subtree("x.y.z")
        self.assertEqual(tree.to_dict(), {"a": {"keep": "k"}})
        tree.clear_subtree("a")
        self.assertEqual(tree.to_dict(), {})

    def test_to_dict_is_a_copy(self) -> None:
        tree = MemoryConfigTree({"a": {"b": "c"}})
        snapshot = tree.to_dict()
        snapshot["a"]["b"] = "changed"
        self.assertEqual(tree.read_string("a.b"), "c")


if __name__ == "__main__":
    unittest.main()
