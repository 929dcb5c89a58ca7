import json
import tempfile
import unittest
from pathlib import Path

import yaml

from enkabot import state


class StatePersistenceTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.data_dir = Path(self._tmp.name)
        self.users_file = self.data_dir / "users.json"
        self.aliases_file = self.data_dir / "aliases.yml"
        state.configure_state(users_file=self.users_file, aliases_file=self.aliases_file)
        state.user_bindings.clear()
        state.registered_aliases.clear()

    def tearDown(self) -> None:
        state.user_bindings.clear()
        state.registered_aliases.clear()
        self._tmp.cleanup()

    def test_bound_uid_round_trips_through_disk(self) -> None:
        state.bind_uid(42, "100000001")
        state.user_bindings.clear()
        state.restore_state()
        self.assertEqual(state.get_bound_uid(42), "100000001")
        self.assertIsNone(state.get_bound_uid(43))

    def test_aliases_are_written_as_yaml(self) -> None:
        state.add_alias("10000001", "Kate")
        state.add_alias("10000001", "Kate")
        state.add_alias("10000001", "K")
        payload = yaml.safe_load(self.aliases_file.read_text(encoding="utf-8"))
        self.assertEqual(payload, {"10000001": ["Kate", "K"]})

    def test_failed_alias_write_leaves_memory_untouched(self) -> None:
        state.add_alias("10000001", "Kate")
        state.configure_state(users_file=self.users_file, aliases_file=self.data_dir)
        with self.assertRaises(OSError):
            state.add_alias("10000001", "K")
        with self.assertRaises(OSError):
            state.add_alias("10000002", "Ayaya")
        self.assertEqual(state.registered_aliases, {"10000001": ["Kate"]})

    def test_operator_edited_alias_table_is_loaded(self) -> None:
        self.aliases_file.write_text("10000002:\n  - Ayaya\n  - 白鹭公主\n10000003: Jean-sama\n", encoding="utf-8")
        aliases = state.load_aliases_from_disk()
        self.assertEqual(aliases, {"10000002": ["Ayaya", "白鹭公主"], "10000003": ["Jean-sama"]})

    def test_corrupt_files_are_treated_as_empty(self) -> None:
        self.users_file.write_text("{broken", encoding="utf-8")
        self.aliases_file.write_text("key: [unterminated", encoding="utf-8")
        self.assertEqual(state.load_user_bindings_from_disk(), {})
        self.assertEqual(state.load_aliases_from_disk(), {})

    def test_malformed_binding_entries_are_skipped(self) -> None:
        self.users_file.write_text(json.dumps({"1": {"uid": "100000001"}, "2": "oops"}), encoding="utf-8")
        self.assertEqual(state.load_user_bindings_from_disk(), {"1": {"uid": "100000001"}})

    def test_persist_requires_configuration(self) -> None:
        state.configure_state(users_file=None, aliases_file=None)
        with self.assertRaises(RuntimeError):
            state.persist_user_bindings()
        with self.assertRaises(RuntimeError):
            state.persist_aliases()


if __name__ == "__main__":
    unittest.main()
