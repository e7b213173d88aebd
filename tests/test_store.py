import tempfile
import unittest
from pathlib import Path

from chesspartner.errors import StoreError
from chesspartner.store import InMemorySessionStore, JsonFileSessionStore, create_store

_RECORD = {
    "game_id": "g1",
    "start_position": "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1",
    "position": "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1",
    "move_record": ["e4"],
    "status": "ongoing",
    "end_reason": None,
}


class InMemorySessionStoreTests(unittest.TestCase):
    def test_records_are_copied(self) -> None:
        store = InMemorySessionStore()
        record = dict(_RECORD, move_record=["e4"])
        store.put("g1", record)
        record["move_record"].append("e5")
        fetched = store.get("g1")
        fetched["status"] = "ended"
        self.assertEqual(store.get("g1"), _RECORD)

    def test_delete_and_ids(self) -> None:
        store = InMemorySessionStore()
        store.put("a", _RECORD)
        store.put("b", _RECORD)
        self.assertEqual(sorted(store.ids()), ["a", "b"])
        self.assertTrue(store.delete("a"))
        self.assertFalse(store.delete("a"))
        self.assertEqual(len(store), 1)


class JsonFileSessionStoreTests(unittest.TestCase):
    def test_round_trip(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            store = JsonFileSessionStore(Path(tmp) / "sessions")
            store.put("g1", _RECORD)
            self.assertEqual(JsonFileSessionStore(Path(tmp) / "sessions").get("g1"), _RECORD)
            self.assertIsNone(store.get("other"))
            self.assertEqual(list(Path(tmp, "sessions").glob("*.tmp")), [])

    def test_unsafe_ids_get_distinct_files(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            store = JsonFileSessionStore(Path(tmp))
            for game_id in ("a/b", "a_b", "a b", "../escape"):
                store.put(game_id, dict(_RECORD, game_id=game_id))
            files = list(Path(tmp).iterdir())
            ids = sorted(store.ids())
            self.assertEqual(store.get("../escape")["game_id"], "../escape")
        self.assertEqual(len(files), 4)
        self.assertTrue(all(f.parent == Path(tmp) for f in files))
        self.assertEqual(ids, sorted(["a/b", "a_b", "a b", "../escape"]))

    def test_corrupt_file_raises_store_error(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            store = JsonFileSessionStore(Path(tmp))
            (Path(tmp) / "g1.json").write_text("{broken", encoding="utf-8")
            with self.assertRaises(StoreError):
                store.get("g1")
            (Path(tmp) / "g2.json").write_text("[1, 2]", encoding="utf-8")
            with self.assertRaises(StoreError):
                store.get("g2")

    def test_delete(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            store = JsonFileSessionStore(Path(tmp))
            store.put("g1", _RECORD)
            self.assertTrue(store.delete("g1"))
            self.assertFalse(store.delete("g1"))
            self.assertIsNone(store.get("g1"))


class CreateStoreTests(unittest.TestCase):
    def test_kinds(self) -> None:
        self.assertIsInstance(create_store("memory"), InMemorySessionStore)
        with tempfile.TemporaryDirectory() as tmp:
            self.assertIsInstance(create_store("file", Path(tmp)), JsonFileSessionStore)
        with self.assertRaises(ValueError):
            create_store("file")
        with self.assertRaises(ValueError):
            create_store("redis")


if __name__ == "__main__":
    unittest.main()
