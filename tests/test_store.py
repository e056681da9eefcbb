"""Tests for the in-memory store and its optimistic transactions."""

from __future__ import annotations

import unittest
from typing import Any

from dinewithfriends.core.store import InMemoryStore, Transaction
from dinewithfriends.errors import ConcurrencyConflictError, NotFoundError


class InMemoryStoreTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.store = InMemoryStore()

    def test_add_and_get(self) -> None:
        doc_id = self.store.add("things", {"name": "a"})
        self.assertEqual(self.store.get("things", doc_id), {"name": "a", "id": doc_id})
        self.assertIsNone(self.store.get("things", "missing"))

    def test_reads_are_copies(self) -> None:
        self.store.set("things", "t1", {"tags": ["x"]})
        doc = self.store.get("things", "t1")
        assert doc is not None
        doc["tags"].append("y")
        self.assertEqual(self.store.get("things", "t1")["tags"], ["x"])

    def test_update_merges_and_ignores_id(self) -> None:
        self.store.set("things", "t1", {"a": 1, "b": 2})
        self.store.update("things", "t1", {"b": 3, "id": "other"})
        self.assertEqual(self.store.get("things", "t1"), {"a": 1, "b": 3, "id": "t1"})

    def test_update_missing_document(self) -> None:
        with self.assertRaises(NotFoundError):
            self.store.update("things", "missing", {"a": 1})

    def test_delete_missing_is_noop(self) -> None:
        self.store.delete("things", "missing")
        self.assertEqual(self.store.stream("things"), [])

    def test_get_many_skips_missing(self) -> None:
        self.store.set("things", "t1", {"n": 1})
        self.store.set("things", "t2", {"n": 2})
        docs = self.store.get_many("things", ["t2", "nope", "t1"])
        self.assertEqual([d["id"] for d in docs], ["t2", "t1"])

    def test_where_operators(self) -> None:
        self.store.set("things", "t1", {"n": 1, "tags": ["a", "b"]})
        self.store.set("things", "t2", {"n": 5, "tags": ["c"]})
        self.store.set("things", "t3", {"tags": []})

        def ids(docs: list[dict[str, Any]]) -> set[str]:
            return {d["id"] for d in docs}

        self.assertEqual(ids(self.store.where("things", "n", "==", 1)), {"t1"})
        self.assertEqual(ids(self.store.where("things", "n", ">", 1)), {"t2"})
        self.assertEqual(ids(self.store.where("things", "n", "<=", 5)), {"t1", "t2"})
        self.assertEqual(
            ids(self.store.where("things", "tags", "array_contains", "c")), {"t2"}
        )
        self.assertEqual(
            ids(self.store.where("things", "tags", "array_contains_any", ["a", "c"])),
            {"t1", "t2"},
        )
        self.assertEqual(ids(self.store.where("things", "n", "in", [5, 7])), {"t2"})
        self.assertEqual(len(self.store.where("things", "n", "<=", 5, limit=1)), 1)

    def test_where_unknown_operator(self) -> None:
        with self.assertRaises(ValueError):
            self.store.where("things", "n", "~=", 1)


class InMemoryTransactionTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.store = InMemoryStore(max_attempts=3)
        self.store.set("counters", "c1", {"value": 0})

    def test_commit_applies_buffered_writes(self) -> None:
        def increment(transaction: Transaction) -> int:
            counter = transaction.get("counters", "c1")
            assert counter is not None
            transaction.update("counters", "c1", {"value": counter["value"] + 1})
            transaction.set("counters", "c2", {"value": 10})
            # Writes are not visible before commit.
            self.assertIsNone(self.store.get("counters", "c2"))
            return counter["value"] + 1

        self.assertEqual(self.store.run_transaction(increment), 1)
        self.assertEqual(self.store.get("counters", "c1")["value"], 1)
        self.assertEqual(self.store.get("counters", "c2")["value"], 10)

    def test_exception_discards_writes(self) -> None:
        def failing(transaction: Transaction) -> None:
            transaction.update("counters", "c1", {"value": 99})
            raise NotFoundError("boom")

        with self.assertRaises(NotFoundError):
            self.store.run_transaction(failing)
        self.assertEqual(self.store.get("counters", "c1")["value"], 0)

    def test_concurrent_write_triggers_retry(self) -> None:
        attempts = []

        def increment(transaction: Transaction) -> None:
            counter = transaction.get("counters", "c1")
            assert counter is not None
            attempts.append(counter["value"])
            if len(attempts) == 1:
                # Another writer sneaks in between our read and commit.
                self.store.update("counters", "c1", {"value": 5})
            transaction.update("counters", "c1", {"value": counter["value"] + 1})

        self.store.run_transaction(increment)
        self.assertEqual(attempts, [0, 5])
        self.assertEqual(self.store.get("counters", "c1")["value"], 6)

    def test_retries_are_bounded(self) -> None:
        attempts = []

        def always_contended(transaction: Transaction) -> None:
            counter = transaction.get("counters", "c1")
            assert counter is not None
            attempts.append(1)
            self.store.update("counters", "c1", {"value": counter["value"] + 1})
            transaction.update("counters", "c1", {"value": -1})

        with self.assertRaises(ConcurrencyConflictError) as cm:
            self.store.run_transaction(always_contended)
        self.assertEqual(len(attempts), 3)
        self.assertEqual(cm.exception.code, "ConcurrencyConflict")
        self.assertEqual(self.store.get("counters", "c1")["value"], 3)

    def test_missing_document_read_is_protected(self) -> None:
        attempts = []

        def claim(transaction: Transaction) -> None:
            lock = transaction.get("locks", "l1")
            attempts.append(lock)
            if len(attempts) == 1:
                self.store.set("locks", "l1", {"owner": "someone"})
            transaction.set("locks", "l1", {"owner": "me"})

        self.store.run_transaction(claim)
        self.assertIsNone(attempts[0])
        self.assertEqual(attempts[1]["owner"], "someone")

    def test_update_of_missing_document_fails_on_commit(self) -> None:
        def update_missing(transaction: Transaction) -> None:
            transaction.update("counters", "ghost", {"value": 1})

        with self.assertRaises(NotFoundError):
            self.store.run_transaction(update_missing)

    def test_set_then_update_in_same_transaction(self) -> None:
        def create_then_patch(transaction: Transaction) -> None:
            transaction.set("counters", "c3", {"value": 1, "label": "x"})
            transaction.update("counters", "c3", {"value": 2})

        self.store.run_transaction(create_then_patch)
        self.assertEqual(
            self.store.get("counters", "c3"), {"value": 2, "label": "x", "id": "c3"}
        )


if __name__ == "__main__":
    unittest.main()
