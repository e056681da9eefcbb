"""Persistence port used by every service, plus the in-memory implementation.

Services never talk to Firestore directly. They receive a :class:`Store` and
run every read-modify-write through :meth:`Store.run_transaction`, which gives
them a :class:`Transaction`. Inside a transaction all reads must happen before
the first write, as Firestore requires.

Documents are plain dicts. Reads always return a copy of the stored fields with
the document ID added under ``"id"``; writes ignore an ``"id"`` key.
"""

from __future__ import annotations

import copy
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import Callable, Iterable
from typing import Any, TypeVar

from dinewithfriends.errors import ConcurrencyConflictError, NotFoundError

from .constants import DEFAULT_TRANSACTION_MAX_ATTEMPTS

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _greater(a: Any, b: Any) -> bool:
    return a is not None and b is not None and a > b


def _less(a: Any, b: Any) -> bool:
    return a is not None and b is not None and a < b


OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "==": lambda a, b: a == b,
    "!=": lambda a, b: a != b,
    "<": _less,
    "<=": lambda a, b: a == b or _less(a, b),
    ">": _greater,
    ">=": lambda a, b: a == b or _greater(a, b),
    "in": lambda a, b: a in b,
    "not-in": lambda a, b: a not in b,
    "array_contains": lambda a, b: isinstance(a, list) and b in a,
    "array_contains_any": lambda a, b: isinstance(a, list)
    and any(v in a for v in b),
}


def with_id(doc_id: str, data: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``data`` with the document ID attached."""
    return {**copy.deepcopy(data), "id": doc_id}


def strip_id(data: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``data`` without the ``id`` key."""
    return {k: copy.deepcopy(v) for k, v in data.items() if k != "id"}


class Transaction(ABC):
    """A unit of reads and buffered writes committed atomically."""

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        """Read a document inside the transaction."""

    @abstractmethod
    def where(
        self, collection: str, field: str, op: str, value: Any
    ) -> list[dict[str, Any]]:
        """Run a single-field query inside the transaction."""

    @abstractmethod
    def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        """Create or overwrite a document on commit."""

    @abstractmethod
    def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        """Merge top-level fields into an existing document on commit."""

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> None:
        """Delete a document on commit."""


class Store(ABC):
    """Record store supporting CRUD, simple filters and transactions."""

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        """Fetch a document by ID, or None if it does not exist."""

    @abstractmethod
    def get_many(self, collection: str, doc_ids: Iterable[str]) -> list[dict[str, Any]]:
        """Fetch several documents, skipping the ones that do not exist."""

    @abstractmethod
    def add(self, collection: str, data: dict[str, Any]) -> str:
        """Create a document with a generated ID and return the ID."""

    @abstractmethod
    def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        """Create or overwrite a document."""

    @abstractmethod
    def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        """Merge top-level fields into an existing document."""

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> None:
        """Delete a document. Deleting a missing document is a no-op."""

    @abstractmethod
    def where(
        self,
        collection: str,
        field: str,
        op: str,
        value: Any,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Return documents whose ``field`` satisfies ``op value``."""

    @abstractmethod
    def stream(self, collection: str) -> list[dict[str, Any]]:
        """Return every document of a collection."""

    @abstractmethod
    def new_id(self, collection: str) -> str:
        """Generate a fresh document ID for ``collection``."""

    @abstractmethod
    def run_transaction(
        self, fn: Callable[[Transaction], T], max_attempts: int | None = None
    ) -> T:
        """Run ``fn`` in a transaction, retrying on concurrent modification.

        Raises:
            ConcurrencyConflictError: If every attempt was aborted.
        """


class InMemoryTransaction(Transaction):
    """Optimistic transaction over an :class:`InMemoryStore`.

    Every document read records the version it saw. On commit the store checks
    that none of those versions moved; otherwise the attempt is discarded.
    Query reads only protect the documents they returned, so callers that need
    to guard against phantom inserts also read a shared lock document.
    """

    def __init__(self, store: InMemoryStore) -> None:
        self._store = store
        self._reads: dict[tuple[str, str], int] = {}
        self._writes: list[tuple[str, str, str, dict[str, Any] | None]] = []

    def _record(self, collection: str, doc_id: str) -> None:
        key = (collection, doc_id)
        self._reads.setdefault(key, self._store._versions[key])

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        with self._store._lock:
            self._record(collection, doc_id)
            return self._store.get(collection, doc_id)

    def where(
        self, collection: str, field: str, op: str, value: Any
    ) -> list[dict[str, Any]]:
        with self._store._lock:
            results = self._store.where(collection, field, op, value)
            for doc in results:
                self._record(collection, doc["id"])
            return results

    def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        self._writes.append(("set", collection, doc_id, strip_id(data)))

    def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        self._writes.append(("update", collection, doc_id, strip_id(data)))

    def delete(self, collection: str, doc_id: str) -> None:
        self._writes.append(("delete", collection, doc_id, None))

    def is_current(self) -> bool:
        """Return True if no document read by this transaction has changed."""
        versions = self._store._versions
        return all(versions[key] == seen for key, seen in self._reads.items())

    def apply(self) -> None:
        """Apply the buffered writes. Must be called with the store lock held."""
        collections = self._store._collections
        staged: dict[tuple[str, str], dict[str, Any] | None] = {}
        for op, collection, doc_id, data in self._writes:
            key = (collection, doc_id)
            current = staged[key] if key in staged else collections[collection].get(doc_id)
            if op == "set":
                staged[key] = data
            elif op == "update":
                if current is None:
                    raise NotFoundError(f"Document {collection}/{doc_id} not found.")
                staged[key] = {**current, **(data or {})}
            else:
                staged[key] = None
        for (collection, doc_id), data in staged.items():
            self._store._write(collection, doc_id, data)


class InMemoryStore(Store):
    """Thread-safe dictionary backed store for tests and local development."""

    def __init__(self, max_attempts: int = DEFAULT_TRANSACTION_MAX_ATTEMPTS) -> None:
        self.max_attempts = max_attempts
        self._collections: dict[str, dict[str, dict[str, Any]]] = defaultdict(dict)
        self._versions: dict[tuple[str, str], int] = defaultdict(int)
        self._lock = threading.RLock()

    def _write(self, collection: str, doc_id: str, data: dict[str, Any] | None) -> None:
        if data is None:
            self._collections[collection].pop(doc_id, None)
        else:
            self._collections[collection][doc_id] = data
        self._versions[(collection, doc_id)] += 1

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        with self._lock:
            data = self._collections[collection].get(doc_id)
            return with_id(doc_id, data) if data is not None else None

    def get_many(self, collection: str, doc_ids: Iterable[str]) -> list[dict[str, Any]]:
        results = []
        for doc_id in doc_ids:
            doc = self.get(collection, doc_id)
            if doc is not None:
                results.append(doc)
        return results

    def add(self, collection: str, data: dict[str, Any]) -> str:
        doc_id = self.new_id(collection)
        self.set(collection, doc_id, data)
        return doc_id

    def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        with self._lock:
            self._write(collection, doc_id, strip_id(data))

    def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        with self._lock:
            current = self._collections[collection].get(doc_id)
            if current is None:
                raise NotFoundError(f"Document {collection}/{doc_id} not found.")
            self._write(collection, doc_id, {**current, **strip_id(data)})

    def delete(self, collection: str, doc_id: str) -> None:
        with self._lock:
            if doc_id in self._collections[collection]:
                self._write(collection, doc_id, None)

    def where(
        self,
        collection: str,
        field: str,
        op: str,
        value: Any,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        compare = OPERATORS.get(op)
        if compare is None:
            raise ValueError(f"Unsupported query operator: {op}")
        with self._lock:
            results = [
                with_id(doc_id, data)
                for doc_id, data in self._collections[collection].items()
                if compare(data.get(field), value)
            ]
        return results[:limit] if limit else results

    def stream(self, collection: str) -> list[dict[str, Any]]:
        with self._lock:
            return [
                with_id(doc_id, data)
                for doc_id, data in self._collections[collection].items()
            ]

    def new_id(self, collection: str) -> str:
        return uuid.uuid4().hex

    def run_transaction(
        self, fn: Callable[[Transaction], T], max_attempts: int | None = None
    ) -> T:
        attempts = max_attempts or self.max_attempts
        for attempt in range(1, attempts + 1):
            transaction = InMemoryTransaction(self)
            result = fn(transaction)
            with self._lock:
                if transaction.is_current():
                    transaction.apply()
                    return result
            logger.warning(
                f"Transaction attempt {attempt}/{attempts} aborted by a concurrent write."
            )
        raise ConcurrencyConflictError()
