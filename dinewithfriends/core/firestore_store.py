"""Firestore implementation of the persistence port."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, TypeVar

from firebase_admin import firestore
from google.api_core import exceptions as google_exceptions

from dinewithfriends.errors import (
    ConcurrencyConflictError,
    NotFoundError,
    PersistenceTimeout,
)

from .constants import DEFAULT_PERSISTENCE_TIMEOUT, DEFAULT_TRANSACTION_MAX_ATTEMPTS
from .store import Store, Transaction, strip_id

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.transaction import Transaction as FsTransaction

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Message google-cloud-firestore uses when a transaction runs out of attempts.
_EXCEEDED_ATTEMPTS_PREFIX = "Failed to commit transaction in"


def snapshot_to_dict(snapshot: DocumentSnapshot) -> dict[str, Any] | None:
    """Convert a document snapshot to a dict carrying its ID."""
    if not snapshot.exists:
        return None
    data = snapshot.to_dict() or {}
    data["id"] = snapshot.id
    return data


class FirestoreTransaction(Transaction):
    """Adapter around a ``google.cloud.firestore`` transaction."""

    def __init__(
        self, db: Client, transaction: FsTransaction, options: dict[str, Any]
    ) -> None:
        self._db = db
        self._transaction = transaction
        self._options = options

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        ref = self._db.collection(collection).document(doc_id)
        return snapshot_to_dict(ref.get(transaction=self._transaction, **self._options))

    def where(
        self, collection: str, field: str, op: str, value: Any
    ) -> list[dict[str, Any]]:
        query = self._db.collection(collection).where(
            filter=firestore.FieldFilter(field, op, value)
        )
        snapshots = query.stream(transaction=self._transaction, **self._options)
        return [doc for doc in map(snapshot_to_dict, snapshots) if doc is not None]

    def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        ref = self._db.collection(collection).document(doc_id)
        self._transaction.set(ref, strip_id(data))

    def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        ref = self._db.collection(collection).document(doc_id)
        self._transaction.update(ref, strip_id(data))

    def delete(self, collection: str, doc_id: str) -> None:
        ref = self._db.collection(collection).document(doc_id)
        self._transaction.delete(ref)


class FirestoreStore(Store):
    """Store backed by Cloud Firestore through the Firebase Admin SDK."""

    def __init__(
        self,
        db: Client | None = None,
        timeout: float | None = DEFAULT_PERSISTENCE_TIMEOUT,
        max_attempts: int = DEFAULT_TRANSACTION_MAX_ATTEMPTS,
    ) -> None:
        self.db = db if db is not None else firestore.client()
        self.timeout = timeout
        self.max_attempts = max_attempts

    @property
    def options(self) -> dict[str, Any]:
        """Keyword arguments passed to every Firestore call."""
        return {"timeout": self.timeout} if self.timeout else {}

    @contextmanager
    def _guard(self) -> Iterator[None]:
        """Translate Firestore failures into application errors."""
        try:
            yield
        except (google_exceptions.DeadlineExceeded, google_exceptions.RetryError) as e:
            # RetryError is how the default retry policy reports a spent deadline.
            logger.error(f"Firestore call exceeded {self.timeout}s: {e}")
            raise PersistenceTimeout() from e
        except google_exceptions.NotFound as e:
            raise NotFoundError(str(e.message)) from e

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        with self._guard():
            snapshot = self.db.collection(collection).document(doc_id).get(**self.options)
            return snapshot_to_dict(snapshot)

    def get_many(self, collection: str, doc_ids: Iterable[str]) -> list[dict[str, Any]]:
        refs = [self.db.collection(collection).document(doc_id) for doc_id in doc_ids]
        if not refs:
            return []
        with self._guard():
            snapshots = self.db.get_all(refs, **self.options)
            return [doc for doc in map(snapshot_to_dict, snapshots) if doc is not None]

    def add(self, collection: str, data: dict[str, Any]) -> str:
        with self._guard():
            _, ref = self.db.collection(collection).add(strip_id(data), **self.options)
            return ref.id

    def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        with self._guard():
            self.db.collection(collection).document(doc_id).set(
                strip_id(data), **self.options
            )

    def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        with self._guard():
            self.db.collection(collection).document(doc_id).update(
                strip_id(data), **self.options
            )

    def delete(self, collection: str, doc_id: str) -> None:
        with self._guard():
            self.db.collection(collection).document(doc_id).delete(**self.options)

    def where(
        self,
        collection: str,
        field: str,
        op: str,
        value: Any,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        query = self.db.collection(collection).where(
            filter=firestore.FieldFilter(field, op, value)
        )
        if limit:
            query = query.limit(limit)
        with self._guard():
            snapshots = query.stream(**self.options)
            return [doc for doc in map(snapshot_to_dict, snapshots) if doc is not None]

    def stream(self, collection: str) -> list[dict[str, Any]]:
        with self._guard():
            snapshots = self.db.collection(collection).stream(**self.options)
            return [doc for doc in map(snapshot_to_dict, snapshots) if doc is not None]

    def new_id(self, collection: str) -> str:
        return self.db.collection(collection).document().id

    def run_transaction(
        self, fn: Callable[[Transaction], T], max_attempts: int | None = None
    ) -> T:
        transaction = self.db.transaction(max_attempts=max_attempts or self.max_attempts)

        @firestore.transactional
        def _run(fs_transaction: FsTransaction) -> T:
            return fn(FirestoreTransaction(self.db, fs_transaction, self.options))

        with self._guard():
            try:
                return _run(transaction)
            except google_exceptions.Aborted as e:
                logger.warning(f"Firestore transaction gave up: {e}")
                raise ConcurrencyConflictError() from e
            except ValueError as e:
                # The SDK raises ValueError once max_attempts is exhausted.
                if not str(e).startswith(_EXCEEDED_ATTEMPTS_PREFIX):
                    raise
                logger.warning(f"Firestore transaction gave up: {e}")
                raise ConcurrencyConflictError() from e
