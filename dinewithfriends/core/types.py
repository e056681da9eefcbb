"""Core data types for the dinewithfriends application."""

from typing import Any, TypedDict


class _StoredDocumentBase(TypedDict):
    id: str
    createdAt: Any


class StoredDocument(_StoredDocumentBase, total=False):
    """Generic stored document structure, as returned by the store."""

    updatedAt: Any
