"""Core module for the dinewithfriends application."""

from .store import InMemoryStore, Store, Transaction
from .types import StoredDocument

__all__ = ["InMemoryStore", "Store", "StoredDocument", "Transaction"]
