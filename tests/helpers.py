"""Shared fixtures for service tests."""

from __future__ import annotations

import datetime
import unittest

from dinewithfriends.core.constants import USERS_COLLECTION
from dinewithfriends.core.store import InMemoryStore
from dinewithfriends.user.models import Registration
from dinewithfriends.user.services import UserService

NOW = datetime.datetime(2026, 3, 2, 9, 0, tzinfo=datetime.timezone.utc)


class StoreTestCase(unittest.TestCase):
    """Base test case with an in-memory store and user factories."""

    def setUp(self) -> None:
        self.store = InMemoryStore()

    def create_user(self, handle: str, first_name: str = "Test") -> str:
        """Register a user and return the generated ID."""
        registration = Registration(
            email=f"{handle}@example.com", first_name=first_name, last_name=handle
        )
        registration.validate()
        user = UserService.register(self.store, f"uid-{handle}", registration)
        return user["id"]

    def make_friends(self, user_a: str, user_b: str) -> None:
        """Create a friendship through the request/accept flow."""
        UserService.send_friend_request(self.store, user_a, user_b, now=NOW)
        UserService.accept_friend_request(self.store, user_b, user_a)

    def get_user(self, user_id: str) -> dict:
        user = self.store.get(USERS_COLLECTION, user_id)
        assert user is not None
        return user
