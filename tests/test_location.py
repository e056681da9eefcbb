"""Tests for live locations and per-friend visibility."""

from __future__ import annotations

import datetime
import unittest

from dinewithfriends.errors import NotFriendsError, ValidationError
from dinewithfriends.user.services import UserService
from tests.helpers import NOW, StoreTestCase


class LocationTestCase(StoreTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.alice = self.create_user("alice")
        self.bob = self.create_user("bob")
        self.make_friends(self.alice, self.bob)

    def test_effective_location_expires(self) -> None:
        UserService.update_location(self.store, self.alice, "foco", now=NOW)
        alice = self.get_user(self.alice)

        later = NOW + datetime.timedelta(minutes=89)
        self.assertEqual(UserService.effective_location(alice, later), "foco")
        expired = NOW + datetime.timedelta(minutes=90)
        self.assertEqual(UserService.effective_location(alice, expired), "ghost")

    def test_never_updated_is_offline(self) -> None:
        self.assertEqual(
            UserService.effective_location(self.get_user(self.alice), NOW), "ghost"
        )

    def test_unknown_place(self) -> None:
        with self.assertRaises(ValidationError):
            UserService.update_location(self.store, self.alice, "moon", now=NOW)
        with self.assertRaises(ValidationError):
            UserService.update_location(self.store, self.alice, ["foco"], now=NOW)

    def test_visibility_requires_friendship(self) -> None:
        carol = self.create_user("carol")
        with self.assertRaises(NotFriendsError) as cm:
            UserService.set_location_visibility(self.store, self.alice, carol, True)
        self.assertEqual(cm.exception.kind, "NotFound")

    def test_friend_locations_respect_visibility(self) -> None:
        UserService.update_location(self.store, self.alice, "collis", now=NOW)

        # Edges start hidden.
        self.assertEqual(UserService.get_friend_locations(self.store, self.bob, NOW), [])

        UserService.set_location_visibility(self.store, self.alice, self.bob, True)
        locations = UserService.get_friend_locations(self.store, self.bob, NOW)
        self.assertEqual(len(locations), 1)
        self.assertEqual(locations[0]["user"]["id"], self.alice)
        self.assertEqual(locations[0]["location"], "collis")
        self.assertEqual(locations[0]["locationName"], "Collis Center")

        # Alice's visibility toward Bob does not expose Bob to Alice.
        UserService.update_location(self.store, self.bob, "hop", now=NOW)
        self.assertEqual(
            UserService.get_friend_locations(self.store, self.alice, NOW), []
        )

    def test_friend_locations_hide_offline_and_expired(self) -> None:
        UserService.set_location_visibility(self.store, self.alice, self.bob, True)
        UserService.update_location(self.store, self.alice, "fern", now=NOW)

        later = NOW + datetime.timedelta(hours=2)
        self.assertEqual(
            UserService.get_friend_locations(self.store, self.bob, later), []
        )

        UserService.update_location(self.store, self.alice, "ghost", now=NOW)
        self.assertEqual(UserService.get_friend_locations(self.store, self.bob, NOW), [])


if __name__ == "__main__":
    unittest.main()
