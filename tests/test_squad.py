"""Tests for squad membership."""

from __future__ import annotations

import datetime
import unittest

from dinewithfriends.errors import (
    AlreadyMemberError,
    CreatorMustTransferError,
    ForbiddenError,
    NotAMemberError,
    SquadNameTakenError,
    SquadNotFoundError,
    UserNotFoundError,
    ValidationError,
)
from dinewithfriends.squad.models import SquadSubmission, SquadUpdate
from dinewithfriends.squad.services import SquadService
from dinewithfriends.utils import parse_payload
from tests.helpers import NOW, StoreTestCase


class SquadTestCase(StoreTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.alice = self.create_user("alice")
        self.bob = self.create_user("bob")
        self.carol = self.create_user("carol")

    def _create(self, name: str = "Lunch Crew", members=None) -> dict:
        submission = SquadSubmission(name=name, members=members or [self.bob])
        submission.validate()
        return SquadService.create(self.store, self.alice, submission, now=NOW)

    def test_create_puts_creator_first(self) -> None:
        squad = self._create(members=[self.bob, self.alice, self.bob])
        self.assertEqual(squad["members"], [self.alice, self.bob])
        self.assertEqual(squad["createdBy"], self.alice)
        self.assertEqual(SquadService.get_squad(self.store, squad["id"])["name"], "Lunch Crew")

    def test_create_requires_another_member(self) -> None:
        with self.assertRaises(ValidationError):
            self._create(members=[self.alice])

    def test_create_with_unknown_member(self) -> None:
        with self.assertRaises(UserNotFoundError):
            self._create(members=["ghost-user"])

    def test_create_rejects_blank_name(self) -> None:
        with self.assertRaises(ValidationError):
            parse_payload(SquadSubmission, {"name": "  ", "members": [self.bob]})

    def test_name_must_be_unique(self) -> None:
        self._create()
        with self.assertRaises(SquadNameTakenError):
            self._create()

    def test_add_member(self) -> None:
        squad = self._create()
        later = NOW + datetime.timedelta(hours=1)
        updated = SquadService.add_member(
            self.store, self.bob, squad["id"], self.carol, now=later
        )
        self.assertEqual(updated["members"], [self.alice, self.bob, self.carol])
        self.assertEqual(
            SquadService.get_squad(self.store, squad["id"])["lastActiveAt"], later
        )

    def test_add_member_errors(self) -> None:
        squad = self._create()
        with self.assertRaises(ForbiddenError):
            SquadService.add_member(self.store, self.carol, squad["id"], self.carol)
        with self.assertRaises(AlreadyMemberError):
            SquadService.add_member(self.store, self.alice, squad["id"], self.bob)
        with self.assertRaises(UserNotFoundError):
            SquadService.add_member(self.store, self.alice, squad["id"], "nobody")
        with self.assertRaises(SquadNotFoundError):
            SquadService.add_member(self.store, self.alice, "missing", self.carol)

    def test_member_can_leave(self) -> None:
        squad = self._create()
        updated = SquadService.remove_member(self.store, self.bob, squad["id"], self.bob)
        self.assertEqual(updated["members"], [self.alice])

    def test_only_creator_removes_others(self) -> None:
        squad = self._create(members=[self.bob, self.carol])
        with self.assertRaises(ForbiddenError):
            SquadService.remove_member(self.store, self.bob, squad["id"], self.carol)
        SquadService.remove_member(self.store, self.alice, squad["id"], self.carol)
        with self.assertRaises(NotAMemberError):
            SquadService.remove_member(self.store, self.alice, squad["id"], self.carol)

    def test_creator_must_transfer_before_leaving(self) -> None:
        squad = self._create()
        with self.assertRaises(CreatorMustTransferError) as cm:
            SquadService.remove_member(self.store, self.alice, squad["id"], self.alice)
        self.assertEqual(cm.exception.kind, "StateError")

    def test_sole_member_departure_dissolves_squad(self) -> None:
        squad = self._create()
        SquadService.remove_member(self.store, self.bob, squad["id"], self.bob)
        result = SquadService.remove_member(
            self.store, self.alice, squad["id"], self.alice
        )
        self.assertIsNone(result)
        with self.assertRaises(SquadNotFoundError):
            SquadService.get_squad(self.store, squad["id"])

    def test_transfer_ownership(self) -> None:
        squad = self._create()
        with self.assertRaises(ForbiddenError):
            SquadService.transfer_ownership(self.store, self.bob, squad["id"], self.bob)
        with self.assertRaises(NotAMemberError):
            SquadService.transfer_ownership(
                self.store, self.alice, squad["id"], self.carol
            )
        SquadService.transfer_ownership(self.store, self.alice, squad["id"], self.bob)
        left = SquadService.remove_member(self.store, self.alice, squad["id"], self.alice)
        self.assertEqual(left["members"], [self.bob])
        self.assertEqual(left["createdBy"], self.bob)

    def test_update_metadata(self) -> None:
        squad = self._create()
        self._create(name="Dinner Club")
        patch_ = parse_payload(SquadUpdate, {"description": "Weekday lunches"})
        with self.assertRaises(ForbiddenError):
            SquadService.update_metadata(self.store, self.bob, squad["id"], patch_)

        updated = SquadService.update_metadata(self.store, self.alice, squad["id"], patch_)
        self.assertEqual(updated["description"], "Weekday lunches")

        rename = parse_payload(SquadUpdate, {"name": "Dinner Club"})
        with self.assertRaises(SquadNameTakenError):
            SquadService.update_metadata(self.store, self.alice, squad["id"], rename)

    def test_update_metadata_rejects_unknown_fields(self) -> None:
        with self.assertRaises(ValidationError):
            parse_payload(SquadUpdate, {"members": []})

    def test_delete(self) -> None:
        squad = self._create()
        with self.assertRaises(ForbiddenError):
            SquadService.delete(self.store, self.bob, squad["id"])
        SquadService.delete(self.store, self.alice, squad["id"])
        with self.assertRaises(SquadNotFoundError):
            SquadService.get_squad(self.store, squad["id"])

    def test_get_user_squads_most_recent_first(self) -> None:
        first = self._create()
        second = self._create(name="Breakfast Club")
        SquadService.add_member(
            self.store,
            self.alice,
            first["id"],
            self.carol,
            now=NOW + datetime.timedelta(hours=1),
        )
        squads = SquadService.get_user_squads(self.store, self.bob)
        self.assertEqual([s["id"] for s in squads], [first["id"], second["id"]])
        self.assertEqual(
            [s["id"] for s in SquadService.get_user_squads(self.store, self.carol)],
            [first["id"]],
        )


if __name__ == "__main__":
    unittest.main()
