"""Tests for pings."""

from __future__ import annotations

import datetime
import unittest
from typing import Any

from dinewithfriends.errors import (
    AlreadyRespondedError,
    ExpiredError,
    ForbiddenError,
    NoTargetsError,
    PingNotFoundError,
    UserNotFoundError,
    ValidationError,
)
from dinewithfriends.ping.models import PingSubmission
from dinewithfriends.ping.services import PingService
from dinewithfriends.squad.models import SquadSubmission
from dinewithfriends.squad.services import SquadService
from dinewithfriends.utils import parse_payload
from tests.helpers import NOW, StoreTestCase


class PingTestCase(StoreTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.alice = self.create_user("alice", "Alice")
        self.bob = self.create_user("bob")
        self.carol = self.create_user("carol")
        self.dave = self.create_user("dave")

    def _ping(self, **payload: Any) -> dict:
        submission = parse_payload(PingSubmission, payload)
        return PingService.create_ping(self.store, self.alice, submission, now=NOW)

    def test_create_ping_defaults(self) -> None:
        ping = self._ping(recipients=[self.bob])
        self.assertEqual(ping["message"], "Let's grab a meal!")
        self.assertEqual(ping["expiresAt"], NOW + datetime.timedelta(minutes=30))
        self.assertEqual(ping["senderName"], "Alice alice")
        self.assertEqual(ping["status"], "active")
        self.assertEqual(ping["responses"], [])

    def test_create_ping_expands_squads_without_sender(self) -> None:
        squad = SquadService.create(
            self.store,
            self.alice,
            SquadSubmission(name="Crew", members=[self.bob, self.carol]),
            now=NOW,
        )
        ping = self._ping(recipients=[self.bob], squads=[squad["id"]], message="Foco?")
        self.assertEqual(ping["recipients"], [self.bob, self.carol])
        self.assertEqual(ping["squadRefs"], [squad["id"]])
        self.assertEqual(ping["message"], "Foco?")

    def test_create_ping_requires_targets(self) -> None:
        with self.assertRaises(NoTargetsError) as cm:
            self._ping()
        self.assertEqual(cm.exception.kind, "StateError")
        with self.assertRaises(NoTargetsError):
            self._ping(recipients=[self.alice])

    def test_create_ping_rejects_unknown_recipient(self) -> None:
        with self.assertRaises(UserNotFoundError):
            self._ping(recipients=[self.bob, "nobody"])
        self.assertEqual(PingService.list_sent(self.store, self.alice), [])

    def test_create_ping_rejects_past_expiry(self) -> None:
        with self.assertRaises(ValidationError):
            self._ping(recipients=[self.bob], expiresAt="2026-03-02T08:00:00Z")

    def test_single_response_per_recipient(self) -> None:
        ping = self._ping(recipients=[self.bob])
        entry = PingService.respond(self.store, self.bob, ping["id"], "accept", now=NOW)
        self.assertEqual(entry["response"], "accept")

        with self.assertRaises(AlreadyRespondedError):
            PingService.respond(self.store, self.bob, ping["id"], "decline", now=NOW)
        with self.assertRaises(AlreadyRespondedError):
            PingService.dismiss(self.store, self.bob, ping["id"], now=NOW)
        self.assertEqual(len(PingService.get_ping(self.store, ping["id"])["responses"]), 1)

    def test_respond_errors(self) -> None:
        ping = self._ping(recipients=[self.bob])
        with self.assertRaises(ValidationError):
            PingService.respond(self.store, self.bob, ping["id"], "dismiss", now=NOW)
        with self.assertRaises(PingNotFoundError):
            PingService.respond(self.store, self.bob, "missing", "accept", now=NOW)
        with self.assertRaises(ForbiddenError):
            PingService.respond(self.store, self.dave, ping["id"], "accept", now=NOW)

    def test_expiry_is_lazy(self) -> None:
        ping = self._ping(recipients=[self.bob])
        expired = NOW + datetime.timedelta(minutes=30)

        self.assertTrue(PingService.is_actionable(ping, NOW))
        self.assertFalse(PingService.is_actionable(ping, expired))
        with self.assertRaises(ExpiredError):
            PingService.respond(self.store, self.bob, ping["id"], "accept", now=expired)
        with self.assertRaises(ExpiredError):
            PingService.dismiss(self.store, self.bob, ping["id"], now=expired)
        with self.assertRaises(ExpiredError):
            PingService.cancel(self.store, self.alice, ping["id"], now=expired)
        self.assertEqual(PingService.list_active(self.store, self.bob, now=expired), [])
        # Nothing was written on expiry.
        self.assertEqual(PingService.get_ping(self.store, ping["id"])["status"], "active")

    def test_list_active(self) -> None:
        squad = SquadService.create(
            self.store,
            self.carol,
            SquadSubmission(name="Crew", members=[self.bob]),
            now=NOW,
        )
        direct = self._ping(recipients=[self.bob])
        answered = self._ping(recipients=[self.bob])
        PingService.dismiss(self.store, self.bob, answered["id"], now=NOW)
        self._ping(recipients=[self.carol])

        # A member who joins later still sees pings sent to the squad.
        via_squad = self._ping(squads=[squad["id"]])
        SquadService.add_member(self.store, self.carol, squad["id"], self.dave)

        bob_pings = PingService.list_active(self.store, self.bob, now=NOW)
        self.assertEqual({p["id"] for p in bob_pings}, {direct["id"], via_squad["id"]})
        dave_pings = PingService.list_active(self.store, self.dave, now=NOW)
        self.assertEqual([p["id"] for p in dave_pings], [via_squad["id"]])
        PingService.respond(self.store, self.dave, via_squad["id"], "accept", now=NOW)

    def test_cancel(self) -> None:
        ping = self._ping(recipients=[self.bob])
        with self.assertRaises(ForbiddenError):
            PingService.cancel(self.store, self.bob, ping["id"], now=NOW)

        cancelled = PingService.cancel(self.store, self.alice, ping["id"], now=NOW)
        self.assertEqual(cancelled["status"], "cancelled")
        self.assertEqual(PingService.list_active(self.store, self.bob, now=NOW), [])
        with self.assertRaises(ExpiredError):
            PingService.respond(self.store, self.bob, ping["id"], "accept", now=NOW)
        with self.assertRaises(ExpiredError):
            PingService.cancel(self.store, self.alice, ping["id"], now=NOW)

    def test_list_sent(self) -> None:
        first = self._ping(recipients=[self.bob])
        second = PingService.create_ping(
            self.store,
            self.alice,
            parse_payload(PingSubmission, {"recipients": [self.carol]}),
            now=NOW + datetime.timedelta(minutes=1),
        )
        sent = PingService.list_sent(self.store, self.alice)
        self.assertEqual([p["id"] for p in sent], [second["id"], first["id"]])
        self.assertEqual(PingService.list_sent(self.store, self.bob), [])


if __name__ == "__main__":
    unittest.main()
