"""Service layer for short-lived meal pings."""

from __future__ import annotations

import datetime
import logging
from typing import TYPE_CHECKING, Any, cast

from dinewithfriends.core.constants import (
    FIRESTORE_IN_QUERY_LIMIT,
    PING_ACCEPT,
    PING_DECLINE,
    PING_DEFAULT_MESSAGE,
    PING_DEFAULT_TTL,
    PING_DISMISS,
    PING_STATUS_ACTIVE,
    PING_STATUS_CANCELLED,
    PINGS_COLLECTION,
    SQUADS_COLLECTION,
    USERS_COLLECTION,
)
from dinewithfriends.errors import (
    AlreadyRespondedError,
    ExpiredError,
    ForbiddenError,
    NoTargetsError,
    PingNotFoundError,
    UserNotFoundError,
    ValidationError,
)
from dinewithfriends.squad.services import SquadService
from dinewithfriends.user.services.core import get_user
from dinewithfriends.utils import utcnow

from .models import Ping, PingResponse, PingSubmission

if TYPE_CHECKING:
    from dinewithfriends.core.store import Store, Transaction

logger = logging.getLogger(__name__)


class PingService:
    """Service class for ping-related operations."""

    @staticmethod
    def is_actionable(ping: dict[str, Any], now: datetime.datetime) -> bool:
        """Return True while the ping is active and has not expired."""
        return ping.get("status") == PING_STATUS_ACTIVE and now < ping["expiresAt"]

    @staticmethod
    def has_responded(ping: dict[str, Any], user_id: str) -> bool:
        """Check whether the user already answered or dismissed the ping."""
        return any(r["recipientId"] == user_id for r in ping.get("responses") or [])

    @staticmethod
    def get_ping(store: Store, ping_id: str) -> Ping:
        """Fetch a ping by ID."""
        ping = store.get(PINGS_COLLECTION, ping_id)
        if ping is None:
            raise PingNotFoundError()
        return cast(Ping, ping)

    @staticmethod
    def create_ping(
        store: Store,
        sender_id: str,
        submission: PingSubmission,
        now: datetime.datetime | None = None,
    ) -> Ping:
        """Broadcast a ping to individual users and whole squads."""
        now = now or utcnow()
        if not submission.recipients and not submission.squads:
            raise NoTargetsError()
        expires_at = submission.expires_at or now + PING_DEFAULT_TTL
        if expires_at <= now:
            raise ValidationError("expiresAt must be in the future.")

        sender = get_user(store, sender_id)
        direct = [uid for uid in submission.recipients if uid != sender_id]
        found = {u["id"] for u in store.get_many(USERS_COLLECTION, direct)}
        missing = [uid for uid in direct if uid not in found]
        if missing:
            raise UserNotFoundError(f"Unknown recipient(s): {', '.join(missing)}.")

        recipients = list(direct)
        for squad_id in submission.squads:
            recipients.extend(SquadService.get_squad(store, squad_id)["members"])
        recipients = [uid for uid in dict.fromkeys(recipients) if uid != sender_id]
        if not recipients:
            raise NoTargetsError()

        ping_data = {
            "senderId": sender_id,
            "senderName": sender.get("name") or sender.get("email", ""),
            "message": submission.message or PING_DEFAULT_MESSAGE,
            "createdAt": now,
            "expiresAt": expires_at,
            "recipients": recipients,
            "squadRefs": list(submission.squads),
            "responses": [],
            "status": PING_STATUS_ACTIVE,
        }
        ping_id = store.add(PINGS_COLLECTION, ping_data)
        logger.info(
            f"Ping {ping_id} sent by {sender_id} to {len(recipients)} recipient(s)"
        )
        return cast(Ping, {**ping_data, "id": ping_id})

    @staticmethod
    def list_active(
        store: Store, user_id: str, now: datetime.datetime | None = None
    ) -> list[Ping]:
        """List actionable pings addressed to the user that they have not answered."""
        now = now or utcnow()
        candidates = {
            ping["id"]: ping
            for ping in store.where(
                PINGS_COLLECTION, "recipients", "array_contains", user_id
            )
        }
        squad_ids = [s["id"] for s in SquadService.get_user_squads(store, user_id)]
        for i in range(0, len(squad_ids), FIRESTORE_IN_QUERY_LIMIT):
            chunk = squad_ids[i : i + FIRESTORE_IN_QUERY_LIMIT]
            for ping in store.where(
                PINGS_COLLECTION, "squadRefs", "array_contains_any", chunk
            ):
                candidates.setdefault(ping["id"], ping)

        active = [
            ping
            for ping in candidates.values()
            if ping["senderId"] != user_id
            and PingService.is_actionable(ping, now)
            and not PingService.has_responded(ping, user_id)
        ]
        active.sort(key=lambda ping: ping["createdAt"], reverse=True)
        return cast(list[Ping], active)

    @staticmethod
    def list_sent(store: Store, sender_id: str) -> list[Ping]:
        """List every ping the user has sent, newest first."""
        pings = store.where(PINGS_COLLECTION, "senderId", "==", sender_id)
        pings.sort(key=lambda ping: ping["createdAt"], reverse=True)
        return cast(list[Ping], pings)

    @staticmethod
    def _record_response(
        store: Store,
        user_id: str,
        ping_id: str,
        response: str,
        now: datetime.datetime,
    ) -> PingResponse:
        def _respond(transaction: Transaction) -> PingResponse:
            ping = transaction.get(PINGS_COLLECTION, ping_id)
            if ping is None:
                raise PingNotFoundError()
            if not PingService.is_actionable(ping, now):
                raise ExpiredError()
            if user_id not in (ping.get("recipients") or []):
                squads = [
                    transaction.get(SQUADS_COLLECTION, squad_id)
                    for squad_id in ping.get("squadRefs") or []
                ]
                if not any(
                    squad and user_id in (squad.get("members") or [])
                    for squad in squads
                ):
                    raise ForbiddenError("This ping was not sent to you.")
            if PingService.has_responded(ping, user_id):
                raise AlreadyRespondedError()

            entry: PingResponse = {
                "recipientId": user_id,
                "response": response,
                "respondedAt": now,
            }
            transaction.update(
                PINGS_COLLECTION,
                ping_id,
                {"responses": [*(ping.get("responses") or []), entry]},
            )
            return entry

        return store.run_transaction(_respond)

    @staticmethod
    def respond(
        store: Store,
        user_id: str,
        ping_id: str,
        response: str,
        now: datetime.datetime | None = None,
    ) -> PingResponse:
        """Accept or decline a ping. Each recipient answers at most once."""
        if response not in (PING_ACCEPT, PING_DECLINE):
            raise ValidationError(
                f"response must be '{PING_ACCEPT}' or '{PING_DECLINE}'."
            )
        return PingService._record_response(
            store, user_id, ping_id, response, now or utcnow()
        )

    @staticmethod
    def dismiss(
        store: Store,
        user_id: str,
        ping_id: str,
        now: datetime.datetime | None = None,
    ) -> PingResponse:
        """Hide a ping without answering it."""
        return PingService._record_response(
            store, user_id, ping_id, PING_DISMISS, now or utcnow()
        )

    @staticmethod
    def cancel(
        store: Store,
        sender_id: str,
        ping_id: str,
        now: datetime.datetime | None = None,
    ) -> Ping:
        """Withdraw a ping before it expires. Sender only."""
        now = now or utcnow()

        def _cancel(transaction: Transaction) -> Ping:
            ping = transaction.get(PINGS_COLLECTION, ping_id)
            if ping is None:
                raise PingNotFoundError()
            if ping["senderId"] != sender_id:
                raise ForbiddenError("Only the sender can cancel a ping.")
            if not PingService.is_actionable(ping, now):
                raise ExpiredError()
            transaction.update(
                PINGS_COLLECTION, ping_id, {"status": PING_STATUS_CANCELLED}
            )
            return cast(Ping, {**ping, "status": PING_STATUS_CANCELLED})

        ping = store.run_transaction(_cancel)
        logger.info(f"Ping {ping_id} cancelled by {sender_id}")
        return ping
