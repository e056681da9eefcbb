"""Service layer for squad membership and lifecycle."""

from __future__ import annotations

import datetime
import logging
from typing import TYPE_CHECKING, cast

from dinewithfriends.core.constants import SQUADS_COLLECTION, USERS_COLLECTION
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
from dinewithfriends.utils import utcnow

from .models import Squad, SquadSubmission, SquadUpdate

if TYPE_CHECKING:
    from dinewithfriends.core.store import Store, Transaction

logger = logging.getLogger(__name__)


class SquadService:
    """Service class for squad-related operations."""

    @staticmethod
    def get_squad(store: Store, squad_id: str) -> Squad:
        """Fetch a squad by ID."""
        squad = store.get(SQUADS_COLLECTION, squad_id)
        if squad is None:
            raise SquadNotFoundError()
        return cast(Squad, squad)

    @staticmethod
    def get_squad_in(transaction: Transaction, squad_id: str) -> Squad:
        """Fetch a squad by ID inside a transaction."""
        squad = transaction.get(SQUADS_COLLECTION, squad_id)
        if squad is None:
            raise SquadNotFoundError(f"Squad {squad_id} not found.")
        return cast(Squad, squad)

    @staticmethod
    def get_user_squads(store: Store, user_id: str) -> list[Squad]:
        """Fetch all squads the user is a member of, most recently active first."""
        squads = store.where(SQUADS_COLLECTION, "members", "array_contains", user_id)
        squads.sort(key=lambda s: s.get("lastActiveAt") or s["createdAt"], reverse=True)
        return cast(list[Squad], squads)

    @staticmethod
    def is_member(squad: Squad, user_id: str) -> bool:
        """Check whether a user belongs to a squad."""
        return user_id in (squad.get("members") or [])

    @staticmethod
    def _ensure_name_available(
        store: Store, name: str, squad_id: str | None = None
    ) -> None:
        for existing in store.where(SQUADS_COLLECTION, "name", "==", name):
            if existing["id"] != squad_id:
                raise SquadNameTakenError()

    @staticmethod
    def create(
        store: Store,
        creator_id: str,
        submission: SquadSubmission,
        now: datetime.datetime | None = None,
    ) -> Squad:
        """Create a squad with the creator and at least one other member."""
        now = now or utcnow()
        others = [m for m in submission.members if m != creator_id]
        if not others:
            raise ValidationError("A squad needs at least one other member.")

        members = [creator_id, *others]
        found = {user["id"] for user in store.get_many(USERS_COLLECTION, members)}
        missing = [m for m in members if m not in found]
        if missing:
            raise UserNotFoundError(f"User(s) not found: {', '.join(missing)}.")
        SquadService._ensure_name_available(store, submission.name)

        squad_data = {
            "name": submission.name,
            "description": submission.description,
            "squadImage": submission.squad_image,
            "members": members,
            "createdBy": creator_id,
            "lastActiveAt": now,
            "createdAt": now,
        }
        squad_id = store.add(SQUADS_COLLECTION, squad_data)
        logger.info(f"Squad {squad_id} created by {creator_id}")
        return cast(Squad, {**squad_data, "id": squad_id})

    @staticmethod
    def add_member(
        store: Store,
        actor_id: str,
        squad_id: str,
        new_member_id: str,
        now: datetime.datetime | None = None,
    ) -> Squad:
        """Add a user to a squad. Any existing member may add people."""
        now = now or utcnow()

        def _add(transaction: Transaction) -> Squad:
            squad = SquadService.get_squad_in(transaction, squad_id)
            if not SquadService.is_member(squad, actor_id):
                raise ForbiddenError("Only squad members can add members.")
            if SquadService.is_member(squad, new_member_id):
                raise AlreadyMemberError()
            if transaction.get(USERS_COLLECTION, new_member_id) is None:
                raise UserNotFoundError()
            members = [*squad["members"], new_member_id]
            transaction.update(
                SQUADS_COLLECTION, squad_id, {"members": members, "lastActiveAt": now}
            )
            return cast(Squad, {**squad, "members": members, "lastActiveAt": now})

        return store.run_transaction(_add)

    @staticmethod
    def remove_member(
        store: Store,
        actor_id: str,
        squad_id: str,
        target_id: str,
        now: datetime.datetime | None = None,
    ) -> Squad | None:
        """Remove a member. Returns None when the squad was dissolved."""
        now = now or utcnow()

        def _remove(transaction: Transaction) -> Squad | None:
            squad = SquadService.get_squad_in(transaction, squad_id)
            creator_id = squad["createdBy"]
            if actor_id != creator_id and actor_id != target_id:
                raise ForbiddenError("Only the creator can remove other members.")
            if not SquadService.is_member(squad, target_id):
                raise NotAMemberError()

            members = [m for m in squad["members"] if m != target_id]
            if target_id == creator_id:
                if members:
                    raise CreatorMustTransferError()
                transaction.delete(SQUADS_COLLECTION, squad_id)
                return None

            transaction.update(
                SQUADS_COLLECTION, squad_id, {"members": members, "lastActiveAt": now}
            )
            return cast(Squad, {**squad, "members": members, "lastActiveAt": now})

        result = store.run_transaction(_remove)
        if result is None:
            logger.info(f"Squad {squad_id} dissolved after its last member left")
        return result

    @staticmethod
    def update_metadata(
        store: Store,
        actor_id: str,
        squad_id: str,
        patch: SquadUpdate,
        now: datetime.datetime | None = None,
    ) -> Squad:
        """Update name, description or image. Creator only."""
        squad = SquadService.get_squad(store, squad_id)
        if actor_id != squad["createdBy"]:
            raise ForbiddenError("Only the squad creator can edit the squad.")
        update_data = patch.to_update()
        if "name" in update_data and update_data["name"] != squad["name"]:
            SquadService._ensure_name_available(store, update_data["name"], squad_id)
        update_data["lastActiveAt"] = now or utcnow()
        store.update(SQUADS_COLLECTION, squad_id, update_data)
        return cast(Squad, {**squad, **update_data})

    @staticmethod
    def transfer_ownership(
        store: Store,
        actor_id: str,
        squad_id: str,
        new_creator_id: str,
        now: datetime.datetime | None = None,
    ) -> Squad:
        """Hand the creator role to another member. Creator only."""
        now = now or utcnow()

        def _transfer(transaction: Transaction) -> Squad:
            squad = SquadService.get_squad_in(transaction, squad_id)
            if actor_id != squad["createdBy"]:
                raise ForbiddenError("Only the squad creator can transfer ownership.")
            if not SquadService.is_member(squad, new_creator_id):
                raise NotAMemberError()
            update_data = {"createdBy": new_creator_id, "lastActiveAt": now}
            transaction.update(SQUADS_COLLECTION, squad_id, update_data)
            return cast(Squad, {**squad, **update_data})

        return store.run_transaction(_transfer)

    @staticmethod
    def delete(store: Store, actor_id: str, squad_id: str) -> None:
        """Delete a squad. Creator only."""
        squad = SquadService.get_squad(store, squad_id)
        if actor_id != squad["createdBy"]:
            raise ForbiddenError("Only the squad creator can delete the squad.")
        store.delete(SQUADS_COLLECTION, squad_id)
        logger.info(f"Squad {squad_id} deleted by {actor_id}")
