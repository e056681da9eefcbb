"""Service layer for meal scheduling, invitations and the open-meal marketplace."""

from __future__ import annotations

import datetime
import logging
from typing import TYPE_CHECKING, Any, cast

from dinewithfriends.core.constants import (
    INVITE_STATUSES,
    MEAL_BLOCKS_COLLECTION,
    MEALS_COLLECTION,
    OPEN_MEAL_WINDOW,
    STATUS_CONFIRMED,
    STATUS_DECLINED,
    STATUS_INVITED,
    USERS_COLLECTION,
)
from dinewithfriends.errors import (
    AlreadyParticipantError,
    AlreadyStartedError,
    CannotJoinOwnMealError,
    ForbiddenError,
    InvalidTransitionError,
    MealNotFoundError,
    NotAParticipantError,
    NotOpenError,
    SchedulingConflictError,
    SquadNotInvitedError,
    ValidationError,
)
from dinewithfriends.squad.services import SquadService
from dinewithfriends.user.services.core import get_user, get_user_in
from dinewithfriends.user.services.friendship import friend_ids
from dinewithfriends.utils import utcnow

from .models import (
    Meal,
    MealSubmission,
    MealUpdate,
    Participant,
    meal_type_for_slot,
    slot_start,
)

if TYPE_CHECKING:
    from dinewithfriends.core.store import Store, Transaction

logger = logging.getLogger(__name__)


def _validate_response_status(status: Any) -> str:
    """Accept only terminal statuses; ``invited`` is not a legal target."""
    if status not in INVITE_STATUSES:
        raise ValidationError(f"status must be one of {', '.join(INVITE_STATUSES)}.")
    if status == STATUS_INVITED:
        raise InvalidTransitionError("A response cannot move back to invited.")
    return cast(str, status)


class MealService:
    """Service class for meal-related operations."""

    @staticmethod
    def get_meal(store: Store, meal_id: str) -> Meal:
        """Fetch a meal by ID."""
        meal = store.get(MEALS_COLLECTION, meal_id)
        if meal is None:
            raise MealNotFoundError()
        return cast(Meal, meal)

    @staticmethod
    def _get_meal_in(transaction: Transaction, meal_id: str) -> Meal:
        meal = transaction.get(MEALS_COLLECTION, meal_id)
        if meal is None:
            raise MealNotFoundError()
        return cast(Meal, meal)

    @staticmethod
    def participant_ids(meal: dict[str, Any]) -> list[str]:
        """Return the IDs of every participant, whatever their status."""
        return [p["userId"] for p in meal.get("participants") or []]

    @staticmethod
    def attendee_ids(meal: dict[str, Any]) -> set[str]:
        """Return the host plus every participant who has not declined."""
        attendees = {meal["hostId"]}
        attendees.update(
            p["userId"]
            for p in meal.get("participants") or []
            if p["status"] != STATUS_DECLINED
        )
        return attendees

    @staticmethod
    def _block_id(date: str, meal_type: str) -> str:
        return f"{date}_{meal_type}"

    @staticmethod
    def _check_schedule(
        transaction: Transaction,
        date: str,
        meal_type: str,
        attendees: set[str],
        exclude_meal_id: str | None = None,
    ) -> dict[str, Any]:
        """Reject the attendees if any of them already has a meal in this block.

        Only ``(date, mealType)`` equality counts as a conflict, not wall clock
        overlap. Returns the block document state to be bumped by
        :meth:`_claim_block`, which serializes concurrent check-then-insert.
        """
        block_id = MealService._block_id(date, meal_type)
        block = transaction.get(MEAL_BLOCKS_COLLECTION, block_id) or {}
        for other in transaction.where(MEALS_COLLECTION, "date", "==", date):
            if other["id"] == exclude_meal_id or other.get("mealType") != meal_type:
                continue
            clash = attendees & MealService.attendee_ids(other)
            if clash:
                logger.warning(
                    f"Scheduling conflict on {block_id} with meal {other['id']} "
                    f"for {sorted(clash)}"
                )
                raise SchedulingConflictError(
                    f"{len(clash)} attendee(s) already have {meal_type} on {date}."
                )
        return block

    @staticmethod
    def _claim_block(
        transaction: Transaction, date: str, meal_type: str, block: dict[str, Any]
    ) -> None:
        transaction.set(
            MEAL_BLOCKS_COLLECTION,
            MealService._block_id(date, meal_type),
            {
                "date": date,
                "mealType": meal_type,
                "revision": block.get("revision", 0) + 1,
            },
        )

    @staticmethod
    def create_meal(
        store: Store,
        host_id: str,
        submission: MealSubmission,
        now: datetime.datetime | None = None,
    ) -> Meal:
        """Create a meal, expanding squads into individual participants.

        Squad membership is expanded once, here; people who join a squad later
        are not added to its existing meals.
        """
        now = now or utcnow()
        date = submission.date.isoformat()
        meal_type = submission.meal_type
        meal_id = store.new_id(MEALS_COLLECTION)

        def _create(transaction: Transaction) -> Meal:
            host = get_user_in(transaction, host_id)
            invited = list(submission.participants)
            squad_invites = []
            for squad_id in submission.squads:
                squad = SquadService.get_squad_in(transaction, squad_id)
                invited.extend(squad.get("members") or [])
                squad_invites.append({"squadId": squad_id, "status": STATUS_INVITED})

            participant_ids = [uid for uid in dict.fromkeys(invited) if uid != host_id]
            for uid in participant_ids:
                get_user_in(transaction, uid)

            attendees = {host_id, *participant_ids}
            block = MealService._check_schedule(transaction, date, meal_type, attendees)

            meal_data = {
                "name": submission.name,
                "hostId": host_id,
                "date": date,
                "timeSlot": submission.time_slot,
                "mealType": meal_type,
                "startsAt": slot_start(submission.date, submission.time_slot),
                "location": submission.location,
                "notes": submission.notes,
                "isOpenToJoin": submission.is_open_to_join,
                "participants": [
                    {"userId": uid, "status": STATUS_INVITED} for uid in participant_ids
                ],
                "participantIds": participant_ids,
                "squadInvites": squad_invites,
                "createdAt": now,
            }
            MealService._claim_block(transaction, date, meal_type, block)
            transaction.set(MEALS_COLLECTION, meal_id, meal_data)
            schedule = [*(host.get("scheduledMealIds") or []), meal_id]
            transaction.update(
                USERS_COLLECTION, host_id, {"scheduledMealIds": schedule}
            )
            return cast(Meal, {**meal_data, "id": meal_id})

        meal = store.run_transaction(_create)
        logger.info(f"Meal {meal_id} ({meal_type} on {date}) created by {host_id}")
        return meal

    @staticmethod
    def update_meal(
        store: Store,
        host_id: str,
        meal_id: str,
        patch: MealUpdate,
    ) -> Meal:
        """Edit a meal. Moving it to another date or slot re-runs the conflict check."""

        def _update(transaction: Transaction) -> Meal:
            meal = MealService._get_meal_in(transaction, meal_id)
            if meal["hostId"] != host_id:
                raise ForbiddenError("Only the host can edit this meal.")

            update_data: dict[str, Any] = {}
            if patch.name is not None:
                update_data["name"] = patch.name
            if patch.location is not None:
                update_data["location"] = patch.location
            if patch.notes is not None:
                update_data["notes"] = patch.notes
            if patch.is_open_to_join is not None:
                update_data["isOpenToJoin"] = patch.is_open_to_join

            if patch.reschedules:
                new_date = patch.date or datetime.date.fromisoformat(meal["date"])
                new_slot = patch.time_slot or meal["timeSlot"]
                date = new_date.isoformat()
                meal_type = meal_type_for_slot(new_slot)
                if (date, meal_type) != (meal["date"], meal["mealType"]):
                    block = MealService._check_schedule(
                        transaction,
                        date,
                        meal_type,
                        MealService.attendee_ids(meal),
                        exclude_meal_id=meal_id,
                    )
                    MealService._claim_block(transaction, date, meal_type, block)
                update_data.update(
                    {
                        "date": date,
                        "timeSlot": new_slot,
                        "mealType": meal_type,
                        "startsAt": slot_start(new_date, new_slot),
                    }
                )

            if update_data:
                transaction.update(MEALS_COLLECTION, meal_id, update_data)
            return cast(Meal, {**meal, **update_data})

        return store.run_transaction(_update)

    @staticmethod
    def delete_meal(store: Store, host_id: str, meal_id: str) -> None:
        """Delete a meal and drop it from the host's schedule index."""

        def _delete(transaction: Transaction) -> None:
            meal = MealService._get_meal_in(transaction, meal_id)
            if meal["hostId"] != host_id:
                raise ForbiddenError("Only the host can delete this meal.")
            host = transaction.get(USERS_COLLECTION, host_id)
            transaction.delete(MEALS_COLLECTION, meal_id)
            if host is not None:
                schedule = [
                    mid for mid in host.get("scheduledMealIds") or [] if mid != meal_id
                ]
                transaction.update(
                    USERS_COLLECTION, host_id, {"scheduledMealIds": schedule}
                )

        store.run_transaction(_delete)
        logger.info(f"Meal {meal_id} deleted by host {host_id}")

    @staticmethod
    def get_user_meals(store: Store, user_id: str) -> list[Meal]:
        """Fetch meals the user hosts or is invited to, soonest first."""
        hosted = store.where(MEALS_COLLECTION, "hostId", "==", user_id)
        invited = store.where(
            MEALS_COLLECTION, "participantIds", "array_contains", user_id
        )
        meals = {meal["id"]: meal for meal in [*hosted, *invited]}
        return cast(
            list[Meal], sorted(meals.values(), key=lambda meal: meal["startsAt"])
        )

    @staticmethod
    def get_open_meals(
        store: Store, user_id: str, now: datetime.datetime | None = None
    ) -> list[Meal]:
        """List friends' open meals in the coming week that the user can join."""
        now = now or utcnow()
        window_end = now + OPEN_MEAL_WINDOW
        friends = set(friend_ids(get_user(store, user_id)))
        if not friends:
            return []

        open_meals = [
            meal
            for meal in store.where(MEALS_COLLECTION, "isOpenToJoin", "==", True)
            if meal["hostId"] in friends
            and now <= meal["startsAt"] <= window_end
            and user_id not in MealService.participant_ids(meal)
        ]
        open_meals.sort(key=lambda meal: meal["startsAt"])
        return cast(list[Meal], open_meals)

    @staticmethod
    def join_open_meal(
        store: Store, user_id: str, meal_id: str, now: datetime.datetime | None = None
    ) -> Meal:
        """Join an open meal directly as a confirmed participant."""
        now = now or utcnow()

        def _join(transaction: Transaction) -> Meal:
            meal = MealService._get_meal_in(transaction, meal_id)
            if not meal.get("isOpenToJoin"):
                raise NotOpenError()
            if meal["startsAt"] <= now:
                raise AlreadyStartedError()
            if user_id in MealService.participant_ids(meal):
                raise AlreadyParticipantError()
            if user_id == meal["hostId"]:
                raise CannotJoinOwnMealError()
            get_user_in(transaction, user_id)
            block = MealService._check_schedule(
                transaction,
                meal["date"],
                meal["mealType"],
                {user_id},
                exclude_meal_id=meal_id,
            )

            participants = [
                *(meal.get("participants") or []),
                {"userId": user_id, "status": STATUS_CONFIRMED},
            ]
            update_data = {
                "participants": participants,
                "participantIds": [p["userId"] for p in participants],
            }
            MealService._claim_block(transaction, meal["date"], meal["mealType"], block)
            transaction.update(MEALS_COLLECTION, meal_id, update_data)
            return cast(Meal, {**meal, **update_data})

        return store.run_transaction(_join)

    @staticmethod
    def update_participant_status(
        store: Store,
        actor_id: str,
        meal_id: str,
        participant_id: str,
        new_status: str,
    ) -> Participant:
        """Move a participant from invited to confirmed or declined."""
        new_status = _validate_response_status(new_status)

        def _respond(transaction: Transaction) -> Participant:
            meal = MealService._get_meal_in(transaction, meal_id)
            if actor_id not in (participant_id, meal["hostId"]):
                raise ForbiddenError("You can only respond to your own invitation.")
            participants = list(meal.get("participants") or [])
            for index, participant in enumerate(participants):
                if participant["userId"] == participant_id:
                    break
            else:
                raise NotAParticipantError()
            if participant["status"] != STATUS_INVITED:
                raise InvalidTransitionError(
                    f"Invitation was already {participant['status']}."
                )

            updated: Participant = {"userId": participant_id, "status": new_status}
            participants[index] = updated
            transaction.update(MEALS_COLLECTION, meal_id, {"participants": participants})
            return updated

        return store.run_transaction(_respond)

    @staticmethod
    def respond_to_squad_invite(
        store: Store,
        user_id: str,
        meal_id: str,
        squad_id: str,
        status: str,
    ) -> Meal:
        """Answer a squad invitation on behalf of the squad.

        Confirming cascades to every participant who is currently a squad
        member, overriding their individual answers. Members revived from
        ``declined`` must still be free in this block. Declining only changes
        the squad invite. Both happen in one transaction per meal.
        """
        status = _validate_response_status(status)

        def _respond(transaction: Transaction) -> Meal:
            meal = MealService._get_meal_in(transaction, meal_id)
            squad = SquadService.get_squad_in(transaction, squad_id)
            if not SquadService.is_member(squad, user_id):
                raise ForbiddenError("Only squad members can answer for the squad.")

            invites = list(meal.get("squadInvites") or [])
            for index, invite in enumerate(invites):
                if invite["squadId"] == squad_id:
                    break
            else:
                raise SquadNotInvitedError()
            if invite["status"] != STATUS_INVITED:
                raise InvalidTransitionError(
                    f"Squad invitation was already {invite['status']}."
                )

            invites[index] = {"squadId": squad_id, "status": status}
            update_data: dict[str, Any] = {"squadInvites": invites}
            if status == STATUS_CONFIRMED:
                members = set(squad.get("members") or [])
                participants = meal.get("participants") or []
                # Declined members may have been booked elsewhere in this block.
                revived = {
                    p["userId"]
                    for p in participants
                    if p["userId"] in members and p["status"] == STATUS_DECLINED
                }
                if revived:
                    block = MealService._check_schedule(
                        transaction,
                        meal["date"],
                        meal["mealType"],
                        revived,
                        exclude_meal_id=meal_id,
                    )
                    MealService._claim_block(
                        transaction, meal["date"], meal["mealType"], block
                    )
                update_data["participants"] = [
                    {**p, "status": STATUS_CONFIRMED} if p["userId"] in members else p
                    for p in participants
                ]
            transaction.update(MEALS_COLLECTION, meal_id, update_data)
            return cast(Meal, {**meal, **update_data})

        meal = store.run_transaction(_respond)
        logger.info(f"Squad {squad_id} {status} meal {meal_id} (answered by {user_id})")
        return meal
