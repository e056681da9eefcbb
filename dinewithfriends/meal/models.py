"""Data models for the meal blueprint."""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import Any, Optional, TypedDict

from dinewithfriends.core.constants import (
    BREAKFAST_START_HOUR,
    DINNER_START_HOUR,
    LUNCH_START_HOUR,
    MEAL_TIME_SLOTS,
    MEAL_TYPE_BREAKFAST,
    MEAL_TYPE_DINNER,
    MEAL_TYPE_LUNCH,
)
from dinewithfriends.core.types import StoredDocument
from dinewithfriends.errors import ValidationError
from dinewithfriends.utils import parse_date, require_id_list, require_text


class Participant(TypedDict):
    """An invited or joined user, embedded in the meal document."""

    userId: str
    status: str


class SquadInvite(TypedDict):
    """An invited squad, embedded in the meal document."""

    squadId: str
    status: str


class Meal(StoredDocument, total=False):
    """A meal document."""

    name: str
    hostId: str
    date: str
    timeSlot: str
    mealType: str
    startsAt: datetime.datetime
    location: str
    notes: str
    isOpenToJoin: bool
    participants: list[Participant]
    participantIds: list[str]
    squadInvites: list[SquadInvite]


def meal_type_for_slot(time_slot: str) -> str:
    """Derive breakfast, lunch or dinner from a ``HH:MM`` slot."""
    hours = int(time_slot.split(":")[0])
    if BREAKFAST_START_HOUR <= hours < LUNCH_START_HOUR:
        return MEAL_TYPE_BREAKFAST
    if LUNCH_START_HOUR <= hours < DINNER_START_HOUR:
        return MEAL_TYPE_LUNCH
    return MEAL_TYPE_DINNER


def slot_start(date: datetime.date, time_slot: str) -> datetime.datetime:
    """Combine a date and slot into an aware UTC datetime."""
    hours, minutes = (int(part) for part in time_slot.split(":"))
    return datetime.datetime.combine(
        date, datetime.time(hours, minutes), tzinfo=datetime.timezone.utc
    )


def _validate_slot(time_slot: Any) -> str:
    if time_slot not in MEAL_TIME_SLOTS:
        raise ValidationError(
            f"timeSlot must be one of {MEAL_TIME_SLOTS[0]}..{MEAL_TIME_SLOTS[-1]} "
            "in 15 minute steps."
        )
    return time_slot


@dataclass
class MealSubmission:
    """Dataclass for meal creation requests."""

    name: str
    date: Any
    time_slot: str
    location: str
    participants: list[str] = field(default_factory=list)
    squads: list[str] = field(default_factory=list)
    is_open_to_join: bool = False
    notes: str = ""

    def validate(self) -> None:
        """Validate the meal submission for obvious errors."""
        self.name = require_text(self.name, "name")
        self.date = parse_date(self.date)
        self.time_slot = _validate_slot(self.time_slot)
        self.location = require_text(self.location, "location")
        self.participants = require_id_list(self.participants, "participants")
        self.squads = require_id_list(self.squads, "squads")
        if not isinstance(self.is_open_to_join, bool):
            raise ValidationError("isOpenToJoin must be a boolean.")
        if not isinstance(self.notes, str):
            raise ValidationError("notes must be a string.")

    @property
    def meal_type(self) -> str:
        """Return the meal type derived from the slot."""
        return meal_type_for_slot(self.time_slot)


@dataclass
class MealUpdate:
    """Patch applied to a meal by its host."""

    name: Optional[str] = None
    date: Any = None
    time_slot: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    is_open_to_join: Optional[bool] = None

    def validate(self) -> None:
        """Validate the fields that were provided."""
        if self.name is not None:
            self.name = require_text(self.name, "name")
        if self.date is not None:
            self.date = parse_date(self.date)
        if self.time_slot is not None:
            self.time_slot = _validate_slot(self.time_slot)
        if self.location is not None:
            self.location = require_text(self.location, "location")
        if self.notes is not None and not isinstance(self.notes, str):
            raise ValidationError("notes must be a string.")
        if self.is_open_to_join is not None and not isinstance(
            self.is_open_to_join, bool
        ):
            raise ValidationError("isOpenToJoin must be a boolean.")

    @property
    def reschedules(self) -> bool:
        """Return True if the patch moves the meal to another date or slot."""
        return self.date is not None or self.time_slot is not None


@dataclass
class InviteResponse:
    """Payload for answering a meal invitation."""

    status: str
