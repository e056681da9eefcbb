"""Data models for the user blueprint."""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Any, Optional, TypedDict

from dinewithfriends.core.types import StoredDocument
from dinewithfriends.errors import ValidationError
from dinewithfriends.utils import require_text


class FriendEdge(TypedDict):
    """One side of a symmetric friendship, embedded in the user document."""

    peerId: str
    locationVisible: bool


class FriendRequest(TypedDict, total=False):
    """A pending friend request, embedded in the receiver's document."""

    senderId: str
    senderName: str
    senderEmail: str
    requestedAt: datetime.datetime


class User(StoredDocument, total=False):
    """A user document."""

    authUid: str
    email: str
    emailLower: str
    firstName: str
    lastName: str
    name: str
    profilePic: Optional[str]
    friendEdges: list[FriendEdge]
    pendingFriendRequests: list[FriendRequest]
    location: str
    locationUpdatedAt: Optional[datetime.datetime]
    scheduledMealIds: list[str]


class PublicProfile(TypedDict):
    """Minimal projection of a user shown to other users."""

    id: str
    name: str
    email: str
    profilePic: Optional[str]


@dataclass
class Registration:
    """Payload for creating a user record."""

    email: str
    first_name: str
    last_name: str
    profile_pic: Optional[str] = None
    password: Optional[str] = None

    def validate(self) -> None:
        """Validate and normalize the registration."""
        self.email = require_text(self.email, "email")
        if "@" not in self.email:
            raise ValidationError("email must be a valid email address.")
        self.first_name = require_text(self.first_name, "firstName")
        self.last_name = require_text(self.last_name, "lastName")
        if self.password is not None and len(self.password) < 6:
            raise ValidationError("password must be at least 6 characters.")


@dataclass
class ProfileUpdate:
    """Patch applied to a user's own profile."""

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_pic: Optional[str] = None

    def validate(self) -> None:
        """Validate the fields that were provided."""
        if self.first_name is not None:
            self.first_name = require_text(self.first_name, "firstName")
        if self.last_name is not None:
            self.last_name = require_text(self.last_name, "lastName")
        if self.profile_pic is not None and not isinstance(self.profile_pic, str):
            raise ValidationError("profilePic must be a URL.")

    def to_update(self) -> dict[str, Any]:
        """Return the document fields to write."""
        fields = {
            "firstName": self.first_name,
            "lastName": self.last_name,
            "profilePic": self.profile_pic,
        }
        return {k: v for k, v in fields.items() if v is not None}


@dataclass
class LocationUpdate:
    """Payload for checking in at a place."""

    place: str

    def validate(self) -> None:
        self.place = require_text(self.place, "place")


@dataclass
class VisibilityUpdate:
    """Payload for sharing a location with one friend."""

    visible: bool
