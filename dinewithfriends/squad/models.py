"""Data models for the squad blueprint."""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import Any, Optional

from dinewithfriends.core.types import StoredDocument
from dinewithfriends.errors import ValidationError
from dinewithfriends.utils import require_id_list, require_text


class Squad(StoredDocument, total=False):
    """A squad document."""

    name: str
    description: str
    squadImage: Optional[str]
    members: list[str]
    createdBy: str
    lastActiveAt: datetime.datetime


@dataclass
class SquadSubmission:
    """Payload for creating a squad."""

    name: str
    members: list[str] = field(default_factory=list)
    description: str = ""
    squad_image: Optional[str] = None

    def validate(self) -> None:
        """Validate the squad submission."""
        self.name = require_text(self.name, "name")
        self.members = require_id_list(self.members, "members")
        if not isinstance(self.description, str):
            raise ValidationError("description must be a string.")


@dataclass
class SquadUpdate:
    """Patch applied to a squad's metadata by its creator."""

    name: Optional[str] = None
    description: Optional[str] = None
    squad_image: Optional[str] = None

    def validate(self) -> None:
        """Validate the fields that were provided."""
        if self.name is not None:
            self.name = require_text(self.name, "name")
        if self.description is not None and not isinstance(self.description, str):
            raise ValidationError("description must be a string.")

    def to_update(self) -> dict[str, Any]:
        """Return the document fields to write."""
        fields = {
            "name": self.name,
            "description": self.description,
            "squadImage": self.squad_image,
        }
        return {k: v for k, v in fields.items() if v is not None}


@dataclass
class MemberRef:
    """Payload naming a single user."""

    user_id: str

    def validate(self) -> None:
        self.user_id = require_text(self.user_id, "userId")
