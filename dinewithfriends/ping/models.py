"""Data models for the ping blueprint."""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import Any, Optional, TypedDict

from dinewithfriends.core.constants import PING_ACCEPT, PING_DECLINE
from dinewithfriends.core.types import StoredDocument
from dinewithfriends.errors import ValidationError
from dinewithfriends.utils import parse_datetime, require_id_list


class PingResponse(TypedDict):
    """A recipient's answer to a ping."""

    recipientId: str
    response: str
    respondedAt: datetime.datetime


class Ping(StoredDocument, total=False):
    """A ping document."""

    senderId: str
    senderName: str
    message: str
    expiresAt: datetime.datetime
    recipients: list[str]
    squadRefs: list[str]
    responses: list[PingResponse]
    status: str


@dataclass
class PingSubmission:
    """Payload for broadcasting a ping."""

    message: Optional[str] = None
    expires_at: Any = None
    recipients: list[str] = field(default_factory=list)
    squads: list[str] = field(default_factory=list)

    def validate(self) -> None:
        """Validate the ping submission."""
        if self.message is not None:
            if not isinstance(self.message, str):
                raise ValidationError("message must be a string.")
            self.message = self.message.strip() or None
        if self.expires_at is not None:
            self.expires_at = parse_datetime(self.expires_at, "expiresAt")
        self.recipients = require_id_list(self.recipients, "recipients")
        self.squads = require_id_list(self.squads, "squads")


@dataclass
class PingAnswer:
    """Payload for responding to a ping."""

    response: str

    def validate(self) -> None:
        if self.response not in (PING_ACCEPT, PING_DECLINE):
            raise ValidationError(
                f"response must be '{PING_ACCEPT}' or '{PING_DECLINE}'."
            )
