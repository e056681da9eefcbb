"""Ephemeral per-user location state shown on the friends map.

A shared location is only meaningful for ``LOCATION_TTL`` after it was set.
Expiry is computed whenever the location is read; nothing sweeps stale values.
"""

from __future__ import annotations

import datetime
from typing import TYPE_CHECKING, Any

from dinewithfriends.core.constants import (
    CAMPUS_PLACES,
    LOCATION_OFFLINE,
    LOCATION_TTL,
    USERS_COLLECTION,
)
from dinewithfriends.errors import NotFriendsError, ValidationError
from dinewithfriends.utils import utcnow

from .core import get_user, get_user_in, public_profile
from .friendship import find_edge, friend_ids

if TYPE_CHECKING:
    from dinewithfriends.core.store import Store, Transaction


def effective_location(user: dict[str, Any], now: datetime.datetime) -> str:
    """Return the user's place, or ``ghost`` if offline or expired."""
    location = user.get("location") or LOCATION_OFFLINE
    updated_at = user.get("locationUpdatedAt")
    if location == LOCATION_OFFLINE or updated_at is None:
        return LOCATION_OFFLINE
    if now - updated_at >= LOCATION_TTL:
        return LOCATION_OFFLINE
    return location


def update_location(
    store: Store, user_id: str, place: str, now: datetime.datetime | None = None
) -> dict[str, Any]:
    """Set the user's current place (or ``ghost`` to go offline)."""
    if not isinstance(place, str):
        raise ValidationError("place must be a string.")
    if place != LOCATION_OFFLINE and place not in CAMPUS_PLACES:
        raise ValidationError(f"Unknown location: {place}.")
    get_user(store, user_id)
    update_data = {"location": place, "locationUpdatedAt": now or utcnow()}
    store.update(USERS_COLLECTION, user_id, update_data)
    return update_data


def set_location_visibility(
    store: Store, user_id: str, friend_id: str, visible: bool
) -> None:
    """Choose whether ``friend_id`` may see the user's location."""
    if not isinstance(visible, bool):
        raise ValidationError("visible must be a boolean.")

    def _toggle(transaction: Transaction) -> None:
        user = get_user_in(transaction, user_id)
        if find_edge(user, friend_id) is None:
            raise NotFriendsError()
        edges = [
            {**edge, "locationVisible": visible}
            if edge["peerId"] == friend_id
            else edge
            for edge in user.get("friendEdges") or []
        ]
        transaction.update(USERS_COLLECTION, user_id, {"friendEdges": edges})

    store.run_transaction(_toggle)


def get_friend_locations(
    store: Store, user_id: str, now: datetime.datetime | None = None
) -> list[dict[str, Any]]:
    """Return the live locations friends chose to share with the user."""
    now = now or utcnow()
    user = get_user(store, user_id)
    results = []
    for friend in store.get_many(USERS_COLLECTION, friend_ids(user)):
        edge = find_edge(friend, user_id)
        if not edge or not edge.get("locationVisible"):
            continue
        location = effective_location(friend, now)
        if location == LOCATION_OFFLINE:
            continue
        results.append(
            {
                "user": public_profile(friend),
                "location": location,
                "locationName": CAMPUS_PLACES[location],
                "locationUpdatedAt": friend.get("locationUpdatedAt"),
            }
        )
    return results
