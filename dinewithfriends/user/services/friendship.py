from __future__ import annotations

import datetime
import logging
from typing import TYPE_CHECKING, Any

from dinewithfriends.core.constants import USERS_COLLECTION
from dinewithfriends.errors import (
    AlreadyFriendsError,
    DuplicateRequestError,
    RequestNotFoundError,
    SelfReferenceError,
    ValidationError,
)
from dinewithfriends.utils import utcnow

from ..models import FriendEdge, FriendRequest, PublicProfile
from .core import get_user, get_user_in, public_profile, smart_display_name

if TYPE_CHECKING:
    from dinewithfriends.core.store import Store, Transaction

    from ..models import User

logger = logging.getLogger(__name__)


def find_edge(user: dict[str, Any], peer_id: str) -> FriendEdge | None:
    """Return the user's friend edge toward ``peer_id``, if any."""
    for edge in user.get("friendEdges") or []:
        if edge.get("peerId") == peer_id:
            return edge
    return None


def is_friend(user: dict[str, Any], peer_id: str) -> bool:
    """Check whether ``peer_id`` is among the user's friends."""
    return find_edge(user, peer_id) is not None


def friend_ids(user: dict[str, Any]) -> list[str]:
    """Return the IDs of a user's friends."""
    return [edge["peerId"] for edge in user.get("friendEdges") or []]


def _has_pending_from(user: dict[str, Any], sender_id: str) -> bool:
    return any(
        req.get("senderId") == sender_id
        for req in user.get("pendingFriendRequests") or []
    )


def _without_request(user: dict[str, Any], sender_id: str) -> list[FriendRequest]:
    return [
        req
        for req in user.get("pendingFriendRequests") or []
        if req.get("senderId") != sender_id
    ]


def send_friend_request(
    store: Store,
    sender_id: str,
    receiver_id: str,
    now: datetime.datetime | None = None,
) -> FriendRequest:
    """Append a pending friend request to the receiver's list."""
    if sender_id == receiver_id:
        raise SelfReferenceError()
    requested_at = now or utcnow()

    def _send(transaction: Transaction) -> FriendRequest:
        sender = get_user_in(transaction, sender_id)
        receiver = get_user_in(transaction, receiver_id)
        if is_friend(sender, receiver_id) or is_friend(receiver, sender_id):
            raise AlreadyFriendsError()
        if _has_pending_from(receiver, sender_id):
            raise DuplicateRequestError()

        request: FriendRequest = {
            "senderId": sender_id,
            "senderName": sender.get("name") or smart_display_name(sender),
            "senderEmail": sender.get("email", ""),
            "requestedAt": requested_at,
        }
        pending = list(receiver.get("pendingFriendRequests") or [])
        pending.append(request)
        transaction.update(
            USERS_COLLECTION, receiver_id, {"pendingFriendRequests": pending}
        )
        return request

    return store.run_transaction(_send)


def accept_friend_request(store: Store, receiver_id: str, sender_id: str) -> None:
    """Accept a pending request, creating the edge on both users atomically."""

    def _accept(transaction: Transaction) -> None:
        receiver = get_user_in(transaction, receiver_id)
        sender = get_user_in(transaction, sender_id)
        if not _has_pending_from(receiver, sender_id):
            raise RequestNotFoundError()

        receiver_edges = list(receiver.get("friendEdges") or [])
        if not is_friend(receiver, sender_id):
            receiver_edges.append({"peerId": sender_id, "locationVisible": False})
        sender_edges = list(sender.get("friendEdges") or [])
        if not is_friend(sender, receiver_id):
            sender_edges.append({"peerId": receiver_id, "locationVisible": False})

        transaction.update(
            USERS_COLLECTION,
            receiver_id,
            {
                "friendEdges": receiver_edges,
                "pendingFriendRequests": _without_request(receiver, sender_id),
            },
        )
        # A crossing request from the receiver is settled by this acceptance.
        transaction.update(
            USERS_COLLECTION,
            sender_id,
            {
                "friendEdges": sender_edges,
                "pendingFriendRequests": _without_request(sender, receiver_id),
            },
        )

    store.run_transaction(_accept)
    logger.info(f"Users {receiver_id} and {sender_id} are now friends")


def decline_friend_request(store: Store, receiver_id: str, sender_id: str) -> None:
    """Remove a pending request without creating an edge."""

    def _decline(transaction: Transaction) -> None:
        receiver = get_user_in(transaction, receiver_id)
        if not _has_pending_from(receiver, sender_id):
            raise RequestNotFoundError()
        transaction.update(
            USERS_COLLECTION,
            receiver_id,
            {"pendingFriendRequests": _without_request(receiver, sender_id)},
        )

    store.run_transaction(_decline)


def search_by_contact(store: Store, query: str) -> list[PublicProfile]:
    """Case-insensitive partial match over users' email addresses."""
    needle = (query or "").strip().lower()
    if not needle:
        raise ValidationError("A search query is required.")
    results = [
        public_profile(user)
        for user in store.stream(USERS_COLLECTION)
        if needle in (user.get("emailLower") or user.get("email", "").lower())
    ]
    return sorted(results, key=lambda profile: profile["email"])


def get_user_friends(store: Store, user_id: str) -> list[PublicProfile]:
    """Fetch a user's friends."""
    user: User = get_user(store, user_id)
    friends = store.get_many(USERS_COLLECTION, friend_ids(user))
    return [public_profile(friend) for friend in friends]


def get_user_pending_requests(store: Store, user_id: str) -> list[FriendRequest]:
    """Fetch pending friend requests where the user is the receiver."""
    user = get_user(store, user_id)
    return list(user.get("pendingFriendRequests") or [])
