from __future__ import annotations

import logging
import os
import tempfile
from typing import TYPE_CHECKING, Any, cast

from firebase_admin import storage
from werkzeug.utils import secure_filename

from dinewithfriends.core.constants import LOCATION_OFFLINE, USERS_COLLECTION
from dinewithfriends.errors import DuplicateContactError, UserNotFoundError
from dinewithfriends.utils import utcnow

from ..models import ProfileUpdate, PublicProfile, Registration, User

if TYPE_CHECKING:
    from werkzeug.datastructures import FileStorage

    from dinewithfriends.core.store import Store, Transaction

logger = logging.getLogger(__name__)


def smart_display_name(user: dict[str, Any]) -> str:
    """Return a display name for a user, falling back to the email handle."""
    name = f"{user.get('firstName', '')} {user.get('lastName', '')}".strip()
    if name:
        return name
    email = user.get("email") or ""
    return email.split("@")[0] or "Unknown"


def public_profile(user: dict[str, Any]) -> PublicProfile:
    """Return the minimal public projection of a user."""
    return {
        "id": user["id"],
        "name": user.get("name") or smart_display_name(user),
        "email": user.get("email", ""),
        "profilePic": user.get("profilePic"),
    }


def resolve(store: Store, auth_uid: str) -> User:
    """Map a verified external identity to the internal user record."""
    matches = store.where(USERS_COLLECTION, "authUid", "==", auth_uid, limit=1)
    if not matches:
        raise UserNotFoundError(f"No user registered for identity {auth_uid}.")
    return cast(User, matches[0])


def get_user(store: Store, user_id: str) -> User:
    """Fetch a user by ID."""
    user = store.get(USERS_COLLECTION, user_id)
    if user is None:
        raise UserNotFoundError()
    return cast(User, user)


def get_user_in(transaction: Transaction, user_id: str) -> User:
    """Fetch a user by ID inside a transaction."""
    user = transaction.get(USERS_COLLECTION, user_id)
    if user is None:
        raise UserNotFoundError(f"User {user_id} not found.")
    return cast(User, user)


def register(store: Store, auth_uid: str, registration: Registration) -> User:
    """Create the user record for a newly verified identity."""
    email_lower = registration.email.lower()
    if store.where(USERS_COLLECTION, "emailLower", "==", email_lower, limit=1):
        raise DuplicateContactError()
    if store.where(USERS_COLLECTION, "authUid", "==", auth_uid, limit=1):
        raise DuplicateContactError("This account is already registered.")

    user_data: dict[str, Any] = {
        "authUid": auth_uid,
        "email": registration.email,
        "emailLower": email_lower,
        "firstName": registration.first_name,
        "lastName": registration.last_name,
        "profilePic": registration.profile_pic,
        "friendEdges": [],
        "pendingFriendRequests": [],
        "location": LOCATION_OFFLINE,
        "locationUpdatedAt": None,
        "scheduledMealIds": [],
        "createdAt": utcnow(),
    }
    user_data["name"] = smart_display_name(user_data)
    user_id = store.add(USERS_COLLECTION, user_data)
    logger.info(f"Registered user {user_id} for identity {auth_uid}")
    return cast(User, {**user_data, "id": user_id})


def update_user_profile(store: Store, user_id: str, patch: ProfileUpdate) -> User:
    """Apply a profile patch and return the updated user."""
    user = get_user(store, user_id)
    update_data = patch.to_update()
    if not update_data:
        return user
    merged = {**user, **update_data}
    update_data["name"] = smart_display_name(merged)
    store.update(USERS_COLLECTION, user_id, update_data)
    return cast(User, {**merged, "name": update_data["name"]})


def upload_profile_picture(
    store: Store, user_id: str, profile_picture_file: FileStorage
) -> str:
    """Upload a profile picture to Firebase Storage and store its public URL."""
    get_user(store, user_id)
    filename = secure_filename(profile_picture_file.filename or "profile.jpg")
    bucket = storage.bucket()
    blob = bucket.blob(f"profile_pictures/{user_id}/{filename}")

    with tempfile.NamedTemporaryFile(suffix=os.path.splitext(filename)[1]) as tmp:
        profile_picture_file.save(tmp.name)
        blob.upload_from_filename(tmp.name)

    blob.make_public()
    store.update(USERS_COLLECTION, user_id, {"profilePic": blob.public_url})
    return cast(str, blob.public_url)
