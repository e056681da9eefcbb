"""Routes for the user blueprint."""

from __future__ import annotations

from typing import Any

from flask import g, jsonify, request

from dinewithfriends.auth.decorators import login_required
from dinewithfriends.errors import ValidationError
from dinewithfriends.extensions import get_store
from dinewithfriends.utils import parse_payload

from . import bp
from .models import LocationUpdate, ProfileUpdate, VisibilityUpdate
from .services import UserService


@bp.route("/me", methods=["PATCH"])
@login_required
def update_profile() -> Any:
    """Update the caller's name or picture URL."""
    patch = parse_payload(ProfileUpdate, request.get_json(silent=True))
    user = UserService.update_user_profile(get_store(), g.user["id"], patch)
    return jsonify(user)


@bp.route("/me/profile-picture", methods=["POST"])
@login_required
def upload_profile_picture() -> Any:
    """Upload a new profile picture."""
    file = request.files.get("profilePicture")
    if file is None or not file.filename:
        raise ValidationError("profilePicture file is required.")
    url = UserService.upload_profile_picture(get_store(), g.user["id"], file)
    return jsonify({"profilePic": url})


@bp.route("/search", methods=["GET"])
@login_required
def search() -> Any:
    """Search users by email address."""
    results = UserService.search_by_contact(get_store(), request.args.get("q", ""))
    return jsonify([r for r in results if r["id"] != g.user["id"]])


@bp.route("/<string:user_id>", methods=["GET"])
@login_required
def view_user(user_id: str) -> Any:
    """Return the public profile of a user."""
    user = UserService.get_user(get_store(), user_id)
    return jsonify(UserService.public_profile(user))


@bp.route("/me/friends", methods=["GET"])
@login_required
def friends() -> Any:
    return jsonify(UserService.get_user_friends(get_store(), g.user["id"]))


@bp.route("/me/friend-requests", methods=["GET"])
@login_required
def friend_requests() -> Any:
    return jsonify(UserService.get_user_pending_requests(get_store(), g.user["id"]))


@bp.route("/<string:user_id>/friend-request", methods=["POST"])
@login_required
def send_friend_request(user_id: str) -> Any:
    """Send a friend request to another user."""
    friend_request = UserService.send_friend_request(
        get_store(), g.user["id"], user_id
    )
    return jsonify(friend_request), 201


@bp.route("/me/friend-requests/<string:sender_id>/accept", methods=["POST"])
@login_required
def accept_friend_request(sender_id: str) -> Any:
    UserService.accept_friend_request(get_store(), g.user["id"], sender_id)
    return jsonify({"status": "accepted"})


@bp.route("/me/friend-requests/<string:sender_id>/decline", methods=["POST"])
@login_required
def decline_friend_request(sender_id: str) -> Any:
    UserService.decline_friend_request(get_store(), g.user["id"], sender_id)
    return jsonify({"status": "declined"})


@bp.route("/me/location", methods=["PUT"])
@login_required
def update_location() -> Any:
    """Check in at a place, or go offline with ``ghost``."""
    payload = parse_payload(LocationUpdate, request.get_json(silent=True))
    update = UserService.update_location(get_store(), g.user["id"], payload.place)
    return jsonify(update)


@bp.route("/me/friends/<string:friend_id>/location-visibility", methods=["PUT"])
@login_required
def set_location_visibility(friend_id: str) -> Any:
    """Share or hide the caller's location from one friend."""
    payload = parse_payload(VisibilityUpdate, request.get_json(silent=True))
    UserService.set_location_visibility(
        get_store(), g.user["id"], friend_id, payload.visible
    )
    return jsonify({"friendId": friend_id, "locationVisible": payload.visible})


@bp.route("/me/friends/locations", methods=["GET"])
@login_required
def friend_locations() -> Any:
    """List where friends who share their location currently are."""
    return jsonify(UserService.get_friend_locations(get_store(), g.user["id"]))
