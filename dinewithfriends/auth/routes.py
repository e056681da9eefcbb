"""Routes for the auth blueprint."""

from __future__ import annotations

from typing import Any

from firebase_admin import auth
from flask import current_app, g, jsonify, request

from dinewithfriends.errors import AppError, DuplicateContactError, ValidationError
from dinewithfriends.extensions import get_store
from dinewithfriends.user.models import Registration
from dinewithfriends.user.services import UserService
from dinewithfriends.utils import parse_payload

from . import bp
from .decorators import login_required


@bp.route("", methods=["POST"])
def signup() -> Any:
    """Create the Firebase account and the matching user record."""
    registration = parse_payload(Registration, request.get_json(silent=True))
    if not registration.password:
        raise ValidationError("password is required.")

    try:
        account = auth.create_user(
            email=registration.email,
            password=registration.password,
            display_name=f"{registration.first_name} {registration.last_name}",
        )
    except auth.EmailAlreadyExistsError as e:
        raise DuplicateContactError() from e

    try:
        user = UserService.register(get_store(), account.uid, registration)
    except AppError:
        # Roll back the identity so the email can be used again.
        auth.delete_user(account.uid)
        raise
    current_app.logger.info(f"New account {account.uid} registered")
    return jsonify(user), 201


@bp.route("/register", methods=["POST"])
@login_required(registered=False)
def register() -> Any:
    """Create the user record for an identity created on the client."""
    registration = parse_payload(Registration, request.get_json(silent=True))
    user = UserService.register(get_store(), g.auth_uid, registration)
    return jsonify(user), 201


@bp.route("", methods=["GET"])
@login_required
def me() -> Any:
    """Return the caller's own user record."""
    return jsonify(g.user)
