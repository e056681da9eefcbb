"""Routes for the meal blueprint."""

from __future__ import annotations

from typing import Any

from flask import g, jsonify, request

from dinewithfriends.auth.decorators import login_required
from dinewithfriends.core.constants import MEAL_TIME_SLOTS
from dinewithfriends.errors import ForbiddenError
from dinewithfriends.extensions import get_store
from dinewithfriends.utils import parse_payload

from . import bp
from .models import InviteResponse, MealSubmission, MealUpdate
from .services import MealService


@bp.route("", methods=["POST"])
@login_required
def create_meal() -> Any:
    """Schedule a new meal."""
    submission = parse_payload(MealSubmission, request.get_json(silent=True))
    meal = MealService.create_meal(get_store(), g.user["id"], submission)
    return jsonify(meal), 201


@bp.route("", methods=["GET"])
@login_required
def my_meals() -> Any:
    """List meals the caller hosts or was invited to."""
    return jsonify(MealService.get_user_meals(get_store(), g.user["id"]))


@bp.route("/time-slots", methods=["GET"])
def time_slots() -> Any:
    return jsonify(list(MEAL_TIME_SLOTS))


@bp.route("/open", methods=["GET"])
@login_required
def open_meals() -> Any:
    """List friends' open meals in the coming week."""
    return jsonify(MealService.get_open_meals(get_store(), g.user["id"]))


@bp.route("/<string:meal_id>", methods=["GET"])
@login_required
def view_meal(meal_id: str) -> Any:
    """Return a meal the caller hosts, was invited to, or can join."""
    meal = MealService.get_meal(get_store(), meal_id)
    user_id = g.user["id"]
    if (
        user_id != meal["hostId"]
        and user_id not in MealService.participant_ids(meal)
        and not meal.get("isOpenToJoin")
    ):
        raise ForbiddenError("You are not invited to this meal.")
    return jsonify(meal)


@bp.route("/<string:meal_id>", methods=["PATCH"])
@login_required
def edit_meal(meal_id: str) -> Any:
    patch = parse_payload(MealUpdate, request.get_json(silent=True))
    meal = MealService.update_meal(get_store(), g.user["id"], meal_id, patch)
    return jsonify(meal)


@bp.route("/<string:meal_id>", methods=["DELETE"])
@login_required
def delete_meal(meal_id: str) -> Any:
    MealService.delete_meal(get_store(), g.user["id"], meal_id)
    return "", 204


@bp.route("/<string:meal_id>/join", methods=["POST"])
@login_required
def join_meal(meal_id: str) -> Any:
    """Join an open meal."""
    meal = MealService.join_open_meal(get_store(), g.user["id"], meal_id)
    return jsonify(meal)


@bp.route("/<string:meal_id>/participants/<string:participant_id>", methods=["PUT"])
@login_required
def respond_to_invite(meal_id: str, participant_id: str) -> Any:
    """Confirm or decline an individual invitation."""
    payload = parse_payload(InviteResponse, request.get_json(silent=True))
    participant = MealService.update_participant_status(
        get_store(), g.user["id"], meal_id, participant_id, payload.status
    )
    return jsonify(participant)


@bp.route("/<string:meal_id>/squads/<string:squad_id>", methods=["PUT"])
@login_required
def respond_to_squad_invite(meal_id: str, squad_id: str) -> Any:
    """Confirm or decline a meal on behalf of a squad."""
    payload = parse_payload(InviteResponse, request.get_json(silent=True))
    meal = MealService.respond_to_squad_invite(
        get_store(), g.user["id"], meal_id, squad_id, payload.status
    )
    return jsonify(meal)
