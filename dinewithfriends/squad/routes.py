"""Routes for the squad blueprint."""

from __future__ import annotations

from typing import Any

from flask import g, jsonify, request

from dinewithfriends.auth.decorators import login_required
from dinewithfriends.errors import ForbiddenError
from dinewithfriends.extensions import get_store
from dinewithfriends.utils import parse_payload

from . import bp
from .models import MemberRef, SquadSubmission, SquadUpdate
from .services import SquadService


@bp.route("", methods=["POST"])
@login_required
def create_squad() -> Any:
    """Create a new squad."""
    submission = parse_payload(SquadSubmission, request.get_json(silent=True))
    squad = SquadService.create(get_store(), g.user["id"], submission)
    return jsonify(squad), 201


@bp.route("", methods=["GET"])
@login_required
def my_squads() -> Any:
    return jsonify(SquadService.get_user_squads(get_store(), g.user["id"]))


@bp.route("/<string:squad_id>", methods=["GET"])
@login_required
def view_squad(squad_id: str) -> Any:
    """Return a squad the caller belongs to."""
    squad = SquadService.get_squad(get_store(), squad_id)
    if not SquadService.is_member(squad, g.user["id"]):
        raise ForbiddenError("You are not a member of this squad.")
    return jsonify(squad)


@bp.route("/<string:squad_id>", methods=["PATCH"])
@login_required
def edit_squad(squad_id: str) -> Any:
    patch = parse_payload(SquadUpdate, request.get_json(silent=True))
    squad = SquadService.update_metadata(get_store(), g.user["id"], squad_id, patch)
    return jsonify(squad)


@bp.route("/<string:squad_id>", methods=["DELETE"])
@login_required
def delete_squad(squad_id: str) -> Any:
    SquadService.delete(get_store(), g.user["id"], squad_id)
    return "", 204


@bp.route("/<string:squad_id>/members", methods=["POST"])
@login_required
def add_member(squad_id: str) -> Any:
    """Add a user to the squad."""
    payload = parse_payload(MemberRef, request.get_json(silent=True))
    squad = SquadService.add_member(
        get_store(), g.user["id"], squad_id, payload.user_id
    )
    return jsonify(squad)


@bp.route("/<string:squad_id>/members/<string:member_id>", methods=["DELETE"])
@login_required
def remove_member(squad_id: str, member_id: str) -> Any:
    """Remove a member, or leave the squad when removing yourself."""
    squad = SquadService.remove_member(get_store(), g.user["id"], squad_id, member_id)
    if squad is None:
        return "", 204
    return jsonify(squad)


@bp.route("/<string:squad_id>/transfer", methods=["POST"])
@login_required
def transfer_ownership(squad_id: str) -> Any:
    """Hand the creator role to another member."""
    payload = parse_payload(MemberRef, request.get_json(silent=True))
    squad = SquadService.transfer_ownership(
        get_store(), g.user["id"], squad_id, payload.user_id
    )
    return jsonify(squad)
