"""Routes for the ping blueprint."""

from __future__ import annotations

from typing import Any

from flask import g, jsonify, request

from dinewithfriends.auth.decorators import login_required
from dinewithfriends.extensions import get_store
from dinewithfriends.utils import parse_payload

from . import bp
from .models import PingAnswer, PingSubmission
from .services import PingService


@bp.route("", methods=["POST"])
@login_required
def send_ping() -> Any:
    """Broadcast a ping to friends or squads."""
    submission = parse_payload(PingSubmission, request.get_json(silent=True))
    ping = PingService.create_ping(get_store(), g.user["id"], submission)
    return jsonify(ping), 201


@bp.route("", methods=["GET"])
@login_required
def active_pings() -> Any:
    """List pings waiting for the caller's answer."""
    return jsonify(PingService.list_active(get_store(), g.user["id"]))


@bp.route("/sent", methods=["GET"])
@login_required
def sent_pings() -> Any:
    return jsonify(PingService.list_sent(get_store(), g.user["id"]))


@bp.route("/<string:ping_id>/respond", methods=["POST"])
@login_required
def respond(ping_id: str) -> Any:
    """Accept or decline a ping."""
    payload = parse_payload(PingAnswer, request.get_json(silent=True))
    entry = PingService.respond(get_store(), g.user["id"], ping_id, payload.response)
    return jsonify(entry)


@bp.route("/<string:ping_id>/dismiss", methods=["POST"])
@login_required
def dismiss(ping_id: str) -> Any:
    entry = PingService.dismiss(get_store(), g.user["id"], ping_id)
    return jsonify(entry)


@bp.route("/<string:ping_id>/cancel", methods=["POST"])
@login_required
def cancel(ping_id: str) -> Any:
    """Withdraw a ping the caller sent."""
    ping = PingService.cancel(get_store(), g.user["id"], ping_id)
    return jsonify(ping)
