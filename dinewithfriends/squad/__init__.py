"""The squad blueprint."""

from flask import Blueprint

bp = Blueprint("squad", __name__, url_prefix="/api/squads")

from . import routes  # noqa: E402

__all__ = ["routes"]
