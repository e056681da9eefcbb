"""The meal blueprint."""

from flask import Blueprint

bp = Blueprint("meal", __name__, url_prefix="/api/meals")

from . import routes  # noqa: E402

__all__ = ["routes"]
