"""The ping blueprint."""

from flask import Blueprint

bp = Blueprint("ping", __name__, url_prefix="/api/pings")

from . import routes  # noqa: E402

__all__ = ["routes"]
