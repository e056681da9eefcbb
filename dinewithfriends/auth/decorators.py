"""Decorators for the auth blueprint."""

from functools import wraps

from firebase_admin import auth
from flask import current_app, g, request

from dinewithfriends.errors import UnauthenticatedError
from dinewithfriends.extensions import get_store
from dinewithfriends.user.services import UserService


def _bearer_token():
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def login_required(f=None, registered=True):
    """Verify the Firebase ID token and load the caller into ``g``.

    ``g.auth_uid`` always holds the verified identity. When ``registered`` is
    True the matching user record is resolved into ``g.user`` and a missing
    record is a NotFound error.

    Usage:
    @login_required
    def protected_view():
        ...

    @login_required(registered=False)
    def signup_view():
        ...
    """

    def decorator(func):
        @wraps(func)
        def decorated_function(*args, **kwargs):
            token = _bearer_token()
            if token is None:
                raise UnauthenticatedError()
            try:
                decoded_token = auth.verify_id_token(token)
            except (auth.InvalidIdTokenError, ValueError) as e:
                current_app.logger.warning(f"Rejected ID token: {e}")
                raise UnauthenticatedError("Invalid or expired token.") from e

            g.auth_uid = decoded_token["uid"]
            g.user = None
            if registered:
                g.user = UserService.resolve(get_store(), g.auth_uid)
            return func(*args, **kwargs)

        return decorated_function

    if f:
        return decorator(f)
    return decorator
