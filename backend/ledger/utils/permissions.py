"""Permission helpers."""
from flask import current_app
from flask_jwt_extended import get_jwt_identity

from .errors import AuthorizationError


def is_creator(user, obj):
    return getattr(obj, "created_by", None) == getattr(user, "id", None)


def current_user():
    """The authenticated caller as a ``User``; call inside a jwt_required view."""
    uid = get_jwt_identity()
    user = current_app.extensions["user_store"].find_by_id(uid)
    if user is None:
        raise AuthorizationError("User not found")
    return user
