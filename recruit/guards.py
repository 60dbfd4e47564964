from functools import wraps

from flask import abort, g, jsonify, redirect, request, session, url_for
from flask_jwt_extended import get_jwt, verify_jwt_in_request
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from recruit.constants import ROLE_ADMIN, ROLE_INTERVIEWER


def _is_api_request():
    return request.path.startswith("/api/")


def current_user():
    """The session user, else the identity of a valid bearer token, else None."""
    user = session.get("user")
    if user:
        return user
    try:
        if verify_jwt_in_request(optional=True) is None:
            return None
    except (JWTExtendedException, PyJWTError):
        return None
    claims = get_jwt()
    return {
        "id": claims.get("sub"),
        "name": claims.get("name", ""),
        "role": claims.get("role", ROLE_INTERVIEWER),
        "openId": claims.get("openId", ""),
        "provider": claims.get("provider", ""),
    }


def actor_name():
    user = getattr(g, "user", None) or {}
    return user.get("name") or None


def login_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        user = current_user()
        if not user:
            if _is_api_request():
                return jsonify({"error": "unauthorized"}), 401
            return redirect(url_for("auth.login"))
        g.user = user
        return view(*args, **kwargs)
    return wrapped


def admin_required(view):
    @wraps(view)
    @login_required
    def wrapped(*args, **kwargs):
        if g.user.get("role") != ROLE_ADMIN:
            if _is_api_request():
                return jsonify({"error": "forbidden"}), 403
            abort(403)
        return view(*args, **kwargs)
    return wrapped
