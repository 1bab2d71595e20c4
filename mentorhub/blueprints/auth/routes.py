import logging
from functools import wraps

from flask import abort, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user
from sqlalchemy import func

from ...models import Role, User
from . import bp

logger = logging.getLogger(__name__)

ROLE_HOMES = {Role.ADMIN: "/admin", Role.MENTOR: "/mentor", Role.MENTEE: "/mentee"}


def role_required(*roles):
    def deco(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            if not current_user.is_authenticated:
                abort(401, "Authentication required")
            if current_user.role not in roles:
                abort(403, "You do not have access to this resource")
            return f(*args, **kwargs)
        return wrapper
    return deco


def role_home(user):
    if not user.is_authenticated:
        return "/auth"
    return ROLE_HOMES.get(user.role, "/auth")


def json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def current_profile(user=None):
    """Public user payload plus the mentor/mentee profile, if any."""
    user = user or current_user
    data = user.to_dict()
    if user.role == Role.MENTOR and user.mentor is not None:
        data["mentor"] = user.mentor.to_dict()
    elif user.role == Role.MENTEE and user.mentee is not None:
        data["mentee"] = user.mentee.to_dict()
    return data


@bp.post("/login")
def login():
    data = json_body() or request.form
    username = (data.get("username") or "").strip()
    password = data.get("password") or ""
    if not username or not password:
        abort(400, "Username and password are required")
    u = User.query.filter(func.lower(User.username) == username.lower()).first()
    if u is None or not u.check_password(password):
        logger.info("Failed login for %s", username)
        abort(401, "Invalid username or password")
    login_user(u)
    logger.info("User %s logged in as %s", u.username, u.role)
    return jsonify(user=current_profile(u), redirect=role_home(u))


@bp.post("/logout")
@login_required
def logout():
    logout_user()
    return jsonify(message="Logged out", redirect="/auth")


@bp.get("/user")
@login_required
def me():
    return jsonify(current_profile())
