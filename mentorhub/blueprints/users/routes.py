import logging

from flask import abort, jsonify
from flask_login import current_user, login_required

from ...extensions import db
from ...models import Role, User
from ...services.notify import notify_user
from ..auth.routes import current_profile, json_body
from . import bp

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


@bp.patch("/<int:uid>/profile")
@login_required
def update_profile(uid):
    if current_user.id != uid and current_user.role != Role.ADMIN:
        abort(403, "You can only edit your own profile")
    u = db.session.get(User, uid)
    if not u:
        abort(404, "User not found")
    data = json_body()

    if "name" in data:
        name = (data.get("name") or "").strip()
        if not name:
            abort(400, "Name cannot be empty")
        u.name = name
    if "email" in data:
        u.email = (data.get("email") or "").strip() or None

    profile = u.mentor if u.role == Role.MENTOR else u.mentee if u.role == Role.MENTEE else None
    if profile is not None and "mobile_number" in data:
        profile.mobile_number = (data.get("mobile_number") or "").strip() or None
    if u.role == Role.MENTEE and profile is not None and "parent_mobile_number" in data:
        profile.parent_mobile_number = (data.get("parent_mobile_number") or "").strip() or None

    if current_user.role == Role.ADMIN and current_user.id != uid and u.role == Role.MENTEE:
        notify_user(u.id, "Your profile was updated by an administrator", role=Role.MENTEE)
    db.session.commit()
    logger.info("Profile of user %s updated by %s", uid, current_user.id)
    return jsonify(current_profile(u))


@bp.post("/<int:uid>/change-password")
@login_required
def change_password(uid):
    if current_user.id != uid:
        abort(403, "You can only change your own password")
    data = json_body()
    current_pw = data.get("current_password") or ""
    new_pw = data.get("new_password") or ""
    if not current_user.check_password(current_pw):
        abort(400, "Current password is incorrect")
    if len(new_pw) < MIN_PASSWORD_LENGTH:
        abort(400, f"New password must be at least {MIN_PASSWORD_LENGTH} characters")
    current_user.set_password(new_pw)
    db.session.commit()
    return jsonify(message="Password updated")
