from flask import abort, jsonify
from flask_login import current_user, login_required

from ...extensions import db
from ...models import Notification, Role
from ...services.notify import notify_roles, visible_notifications
from ..auth.routes import json_body, role_required
from . import bp

TARGETS = set(Role.ALL) | {"all"}


def _visible_or_404(nid):
    n = db.session.get(Notification, nid)
    if not n or not n.visible_to(current_user):
        abort(404, "Notification not found")
    return n


@bp.get("")
@login_required
def list_notifications():
    return jsonify([n.to_dict() for n in visible_notifications(current_user)])


@bp.post("")
@login_required
@role_required(Role.ADMIN)
def create_notification():
    data = json_body()
    message = (data.get("message") or "").strip()
    roles = data.get("target_roles") or ["all"]
    if isinstance(roles, str):
        roles = [roles]
    if not message:
        abort(400, "Message is required")
    if not set(roles) <= TARGETS:
        abort(400, "target_roles must be admin, mentor, mentee or all")
    n = notify_roles(message, roles, urgent=data.get("is_urgent", False))
    db.session.commit()
    return jsonify(n.to_dict()), 201


@bp.post("/<int:nid>/read")
@login_required
def mark_read(nid):
    n = _visible_or_404(nid)
    n.is_read = True
    db.session.commit()
    return jsonify(n.to_dict())


@bp.delete("/<int:nid>")
@login_required
def delete_notification(nid):
    n = _visible_or_404(nid)
    db.session.delete(n)
    db.session.commit()
    return jsonify(message="Notification deleted")
