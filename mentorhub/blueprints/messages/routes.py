import logging

from flask import abort, current_app, jsonify, request
from flask_login import current_user, login_required
from sqlalchemy import and_, or_
from sqlalchemy.orm import selectinload

from ...cache import CACHE_TTL, cache, cache_keys, invalidate_admin_mentor_messages
from ...extensions import db
from ...models import Mentor, Message, Role, User
from ...services.notify import (cleanup_group_messages, notify_group_message, notify_roles,
                                notify_user)
from ..auth.routes import json_body, role_required
from . import bp

logger = logging.getLogger(__name__)


def _content():
    content = (json_body().get("content") or "").strip()
    if not content:
        abort(400, "Message content is required")
    return content


def _may_message(sender, receiver):
    if sender.role == Role.ADMIN:
        return True
    if sender.role == Role.MENTEE:
        mentor = sender.mentee.mentor if sender.mentee else None
        return mentor is not None and mentor.user_id == receiver.id
    if sender.role == Role.MENTOR:
        if receiver.role == Role.ADMIN:
            return True
        return (receiver.mentee is not None and sender.mentor is not None
                and receiver.mentee.mentor_id == sender.mentor.id)
    return False


# ---------- Direct messages ----------
@bp.get("/messages")
@login_required
def list_messages():
    me = current_user.id
    q = (Message.query.options(selectinload(Message.sender))
         .filter(Message.is_group_message.is_(False),
                 Message.is_admin_mentor_message.is_(False),
                 or_(Message.sender_id == me, Message.receiver_id == me)))
    other = request.args.get("with", type=int)
    if other:
        q = q.filter(or_(and_(Message.sender_id == me, Message.receiver_id == other),
                         and_(Message.sender_id == other, Message.receiver_id == me)))
    return jsonify([m.to_dict() for m in q.order_by(Message.created_at, Message.id).all()])


@bp.post("/messages")
@login_required
def send_message():
    data = json_body()
    receiver = db.session.get(User, data.get("receiver_id")) if data.get("receiver_id") else None
    if not receiver:
        abort(404, "Receiver not found")
    if receiver.id == current_user.id:
        abort(400, "You cannot message yourself")
    if not _may_message(current_user, receiver):
        abort(403, "You cannot message this user")
    m = Message(sender_id=current_user.id, receiver_id=receiver.id, content=_content())
    db.session.add(m)
    notify_user(receiver.id, f"New message from {current_user.display_name}", role=receiver.role)
    db.session.commit()
    return jsonify(m.to_dict()), 201


@bp.patch("/messages/<int:mid>/read")
@login_required
def mark_read(mid):
    m = db.session.get(Message, mid)
    if not m:
        abort(404, "Message not found")
    if m.receiver_id != current_user.id:
        abort(403, "Only the receiver can mark a message as read")
    m.is_read = True
    db.session.commit()
    return jsonify(m.to_dict())


# ---------- Group chat ----------
def _group_mentor():
    """The mentor whose group the caller reads or writes."""
    if current_user.role == Role.MENTOR:
        if current_user.mentor is None:
            abort(403, "No mentor profile for this account")
        return current_user.mentor
    if current_user.role == Role.MENTEE:
        me = current_user.mentee
        if me is None or me.mentor is None:
            abort(404, "You are not assigned to a mentor group")
        return me.mentor
    mentor = db.session.get(Mentor, request.args.get("mentor_id", type=int) or 0)
    if not mentor:
        abort(400, "mentor_id is required")
    return mentor


@bp.get("/group-messages")
@login_required
def group_messages():
    mentor = _group_mentor()
    items = (Message.query.options(selectinload(Message.sender))
             .filter_by(is_group_message=True, mentor_id=mentor.id)
             .order_by(Message.created_at, Message.id).all())
    return jsonify([m.to_dict() for m in items])


@bp.post("/group-messages")
@login_required
@role_required(Role.MENTOR, Role.MENTEE)
def post_group_message():
    mentor = _group_mentor()
    m = Message(sender_id=current_user.id, mentor_id=mentor.id, content=_content(),
                is_group_message=True)
    db.session.add(m)
    notify_group_message(current_user, mentor)
    db.session.commit()
    return jsonify(m.to_dict()), 201


@bp.get("/group-members")
@login_required
def group_members():
    mentor = _group_mentor()
    members = [{"id": mentor.user_id, "name": mentor.name, "role": Role.MENTOR, "usn": None}]
    members += [{"id": m.user_id, "name": m.name, "role": Role.MENTEE, "usn": m.usn}
                for m in sorted(mentor.active_mentees(), key=lambda m: m.usn)]
    return jsonify(members)


@bp.post("/group-messages/cleanup")
@login_required
@role_required(Role.ADMIN)
def cleanup():
    days = current_app.config["GROUP_MESSAGE_RETENTION_DAYS"]
    return jsonify(deleted=cleanup_group_messages(days), days=days)


# ---------- Admin <-> mentor channel ----------
@bp.get("/admin-mentor-messages")
@login_required
@role_required(Role.ADMIN, Role.MENTOR)
def admin_mentor_messages():
    key = cache_keys.admin_mentor_messages()
    data = cache.get(key)
    if data is None:
        items = (Message.query.options(selectinload(Message.sender))
                 .filter_by(is_admin_mentor_message=True)
                 .order_by(Message.created_at, Message.id).all())
        data = [m.to_dict() for m in items]
        cache.set(key, data, CACHE_TTL["admin_mentor_messages"])
    return jsonify(data)


@bp.post("/admin-mentor-messages")
@login_required
@role_required(Role.ADMIN, Role.MENTOR)
def post_admin_mentor_message():
    m = Message(sender_id=current_user.id, content=_content(), is_admin_mentor_message=True)
    db.session.add(m)
    other = Role.MENTOR if current_user.role == Role.ADMIN else Role.ADMIN
    notify_roles(f"New message from {current_user.display_name} in admin-mentor chat", [other])
    db.session.commit()
    invalidate_admin_mentor_messages()
    return jsonify(m.to_dict()), 201
