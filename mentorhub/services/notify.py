"""Notification fan-out and group chat housekeeping.

The notify_* helpers only stage rows on the session; the calling view commits.
"""
import logging
from datetime import timedelta

from ..extensions import db
from ..models import Message, Notification, Role
from ..models.user import utcnow

logger = logging.getLogger(__name__)


def notify_roles(message, roles, urgent=False):
    n = Notification(message=message, target_roles=list(roles), is_urgent=bool(urgent))
    db.session.add(n)
    return n


def notify_user(user_id, message, role=None, urgent=False):
    n = Notification(message=message, target_roles=[role] if role else [],
                     target_user_id=user_id, is_urgent=bool(urgent))
    db.session.add(n)
    return n


def notify_group_message(sender, mentor):
    """One notification per group member other than the sender."""
    text = f"New message from {sender.display_name} in group chat"
    sent = []
    if sender.role == Role.MENTEE and mentor.user_id != sender.id:
        sent.append(notify_user(mentor.user_id, text, role=Role.MENTOR))
    for mentee in mentor.active_mentees():
        if mentee.user_id != sender.id:
            sent.append(notify_user(mentee.user_id, text, role=Role.MENTEE))
    return sent


def visible_notifications(user):
    rows = Notification.query.order_by(Notification.created_at.desc(),
                                       Notification.id.desc()).all()
    return [n for n in rows if n.visible_to(user)]


def cleanup_group_messages(days):
    """Delete group chat messages older than ``days``; returns the count."""
    cutoff = utcnow() - timedelta(days=days)
    deleted = (Message.query
               .filter(Message.is_group_message.is_(True), Message.created_at < cutoff)
               .delete(synchronize_session=False))
    db.session.commit()
    logger.info("Removed %d group messages older than %d days", deleted, days)
    return deleted
