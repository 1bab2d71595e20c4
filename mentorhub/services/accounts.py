import logging
import re

from sqlalchemy import or_

from ..cache import invalidate_admin_mentor_messages
from ..extensions import db
from ..models import ErrorLog, Meeting, Mentee, Mentor, Message, Notification, Role, User
from .assignment import reassign_mentees

logger = logging.getLogger(__name__)

MIN_USN_LENGTH = 5


class ValidationError(ValueError):
    pass


class DuplicateError(ValidationError):
    pass


def normalize_usn(usn):
    return str(usn or "").strip().upper()


def parse_semester(value, default=None):
    if value in (None, ""):
        if default is None:
            raise ValidationError("Semester is required")
        return default
    try:
        sem = int(float(value))
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid semester '{value}'")
    if not 1 <= sem <= 8:
        raise ValidationError("Semester must be between 1 and 8")
    return sem


def mentor_username(name, email=None):
    """'Ms Alakananda K' -> 'ms.alakananda.k'; falls back to the email local part."""
    parts = [re.sub(r"[^a-z0-9]", "", p) for p in str(name or "").strip().lower().split()]
    from_name = ".".join(p for p in parts if p)
    from_email = re.sub(r"[^a-z0-9.]", "", (email or "").split("@")[0].lower())
    return from_name or from_email or "mentor"


def unique_username(base):
    username, suffix = base, 1
    while User.query.filter_by(username=username).first() is not None:
        username = f"{base}{suffix}"
        suffix += 1
    return username


def create_mentee(name, usn, semester, section, email=None, mentor_id=None,
                  mobile_number=None, parent_mobile_number=None, password=None):
    usn = normalize_usn(usn)
    if len(usn) < MIN_USN_LENGTH:
        raise ValidationError(f"USN must be at least {MIN_USN_LENGTH} characters")
    if not name or not str(name).strip():
        raise ValidationError("Name is required")
    if not section or not str(section).strip():
        raise ValidationError("Section is required")
    if mentor_id is not None and db.session.get(Mentor, mentor_id) is None:
        raise ValidationError(f"Mentor {mentor_id} does not exist")

    username = usn.lower()
    user = User(username=username, role=Role.MENTEE, name=str(name).strip(), email=email or None)
    user.set_password(password or username)
    mentee = Mentee(user=user, usn=usn, semester=parse_semester(semester),
                    section=str(section).strip(), mentor_id=mentor_id,
                    mobile_number=mobile_number, parent_mobile_number=parent_mobile_number)
    db.session.add_all([user, mentee])
    return mentee


def create_mentor(name, email=None, department=None, specialization=None,
                  mobile_number=None, password=None):
    """Create a mentor, or give a profile to an existing mentor user that lacks one.

    Returns (mentor, created). Admin and mentee accounts are never converted;
    a clashing username gets a numeric suffix instead.
    """
    if not name or not str(name).strip():
        raise ValidationError("Name is required")
    base = mentor_username(name, email)
    existing = User.query.filter_by(username=base).first()
    if existing is not None and existing.role == Role.MENTOR:
        if existing.mentor is not None:
            raise DuplicateError("Mentor already exists for this user")
        existing.name = name
        existing.email = email or existing.email
        mentor = Mentor(user=existing, department=department, specialization=specialization,
                        mobile_number=mobile_number, is_active=True)
        db.session.add(mentor)
        return mentor, False

    username = unique_username(base)
    user = User(username=username, role=Role.MENTOR, name=name, email=email or None)
    user.set_password(password or username)
    mentor = Mentor(user=user, department=department, specialization=specialization,
                    mobile_number=mobile_number, is_active=True)
    db.session.add_all([user, mentor])
    return mentor, True


def _purge_user_rows(user_id):
    Message.query.filter(or_(Message.sender_id == user_id,
                             Message.receiver_id == user_id)).delete(synchronize_session=False)
    ErrorLog.query.filter_by(user_id=user_id).delete(synchronize_session=False)
    Notification.query.filter_by(target_user_id=user_id).delete(synchronize_session=False)
    invalidate_admin_mentor_messages()


def _delete_user(user):
    db.session.flush()
    db.session.expire(user)
    db.session.delete(user)


def delete_mentee(mentee):
    """Remove a mentee with its records, assessments and meeting seats, then its user."""
    user = mentee.user
    logger.info("Deleting mentee %s (user %s)", mentee.id, mentee.user_id)
    _purge_user_rows(mentee.user_id)
    # records, assessments and participations go through the ORM cascade
    db.session.delete(mentee)
    if user is not None:
        _delete_user(user)


def delete_mentor(mentor):
    """Reassign the mentor's mentees, then remove the mentor and its user."""
    logger.info("Deleting mentor %s (user %s)", mentor.id, mentor.user_id)
    moves = reassign_mentees(mentor.id)
    db.session.flush()
    db.session.expire(mentor)

    user = mentor.user
    for meeting in Meeting.query.filter_by(mentor_id=mentor.id).all():
        db.session.delete(meeting)
    Message.query.filter_by(mentor_id=mentor.id).delete(synchronize_session=False)
    _purge_user_rows(mentor.user_id)
    # inactive mentees left on this mentor end up unassigned
    db.session.delete(mentor)
    if user is not None:
        _delete_user(user)
    return moves
