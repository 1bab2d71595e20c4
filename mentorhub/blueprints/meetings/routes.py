import logging
from datetime import datetime, timezone

from flask import abort, jsonify
from flask_login import current_user, login_required
from sqlalchemy.orm import selectinload

from ...extensions import db
from ...models import Meeting, MeetingParticipant, MeetingStatus, MeetingType, Mentee, Role
from ...services.notify import notify_user
from ..auth.routes import json_body, role_required
from ..mentor.routes import get_current_mentor
from . import bp

logger = logging.getLogger(__name__)


def parse_when(value):
    try:
        when = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
    except (TypeError, ValueError):
        abort(400, "scheduled_at must be an ISO 8601 datetime")
    if when.tzinfo is not None:
        when = when.astimezone(timezone.utc).replace(tzinfo=None)
    return when


def _with_participants(q):
    return q.options(selectinload(Meeting.participants).selectinload(MeetingParticipant.mentee)
                     .selectinload(Mentee.user))


@bp.get("")
@login_required
def list_meetings():
    if current_user.role == Role.MENTOR:
        q = Meeting.query.filter_by(mentor_id=get_current_mentor().id)
    elif current_user.role == Role.MENTEE and current_user.mentee is not None:
        q = (Meeting.query.join(MeetingParticipant)
             .filter(MeetingParticipant.mentee_id == current_user.mentee.id))
    else:
        return jsonify([])
    items = _with_participants(q).order_by(Meeting.scheduled_at.desc()).all()
    return jsonify([m.to_dict() for m in items])


@bp.post("")
@login_required
@role_required(Role.MENTOR)
def create_meeting():
    mentor = get_current_mentor()
    data = json_body()

    kind = data.get("type") or MeetingType.ONE_TO_ONE
    if kind not in (MeetingType.ONE_TO_ONE, MeetingType.MANY_TO_ONE):
        abort(400, "type must be one_to_one or many_to_one")
    title = (data.get("title") or "").strip()
    if not title:
        abort(400, "Title is required")
    ids = list(dict.fromkeys(data.get("mentee_ids") or []))
    if kind == MeetingType.ONE_TO_ONE and len(ids) != 1:
        abort(400, "A one-to-one meeting needs exactly one mentee")
    if kind == MeetingType.MANY_TO_ONE and len(ids) < 2:
        abort(400, "A group meeting needs at least two mentees")
    mentees = Mentee.query.filter(Mentee.id.in_(ids), Mentee.mentor_id == mentor.id).all()
    if len(mentees) != len(ids):
        abort(403, "Meetings can only include your own mentees")
    duration = data.get("duration_minutes") or 60
    if not isinstance(duration, int) or duration <= 0:
        abort(400, "duration_minutes must be a positive integer")

    meeting = Meeting(mentor_id=mentor.id, type=kind, title=title,
                      description=data.get("description"), location=data.get("location"),
                      scheduled_at=parse_when(data.get("scheduled_at")),
                      duration_minutes=duration)
    meeting.participants = [MeetingParticipant(mentee=m) for m in mentees]
    db.session.add(meeting)
    when = meeting.scheduled_at.strftime("%Y-%m-%d %H:%M")
    for m in mentees:
        notify_user(m.user_id, f"Meeting '{title}' scheduled with {mentor.name} on {when}",
                    role=Role.MENTEE)
    db.session.commit()
    logger.info("Meeting %s scheduled by mentor %s for %d mentees",
                meeting.id, mentor.id, len(mentees))
    return jsonify(meeting.to_dict()), 201


@bp.patch("/<int:meeting_id>/feedback")
@login_required
@role_required(Role.MENTOR)
def record_feedback(meeting_id):
    mentor = get_current_mentor()
    meeting = db.session.get(Meeting, meeting_id)
    if not meeting:
        abort(404, "Meeting not found")
    if meeting.mentor_id != mentor.id:
        abort(403, "This meeting belongs to another mentor")
    data = json_body()

    seats = {p.mentee_id: p for p in meeting.participants}
    for entry in data.get("participants") or []:
        p = seats.get(entry.get("mentee_id"))
        if p is None:
            abort(400, f"Mentee {entry.get('mentee_id')} is not part of this meeting")
        if "attended" in entry:
            p.attended = bool(entry["attended"])
        if "remarks" in entry:
            p.remarks = (entry.get("remarks") or "").strip() or None
        if "stars" in entry:
            stars = entry.get("stars")
            if stars is not None and (not isinstance(stars, int) or not 1 <= stars <= 5):
                abort(400, "stars must be between 1 and 5")
            p.stars = stars
    if data.get("complete"):
        meeting.status = MeetingStatus.COMPLETED
    db.session.commit()
    return jsonify(meeting.to_dict())
