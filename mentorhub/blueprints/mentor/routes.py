import logging

from flask import abort, jsonify, request
from flask_login import current_user, login_required
from sqlalchemy.orm import selectinload

from ...extensions import db
from ...models import AcademicRecord, Mentee, Role, Subject
from ...services.accounts import create_mentee, normalize_usn, parse_semester
from ...services.importer import MenteeImporter, read_table
from ...services.notify import notify_roles, notify_user
from ...services.stats import at_risk_mentees, at_risk_threshold, mentor_dashboard_stats
from ..auth.routes import json_body, role_required
from . import bp

logger = logging.getLogger(__name__)

MARK_FIELDS = ("cie1_marks", "cie2_marks", "cie3_marks", "assignment_marks")
MAX_MARKS = 50


def get_current_mentor():
    m = current_user.mentor
    if m is None:
        abort(403, "No mentor profile for this account")
    return m


def _own_mentee(mentor, mentee_id):
    m = db.session.get(Mentee, mentee_id) if mentee_id else None
    if not m:
        abort(404, "Mentee not found")
    if m.mentor_id != mentor.id:
        abort(403, "This mentee is not assigned to you")
    return m


def _number(data, key, upper):
    val = data.get(key)
    if val is None or val == "":
        return None
    try:
        num = float(val)
    except (TypeError, ValueError):
        abort(400, f"{key} must be a number")
    if not 0 <= num <= upper:
        abort(400, f"{key} must be between 0 and {upper}")
    return num


def _save_record(mentor, data, fields):
    mentee = _own_mentee(mentor, data.get("mentee_id"))
    subject = db.session.get(Subject, data.get("subject_id")) if data.get("subject_id") else None
    if not subject:
        abort(404, "Subject not found")
    year = (data.get("academic_year") or "").strip()
    if not year:
        abort(400, "academic_year is required")
    semester = parse_semester(data.get("semester"), default=subject.semester)

    rec = AcademicRecord.query.filter_by(mentee_id=mentee.id, subject_id=subject.id,
                                         semester=semester, academic_year=year).one_or_none()
    created = rec is None
    if created:
        rec = AcademicRecord(mentee_id=mentee.id, subject_id=subject.id,
                             semester=semester, academic_year=year)
        db.session.add(rec)
    for key in fields:
        if key in data:
            setattr(rec, key, _number(data, key, 100 if key == "attendance" else MAX_MARKS))
    rec.recompute()

    threshold = at_risk_threshold()
    low = rec.attendance is not None and rec.attendance < threshold
    text = f"Your academic record for {subject.name} ({year}) was updated"
    if low:
        text += f". Attendance is {rec.attendance:g}%, below the required {threshold:g}%"
    notify_user(mentee.user_id, text, role=Role.MENTEE, urgent=low)
    notify_user(current_user.id, f"Record saved for {mentee.name} ({subject.code})",
                role=Role.MENTOR)
    db.session.commit()
    return rec, created


@bp.get("/dashboard/stats")
@login_required
@role_required(Role.MENTOR)
def dashboard_stats():
    return jsonify(mentor_dashboard_stats(get_current_mentor(), at_risk_threshold()))


@bp.get("/mentees")
@login_required
@role_required(Role.MENTOR)
def my_mentees():
    mentor = get_current_mentor()
    threshold = at_risk_threshold()
    items = (Mentee.query
             .options(selectinload(Mentee.academic_records), selectinload(Mentee.user))
             .filter_by(mentor_id=mentor.id).order_by(Mentee.semester, Mentee.usn).all())
    return jsonify([m.to_dict(threshold) for m in items])


@bp.post("/mentees")
@login_required
@role_required(Role.MENTOR)
def add_mentee():
    mentor = get_current_mentor()
    data = json_body()
    usn = normalize_usn(data.get("usn"))
    if Mentee.query.filter_by(usn=usn).first():
        abort(409, "A student with this USN already exists")
    m = create_mentee(name=(data.get("name") or "").strip(), usn=usn,
                      semester=data.get("semester"), section=(data.get("section") or "").strip(),
                      email=(data.get("email") or "").strip() or None, mentor_id=mentor.id,
                      mobile_number=data.get("mobile_number") or None,
                      parent_mobile_number=data.get("parent_mobile_number") or None)
    notify_roles(f"Mentor {mentor.name} added new mentee {m.name} ({m.usn})", [Role.ADMIN])
    db.session.commit()
    logger.info("Mentee %s added by mentor %s", m.usn, mentor.id)
    return jsonify(m.to_dict(at_risk_threshold())), 201


@bp.get("/at-risk-mentees")
@login_required
@role_required(Role.MENTOR)
def at_risk():
    mentor = get_current_mentor()
    threshold = at_risk_threshold()
    return jsonify([m.to_dict(threshold) for m in at_risk_mentees(threshold, mentor.id)])


def _records_query(mentor):
    q = (AcademicRecord.query.join(Mentee)
         .options(selectinload(AcademicRecord.subject),
                  selectinload(AcademicRecord.mentee).selectinload(Mentee.user))
         .filter(Mentee.mentor_id == mentor.id))
    year = (request.args.get("academic_year") or "").strip()
    if year:
        q = q.filter(AcademicRecord.academic_year == year)
    semester = request.args.get("semester", type=int)
    if semester:
        q = q.filter(AcademicRecord.semester == semester)
    mentee_id = request.args.get("mentee_id", type=int)
    if mentee_id:
        q = q.filter(AcademicRecord.mentee_id == mentee_id)
    return q.order_by(Mentee.usn, AcademicRecord.semester, AcademicRecord.subject_id)


@bp.get("/academic-records")
@login_required
@role_required(Role.MENTOR)
def academic_records():
    recs = _records_query(get_current_mentor()).all()
    return jsonify([r.to_dict(with_mentee=True) for r in recs])


@bp.post("/academic-records")
@login_required
@role_required(Role.MENTOR)
def save_academic_record():
    rec, created = _save_record(get_current_mentor(), json_body(), MARK_FIELDS + ("attendance",))
    return jsonify(rec.to_dict(with_mentee=True)), 201 if created else 200


@bp.get("/attendance-records")
@login_required
@role_required(Role.MENTOR)
def attendance_records():
    recs = (_records_query(get_current_mentor())
            .filter(AcademicRecord.attendance.isnot(None)).all())
    return jsonify([{
        "id": r.id,
        "mentee_id": r.mentee_id,
        "mentee_name": r.mentee.name,
        "usn": r.mentee.usn,
        "subject": {"code": r.subject.code, "name": r.subject.name},
        "semester": r.semester,
        "academic_year": r.academic_year,
        "attendance": r.attendance,
    } for r in recs])


@bp.post("/attendance")
@login_required
@role_required(Role.MENTOR)
def save_attendance():
    data = json_body()
    if data.get("attendance") in (None, ""):
        abort(400, "attendance is required")
    rec, created = _save_record(get_current_mentor(), data, ("attendance",))
    return jsonify(rec.to_dict(with_mentee=True)), 201 if created else 200


@bp.post("/upload-mentees")
@login_required
@role_required(Role.MENTOR)
def upload_mentees():
    mentor = get_current_mentor()
    f = request.files.get("file")
    if not f or not f.filename:
        abort(400, "No file uploaded")
    importer = MenteeImporter("manual", owner=mentor, acting_user_id=current_user.id)
    return jsonify(importer.run(read_table(f)))
