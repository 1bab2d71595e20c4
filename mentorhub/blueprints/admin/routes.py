import logging

from flask import abort, current_app, jsonify, request
from flask_login import current_user, login_required
from sqlalchemy import or_
from sqlalchemy.orm import selectinload

from ...extensions import db
from ...models import (AcademicRecord, ErrorLog, Meeting, Mentee, Mentor, Message, Role, Subject,
                       User)
from ...services.accounts import (create_mentee, create_mentor, delete_mentee, delete_mentor,
                                  normalize_usn, parse_semester)
from ...services.assignment import MentorLoadBalancer, assign_unassigned_mentees, reassign_mentees
from ...services.errors import log_activity
from ...services.importer import MenteeImporter, MentorImporter, read_table
from ...services.notify import notify_roles, notify_user
from ...services.stats import (admin_dashboard_stats, at_risk_mentees, at_risk_threshold,
                               recent_activities)
from ..auth.routes import json_body, role_required
from . import bp

logger = logging.getLogger(__name__)


def _page_args(default_sort, default_order="asc"):
    q     = (request.args.get("q") or "").strip()
    sort  = request.args.get("sort", default_sort)
    order = request.args.get("order", default_order)
    page  = max(request.args.get("page", type=int) or 1, 1)
    per   = min(max(request.args.get("per_page", type=int) or 10, 1), 100)
    return q, sort, order, page, per


def _paged(query, col, order, page, per, render):
    query = query.order_by(col.desc() if order == "desc" else col.asc())
    total = query.count()
    items = query.offset((page-1)*per).limit(per).all()
    pages = max(1, (total + per - 1)//per)
    return jsonify(items=[render(i) for i in items], total=total,
                   page=page, per_page=per, pages=pages)


def _text(data, key):
    return str(data.get(key) or "").strip() or None


def _moved(moves):
    return sum(1 for _, target in moves if target is not None)


# ---------- Dashboard ----------
@bp.get("/dashboard/stats")
@login_required
@role_required(Role.ADMIN)
def dashboard_stats():
    return jsonify(admin_dashboard_stats(at_risk_threshold()))


@bp.get("/at-risk-students")
@login_required
@role_required(Role.ADMIN)
def at_risk_students():
    threshold = at_risk_threshold()
    return jsonify([m.to_dict(threshold) for m in at_risk_mentees(threshold)])


@bp.get("/activities")
@login_required
@role_required(Role.ADMIN)
def activities():
    return jsonify(recent_activities(limit=10))


# ---------- Students ----------
@bp.get("/students")
@login_required
@role_required(Role.ADMIN)
def students():
    q, sort, order, page, per = _page_args("usn")    # usn|name|semester|section|created

    query = (Mentee.query.join(User, Mentee.user)
             .options(selectinload(Mentee.academic_records),
                      selectinload(Mentee.mentor).selectinload(Mentor.user)))
    if q:
        like = f"%{q}%"
        query = query.filter(or_(
            Mentee.usn.ilike(like),
            User.name.ilike(like),
            User.email.ilike(like),
            Mentee.section.ilike(like),
        ))
    semester = request.args.get("semester", type=int)
    if semester:
        query = query.filter(Mentee.semester == semester)
    mentor_id = request.args.get("mentor_id", type=int)
    if mentor_id:
        query = query.filter(Mentee.mentor_id == mentor_id)
    if request.args.get("unassigned") in ("1", "true"):
        query = query.filter(Mentee.mentor_id.is_(None))

    sort_map = {
        "usn":      Mentee.usn,
        "name":     User.name,
        "semester": Mentee.semester,
        "section":  Mentee.section,
        "created":  Mentee.created_at,
    }
    threshold = at_risk_threshold()
    return _paged(query, sort_map.get(sort, Mentee.usn), order, page, per,
                  lambda m: m.to_dict(threshold))


@bp.post("/students")
@login_required
@role_required(Role.ADMIN)
def create_student():
    data = json_body()
    usn = normalize_usn(data.get("usn"))
    if Mentee.query.filter_by(usn=usn).first():
        abort(409, "A student with this USN already exists")
    semester = parse_semester(data.get("semester"))
    mentor_id = data.get("mentor_id") or None
    if mentor_id is None:
        mentor_id = MentorLoadBalancer.from_db().pick(semester)

    m = create_mentee(name=_text(data, "name"), usn=usn, semester=semester,
                      section=_text(data, "section"), email=_text(data, "email"),
                      mentor_id=mentor_id, mobile_number=_text(data, "mobile_number"),
                      parent_mobile_number=_text(data, "parent_mobile_number"),
                      password=data.get("password") or None)
    db.session.flush()
    if m.mentor is not None:
        notify_user(m.mentor.user_id, f"New mentee {m.name} ({m.usn}) assigned to you",
                    role=Role.MENTOR)
    db.session.commit()
    logger.info("Student %s created by admin %s", m.usn, current_user.id)
    return jsonify(m.to_dict(at_risk_threshold())), 201


@bp.put("/students/<int:sid>")
@login_required
@role_required(Role.ADMIN)
def update_student(sid):
    m = db.session.get(Mentee, sid)
    if not m:
        abort(404, "Student not found")
    data = json_body()

    if "usn" in data:
        usn = normalize_usn(data["usn"])
        clash = Mentee.query.filter(Mentee.usn == usn, Mentee.id != m.id).first()
        if clash:
            abort(409, "A student with this USN already exists")
        m.usn = usn
    if "semester" in data:
        m.semester = parse_semester(data["semester"])
    for key in ("section", "mobile_number", "parent_mobile_number"):
        if key in data:
            setattr(m, key, _text(data, key))
    if "name" in data and _text(data, "name"):
        m.user.name = _text(data, "name")
    if "email" in data:
        m.user.email = _text(data, "email")
    if "mentor_id" in data:
        mentor_id = data["mentor_id"] or None
        if mentor_id is not None and not db.session.get(Mentor, mentor_id):
            abort(400, "Mentor not found")
        m.mentor_id = mentor_id
    if "is_active" in data:
        m.is_active = bool(data["is_active"])
    if not m.section:
        abort(400, "Section is required")

    notify_user(m.user_id, "Your profile was updated by an administrator", role=Role.MENTEE)
    db.session.commit()
    return jsonify(m.to_dict(at_risk_threshold()))


@bp.delete("/students/<int:sid>")
@login_required
@role_required(Role.ADMIN)
def delete_student(sid):
    m = db.session.get(Mentee, sid)
    if not m:
        abort(404, "Student not found")
    delete_mentee(m)
    db.session.commit()
    return jsonify(message="Student deleted")


@bp.post("/mentees/assign")
@login_required
@role_required(Role.ADMIN)
def assign_mentees():
    result = assign_unassigned_mentees(commit=False)
    if result["assigned_count"]:
        notify_roles(f"{result['assigned_count']} mentees automatically assigned to mentors",
                     [Role.ADMIN, Role.MENTOR])
    db.session.commit()
    return jsonify(result)


# ---------- Mentors ----------
@bp.post("/mentors")
@login_required
@role_required(Role.ADMIN)
def create_mentor_account():
    data = json_body()
    if not _text(data, "department"):
        abort(400, "Department is required")
    mentor, created = create_mentor(
        name=_text(data, "name"), email=_text(data, "email"),
        department=_text(data, "department"), specialization=_text(data, "specialization"),
        mobile_number=_text(data, "mobile_number"),
        password=data.get("password") or current_app.config["DEFAULT_MENTOR_PASSWORD"],
    )
    db.session.commit()
    logger.info("Mentor %s %s by admin %s", mentor.user.username,
                "created" if created else "attached", current_user.id)
    return jsonify(mentor.to_dict()), 201


@bp.put("/mentors/<int:mid>")
@login_required
@role_required(Role.ADMIN)
def update_mentor(mid):
    mentor = db.session.get(Mentor, mid)
    if not mentor:
        abort(404, "Mentor not found")
    data = json_body()

    for key in ("department", "specialization", "mobile_number"):
        if key in data:
            setattr(mentor, key, _text(data, key))
    if "name" in data and _text(data, "name"):
        mentor.user.name = _text(data, "name")
    if "email" in data:
        mentor.user.email = _text(data, "email")

    moves = []
    if "is_active" in data:
        active = bool(data["is_active"])
        if mentor.is_active and not active:
            mentor.is_active = False
            db.session.flush()
            moves = reassign_mentees(mentor.id)
        mentor.is_active = active
    db.session.commit()
    return jsonify(mentor=mentor.to_dict(), reassigned=_moved(moves))


@bp.delete("/mentors/<int:mid>")
@login_required
@role_required(Role.ADMIN)
def delete_mentor_account(mid):
    mentor = db.session.get(Mentor, mid)
    if not mentor:
        abort(404, "Mentor not found")
    moves = delete_mentor(mentor)
    db.session.commit()
    return jsonify(message="Mentor deleted", reassigned=_moved(moves))


# ---------- Subjects ----------
@bp.post("/subjects")
@login_required
@role_required(Role.ADMIN)
def create_subject():
    data = json_body()
    code = (data.get("code") or "").strip().upper()
    name = _text(data, "name")
    if not code or not name:
        abort(400, "Subject code and name are required")
    if Subject.query.filter_by(code=code).first():
        abort(409, "Subject code must be unique")
    s = Subject(code=code, name=name, semester=parse_semester(data.get("semester")))
    db.session.add(s)
    log_activity(current_user.id, "create_subject", f"Created subject {code}")
    db.session.commit()
    return jsonify(s.to_dict()), 201


@bp.put("/subjects/<int:sid>")
@login_required
@role_required(Role.ADMIN)
def update_subject(sid):
    s = db.session.get(Subject, sid)
    if not s:
        abort(404, "Subject not found")
    data = json_body()
    if "code" in data:
        code = (data.get("code") or "").strip().upper()
        if not code:
            abort(400, "Subject code cannot be empty")
        if Subject.query.filter(Subject.code == code, Subject.id != s.id).first():
            abort(409, "Subject code must be unique")
        s.code = code
    if "name" in data:
        s.name = _text(data, "name") or s.name
    if "semester" in data:
        s.semester = parse_semester(data["semester"])
    log_activity(current_user.id, "update_subject", f"Updated subject {s.code}")
    db.session.commit()
    return jsonify(s.to_dict())


@bp.delete("/subjects/<int:sid>")
@login_required
@role_required(Role.ADMIN)
def delete_subject(sid):
    s = db.session.get(Subject, sid)
    if not s:
        abort(404, "Subject not found")
    if AcademicRecord.query.filter_by(subject_id=s.id).first():
        abort(409, "Subject has academic records and cannot be deleted")
    log_activity(current_user.id, "delete_subject", f"Deleted subject {s.code}")
    db.session.delete(s)
    db.session.commit()
    return jsonify(message="Subject deleted")


# ---------- Uploads ----------
def _uploaded_rows():
    f = request.files.get("file")
    if not f or not f.filename:
        abort(400, "No file uploaded")
    return read_table(f)


@bp.post("/upload/mentees")
@bp.post("/upload-students")
@login_required
@role_required(Role.ADMIN)
def upload_mentees():
    importer = MenteeImporter(request.form.get("assignment_method", "balanced"),
                              acting_user_id=current_user.id)
    return jsonify(importer.run(_uploaded_rows()))


@bp.post("/upload/mentors")
@login_required
@role_required(Role.ADMIN)
def upload_mentors():
    return jsonify(MentorImporter(acting_user_id=current_user.id).run(_uploaded_rows()))


# ---------- Oversight ----------
@bp.get("/error-logs")
@login_required
@role_required(Role.ADMIN)
def error_logs():
    q, sort, order, page, per = _page_args("created", "desc")
    query = ErrorLog.query.options(selectinload(ErrorLog.user))
    if q:
        like = f"%{q}%"
        query = query.filter(or_(ErrorLog.action.ilike(like), ErrorLog.error_message.ilike(like)))
    sort_map = {"created": ErrorLog.created_at, "action": ErrorLog.action}
    return _paged(query, sort_map.get(sort, ErrorLog.created_at), order, page, per,
                  lambda e: e.to_dict())


@bp.get("/group-chats")
@login_required
@role_required(Role.ADMIN)
def group_chats():
    chats = []
    mentors = (Mentor.query.options(selectinload(Mentor.user), selectinload(Mentor.mentees))
               .order_by(Mentor.id).all())
    for mentor in mentors:
        msgs = Message.query.filter_by(is_group_message=True, mentor_id=mentor.id)
        last = msgs.order_by(Message.created_at.desc(), Message.id.desc()).first()
        chats.append({
            "mentor_id": mentor.id,
            "mentor_name": mentor.name,
            "member_count": len(mentor.active_mentees()) + 1,
            "message_count": msgs.count(),
            "last_message": last.to_dict() if last else None,
        })
    return jsonify(chats)


@bp.get("/meetings")
@login_required
@role_required(Role.ADMIN)
def meetings():
    items = (Meeting.query
             .options(selectinload(Meeting.participants), selectinload(Meeting.mentor))
             .order_by(Meeting.scheduled_at.desc()).all())
    return jsonify([m.to_dict() for m in items])
