from flask import abort, jsonify, request
from flask_login import current_user, login_required
from sqlalchemy.orm import selectinload

from ...extensions import db
from ...models import AcademicRecord, Role, SelfAssessment
from ...services.notify import notify_user
from ...services.stats import at_risk_threshold
from ..auth.routes import json_body, role_required
from . import bp

TEXT_FIELDS = ("academic_goals", "career_aspirations", "strengths", "areas_to_improve",
               "academic_confidence", "challenges", "support_needed")


def get_current_mentee():
    m = current_user.mentee
    if m is None:
        abort(403, "No mentee profile for this account")
    return m


@bp.get("/profile")
@login_required
@role_required(Role.MENTEE)
def profile():
    me = get_current_mentee()
    data = me.to_dict(at_risk_threshold())
    data["mentor"] = me.mentor.to_dict(with_count=False) if me.mentor else None
    return jsonify(data)


@bp.get("/academic-records")
@login_required
@role_required(Role.MENTEE)
def academic_records():
    me = get_current_mentee()
    q = (AcademicRecord.query.options(selectinload(AcademicRecord.subject))
         .filter_by(mentee_id=me.id))
    year = (request.args.get("academic_year") or "").strip()
    if year:
        q = q.filter(AcademicRecord.academic_year == year)
    semester = request.args.get("semester", type=int)
    if semester:
        q = q.filter(AcademicRecord.semester == semester)
    recs = q.order_by(AcademicRecord.semester, AcademicRecord.subject_id).all()
    return jsonify([r.to_dict() for r in recs])


@bp.get("/self-assessments")
@login_required
@role_required(Role.MENTEE)
def list_self_assessments():
    me = get_current_mentee()
    items = (SelfAssessment.query.filter_by(mentee_id=me.id)
             .order_by(SelfAssessment.created_at.desc(), SelfAssessment.id.desc()).all())
    return jsonify([a.to_dict() for a in items])


@bp.post("/self-assessments")
@login_required
@role_required(Role.MENTEE)
def submit_self_assessment():
    me = get_current_mentee()
    data = json_body()

    values = {f: (str(data.get(f) or "")).strip() for f in TEXT_FIELDS}
    missing = [f for f, v in values.items() if not v]
    if missing:
        abort(400, f"Missing required fields: {', '.join(missing)}")
    try:
        hours = float(data.get("study_hours_per_day"))
        stress = int(data.get("stress_level"))
    except (TypeError, ValueError):
        abort(400, "study_hours_per_day and stress_level must be numbers")
    if not 0 <= hours <= 24:
        abort(400, "study_hours_per_day must be between 0 and 24")
    if not 1 <= stress <= 10:
        abort(400, "stress_level must be between 1 and 10")

    a = SelfAssessment(mentee_id=me.id, study_hours_per_day=hours, stress_level=stress, **values)
    db.session.add(a)
    if me.mentor is not None:
        notify_user(me.mentor.user_id, f"{me.name} ({me.usn}) submitted a self-assessment",
                    role=Role.MENTOR)
    db.session.commit()
    return jsonify(a.to_dict()), 201
