from flask import abort, jsonify, request
from flask_login import current_user, login_required
from sqlalchemy.orm import selectinload

from ...extensions import db
from ...models import Mentee, Mentor, Role
from ...services.stats import at_risk_threshold
from . import bp


@bp.get("")
@login_required
def list_mentors():
    query = Mentor.query.options(selectinload(Mentor.user), selectinload(Mentor.mentees))
    if request.args.get("active") in ("1", "true"):
        query = query.filter(Mentor.is_active.is_(True))
    return jsonify([m.to_dict() for m in query.order_by(Mentor.id).all()])


@bp.get("/<int:mid>")
@login_required
def get_mentor(mid):
    mentor = db.session.get(Mentor, mid)
    if not mentor:
        abort(404, "Mentor not found")
    return jsonify(mentor.to_dict())


@bp.get("/<int:mid>/mentees")
@login_required
def mentor_mentees(mid):
    mentor = db.session.get(Mentor, mid)
    if not mentor:
        abort(404, "Mentor not found")
    if current_user.role == Role.MENTEE:
        abort(403, "You do not have access to this resource")
    if current_user.role == Role.MENTOR and getattr(current_user.mentor, "id", None) != mid:
        abort(403, "You can only view your own mentees")
    threshold = at_risk_threshold()
    items = (Mentee.query.options(selectinload(Mentee.academic_records), selectinload(Mentee.user))
             .filter_by(mentor_id=mid).order_by(Mentee.usn).all())
    return jsonify([m.to_dict(threshold) for m in items])
