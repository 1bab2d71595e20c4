from flask import abort, jsonify, request
from flask_login import login_required

from ...extensions import db
from ...models import Subject
from . import bp


@bp.get("")
@login_required
def list_subjects():
    q = Subject.query
    semester = request.args.get("semester", type=int)
    if semester:
        q = q.filter_by(semester=semester)
    return jsonify([s.to_dict() for s in q.order_by(Subject.semester, Subject.code).all()])


@bp.get("/<int:sid>")
@login_required
def get_subject(sid):
    s = db.session.get(Subject, sid)
    if not s:
        abort(404, "Subject not found")
    return jsonify(s.to_dict())
