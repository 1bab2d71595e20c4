from collections import Counter

from flask import current_app
from sqlalchemy.orm import selectinload

from ..models import Mentee, Mentor, Notification


def at_risk_threshold():
    return current_app.config.get("AT_RISK_THRESHOLD", 85)


def _active_mentees(mentor_id=None):
    q = (Mentee.query
         .options(selectinload(Mentee.academic_records), selectinload(Mentee.user),
                  selectinload(Mentee.mentor).selectinload(Mentor.user))
         .filter(Mentee.is_active.is_(True)))
    if mentor_id is not None:
        q = q.filter(Mentee.mentor_id == mentor_id)
    return q.order_by(Mentee.usn).all()


def at_risk_mentees(threshold, mentor_id=None):
    return [m for m in _active_mentees(mentor_id) if m.is_at_risk(threshold)]


def admin_dashboard_stats(threshold):
    students = _active_mentees()
    mentors = Mentor.query.filter_by(is_active=True).count()
    return {
        "total_students": len(students),
        "total_mentors": mentors,
        "avg_mentees_per_mentor": round(len(students) / mentors, 1) if mentors else 0,
        "at_risk_students": sum(1 for m in students if m.is_at_risk(threshold)),
    }


def mentor_dashboard_stats(mentor, threshold):
    mentees = _active_mentees(mentor.id)
    attendance = [m.attendance for m in mentees if m.attendance is not None]
    by_semester = Counter(m.semester for m in mentees)
    return {
        "mentor_id": mentor.id,
        "total_mentees": len(mentees),
        "at_risk_mentees": sum(1 for m in mentees if m.is_at_risk(threshold)),
        "average_attendance": round(sum(attendance) / len(attendance), 2) if attendance else None,
        "semester_distribution": {str(s): by_semester[s] for s in sorted(by_semester)},
    }


def recent_activities(limit=10):
    rows = (Notification.query
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit).all())
    return [{
        "id": n.id,
        "message": n.message,
        "type": "warning" if n.is_urgent else "info",
        "created_at": n.created_at.isoformat(),
    } for n in rows]
