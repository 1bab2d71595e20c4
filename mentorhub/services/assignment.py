"""Mentee-to-mentor distribution.

Placement is greedy: a mentee goes to an active mentor that has nobody from
the mentee's semester yet, least loaded first; when every mentor already
covers that semester, to the least loaded mentor overall. Ties go to the
lower mentor id.
"""
import logging
from collections import defaultdict

from ..extensions import db
from ..models import Mentee, Mentor, Role
from .notify import notify_roles

logger = logging.getLogger(__name__)


class MentorLoadBalancer:

    def __init__(self, mentors, mentees=()):
        self.mentor_ids = sorted(m.id for m in mentors)
        self.totals = {mid: 0 for mid in self.mentor_ids}
        self.by_semester = {mid: defaultdict(int) for mid in self.mentor_ids}
        for mentee in mentees:
            self.record(mentee.mentor_id, mentee.semester)

    @classmethod
    def from_db(cls, exclude_mentor_id=None):
        mentors = Mentor.query.filter_by(is_active=True).all()
        if exclude_mentor_id is not None:
            mentors = [m for m in mentors if m.id != exclude_mentor_id]
        ids = [m.id for m in mentors]
        current = []
        if ids:
            current = (Mentee.query
                       .filter(Mentee.is_active.is_(True), Mentee.mentor_id.in_(ids))
                       .all())
        return cls(mentors, current)

    def __bool__(self):
        return bool(self.mentor_ids)

    def record(self, mentor_id, semester):
        if mentor_id not in self.totals:
            return
        self.totals[mentor_id] += 1
        self.by_semester[mentor_id][semester] += 1

    def pick(self, semester):
        if not self.mentor_ids:
            return None
        pool = [mid for mid in self.mentor_ids if not self.by_semester[mid][semester]]
        if not pool:
            pool = self.mentor_ids
        choice = min(pool, key=lambda mid: (self.totals[mid], mid))
        self.record(choice, semester)
        return choice


class RoundRobin:

    def __init__(self, mentors):
        self.mentor_ids = sorted(m.id for m in mentors)
        self._i = 0

    def pick(self, semester=None):
        if not self.mentor_ids:
            return None
        mid = self.mentor_ids[self._i % len(self.mentor_ids)]
        self._i += 1
        return mid


def assign_unassigned_mentees(commit=True):
    balancer = MentorLoadBalancer.from_db()
    if not balancer:
        return {"assigned_count": 0, "mentor_count": 0}

    pending = (Mentee.query
               .filter(Mentee.is_active.is_(True), Mentee.mentor_id.is_(None))
               .order_by(Mentee.semester, Mentee.id).all())
    used = set()
    for mentee in pending:
        mentee.mentor_id = balancer.pick(mentee.semester)
        used.add(mentee.mentor_id)
    if commit:
        db.session.commit()
    if pending:
        logger.info("Assigned %d unassigned mentees across %d mentors", len(pending), len(used))
    return {"assigned_count": len(pending), "mentor_count": len(used)}


def reassign_mentees(from_mentor_id):
    """Move the active mentees of one mentor onto the remaining active mentors.

    Stages changes on the session without committing. Returns the list of
    (mentee_id, new_mentor_id) pairs; new_mentor_id is None when no other
    mentor is available.
    """
    mentees = (Mentee.query
               .filter(Mentee.mentor_id == from_mentor_id, Mentee.is_active.is_(True))
               .order_by(Mentee.semester, Mentee.id).all())
    if not mentees:
        return []

    balancer = MentorLoadBalancer.from_db(exclude_mentor_id=from_mentor_id)
    moves = []
    for mentee in mentees:
        mentee.mentor_id = balancer.pick(mentee.semester) if balancer else None
        moves.append((mentee.id, mentee.mentor_id))

    moved = sum(1 for _, target in moves if target is not None)
    if moved:
        notify_roles(f"{moved} mentee(s) were automatically reassigned to new mentors.",
                     [Role.ADMIN, Role.MENTOR], urgent=True)
    logger.info("Reassigned %d of %d mentees away from mentor %s",
                moved, len(mentees), from_mentor_id)
    return moves
