from ..extensions import db
from .user import TimestampMixin


class Mentor(TimestampMixin, db.Model):
    __tablename__ = "mentors"
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), unique=True, nullable=False)
    department = db.Column(db.String(128))
    specialization = db.Column(db.String(128))
    mobile_number = db.Column(db.String(32))
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    user = db.relationship("User", back_populates="mentor")
    mentees = db.relationship("Mentee", back_populates="mentor")

    @property
    def name(self):
        return self.user.name if self.user else None

    def active_mentees(self):
        return [m for m in self.mentees if m.is_active]

    def to_dict(self, with_count=True):
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "email": self.user.email if self.user else None,
            "username": self.user.username if self.user else None,
            "department": self.department,
            "specialization": self.specialization,
            "mobile_number": self.mobile_number,
            "is_active": self.is_active,
        }
        if with_count:
            data["mentee_count"] = len(self.active_mentees())
        return data


class Mentee(TimestampMixin, db.Model):
    __tablename__ = "mentees"
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), unique=True, nullable=False)
    usn = db.Column(db.String(32), unique=True, nullable=False)
    mentor_id = db.Column(db.Integer, db.ForeignKey("mentors.id"))
    semester = db.Column(db.Integer, nullable=False)     # 1..8
    section = db.Column(db.String(16), nullable=False)
    mobile_number = db.Column(db.String(32))
    parent_mobile_number = db.Column(db.String(32))
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    user = db.relationship("User", back_populates="mentee")
    mentor = db.relationship("Mentor", back_populates="mentees")
    academic_records = db.relationship(
        "AcademicRecord", back_populates="mentee", cascade="all, delete-orphan"
    )
    self_assessments = db.relationship(
        "SelfAssessment", back_populates="mentee", cascade="all, delete-orphan"
    )
    participations = db.relationship(
        "MeetingParticipant", back_populates="mentee", cascade="all, delete-orphan"
    )

    @property
    def name(self):
        return self.user.name if self.user else None

    @property
    def attendance(self):
        values = [r.attendance for r in self.academic_records if r.attendance is not None]
        if not values:
            return None
        return sum(values) / len(values)

    def is_at_risk(self, threshold=85):
        att = self.attendance
        return att is not None and att < threshold

    def to_dict(self, threshold=85):
        att = self.attendance
        return {
            "id": self.id,
            "user_id": self.user_id,
            "usn": self.usn,
            "name": self.name,
            "email": self.user.email if self.user else None,
            "username": self.user.username if self.user else None,
            "semester": self.semester,
            "section": self.section,
            "mobile_number": self.mobile_number,
            "parent_mobile_number": self.parent_mobile_number,
            "mentor_id": self.mentor_id,
            "mentor_name": self.mentor.name if self.mentor else None,
            "is_active": self.is_active,
            "attendance": round(att, 2) if att is not None else None,
            "at_risk": att is not None and att < threshold,
        }
