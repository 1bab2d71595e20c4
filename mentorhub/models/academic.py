from ..extensions import db
from .user import TimestampMixin


class Subject(TimestampMixin, db.Model):
    __tablename__ = "subjects"
    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(32), unique=True, nullable=False)
    name = db.Column(db.String(128), nullable=False)
    semester = db.Column(db.Integer, nullable=False)

    records = db.relationship("AcademicRecord", back_populates="subject")

    def to_dict(self):
        return {"id": self.id, "code": self.code, "name": self.name, "semester": self.semester}


class AcademicRecord(TimestampMixin, db.Model):
    __tablename__ = "academic_records"
    id = db.Column(db.Integer, primary_key=True)
    mentee_id = db.Column(db.Integer, db.ForeignKey("mentees.id"), nullable=False)
    subject_id = db.Column(db.Integer, db.ForeignKey("subjects.id"), nullable=False)
    cie1_marks = db.Column(db.Float)
    cie2_marks = db.Column(db.Float)
    cie3_marks = db.Column(db.Float)
    avg_cie_marks = db.Column(db.Float)
    assignment_marks = db.Column(db.Float)
    total_marks = db.Column(db.Float)
    attendance = db.Column(db.Float)                    # percent
    semester = db.Column(db.Integer, nullable=False)
    academic_year = db.Column(db.String(16), nullable=False)  # e.g. "2024-2025"
    __table_args__ = (
        db.UniqueConstraint("mentee_id", "subject_id", "semester", "academic_year",
                            name="uq_record_mentee_subject_term"),
        db.CheckConstraint("attendance IS NULL OR (attendance >= 0 AND attendance <= 100)",
                           name="ck_attendance_0_100"),
    )

    mentee = db.relationship("Mentee", back_populates="academic_records")
    subject = db.relationship("Subject", back_populates="records")

    def recompute(self):
        cies = [m for m in (self.cie1_marks, self.cie2_marks, self.cie3_marks) if m is not None]
        self.avg_cie_marks = sum(cies) / len(cies) if cies else None
        if self.avg_cie_marks is not None and self.assignment_marks is not None:
            self.total_marks = self.avg_cie_marks + self.assignment_marks
        else:
            self.total_marks = None

    def to_dict(self, with_mentee=False):
        data = {
            "id": self.id,
            "mentee_id": self.mentee_id,
            "subject_id": self.subject_id,
            "cie1_marks": self.cie1_marks,
            "cie2_marks": self.cie2_marks,
            "cie3_marks": self.cie3_marks,
            "avg_cie_marks": self.avg_cie_marks,
            "assignment_marks": self.assignment_marks,
            "total_marks": self.total_marks,
            "attendance": self.attendance,
            "semester": self.semester,
            "academic_year": self.academic_year,
            "subject": {"code": self.subject.code, "name": self.subject.name} if self.subject else None,
        }
        if with_mentee and self.mentee:
            data["mentee"] = {"name": self.mentee.name, "usn": self.mentee.usn}
        return data


class SelfAssessment(TimestampMixin, db.Model):
    __tablename__ = "self_assessments"
    id = db.Column(db.Integer, primary_key=True)
    mentee_id = db.Column(db.Integer, db.ForeignKey("mentees.id"), nullable=False)
    academic_goals = db.Column(db.Text, nullable=False)
    career_aspirations = db.Column(db.Text, nullable=False)
    strengths = db.Column(db.Text, nullable=False)
    areas_to_improve = db.Column(db.Text, nullable=False)
    study_hours_per_day = db.Column(db.Float, nullable=False)
    stress_level = db.Column(db.Integer, nullable=False)   # 1..10
    academic_confidence = db.Column(db.String(32), nullable=False)
    challenges = db.Column(db.Text, nullable=False)
    support_needed = db.Column(db.Text, nullable=False)

    mentee = db.relationship("Mentee", back_populates="self_assessments")

    FIELDS = ("academic_goals", "career_aspirations", "strengths", "areas_to_improve",
              "study_hours_per_day", "stress_level", "academic_confidence",
              "challenges", "support_needed")

    def to_dict(self):
        data = {f: getattr(self, f) for f in self.FIELDS}
        data.update(id=self.id, mentee_id=self.mentee_id,
                    created_at=self.created_at.isoformat() if self.created_at else None)
        return data
