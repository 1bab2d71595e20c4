from ..extensions import db
from .user import TimestampMixin


class MeetingType:
    ONE_TO_ONE = "one_to_one"
    MANY_TO_ONE = "many_to_one"


class MeetingStatus:
    SCHEDULED = "scheduled"
    COMPLETED = "completed"


class Meeting(TimestampMixin, db.Model):
    __tablename__ = "meetings"
    id = db.Column(db.Integer, primary_key=True)
    mentor_id = db.Column(db.Integer, db.ForeignKey("mentors.id"), nullable=False)
    type = db.Column(db.String(16), nullable=False, default=MeetingType.ONE_TO_ONE)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    location = db.Column(db.String(255))
    scheduled_at = db.Column(db.DateTime, nullable=False)
    duration_minutes = db.Column(db.Integer, nullable=False, default=60)
    status = db.Column(db.String(16), nullable=False, default=MeetingStatus.SCHEDULED)

    mentor = db.relationship("Mentor")
    participants = db.relationship("MeetingParticipant", back_populates="meeting",
                                   cascade="all, delete-orphan")

    def to_dict(self):
        return {
            "id": self.id,
            "mentor_id": self.mentor_id,
            "mentor_name": self.mentor.name if self.mentor else None,
            "type": self.type,
            "title": self.title,
            "description": self.description,
            "location": self.location,
            "scheduled_at": self.scheduled_at.isoformat(),
            "duration_minutes": self.duration_minutes,
            "status": self.status,
            "participants": [p.to_dict() for p in self.participants],
        }


class MeetingParticipant(TimestampMixin, db.Model):
    __tablename__ = "meeting_participants"
    id = db.Column(db.Integer, primary_key=True)
    meeting_id = db.Column(db.Integer, db.ForeignKey("meetings.id"), nullable=False)
    mentee_id = db.Column(db.Integer, db.ForeignKey("mentees.id"), nullable=False)
    attended = db.Column(db.Boolean, nullable=False, default=False)
    remarks = db.Column(db.Text)
    stars = db.Column(db.Integer)                        # 1..5
    __table_args__ = (
        db.UniqueConstraint("meeting_id", "mentee_id", name="uq_meeting_mentee"),
        db.CheckConstraint("stars IS NULL OR (stars >= 1 AND stars <= 5)", name="ck_stars_1_5"),
    )

    meeting = db.relationship("Meeting", back_populates="participants")
    mentee = db.relationship("Mentee", back_populates="participations")

    def to_dict(self):
        return {
            "mentee_id": self.mentee_id,
            "mentee_name": self.mentee.name if self.mentee else None,
            "usn": self.mentee.usn if self.mentee else None,
            "attended": self.attended,
            "remarks": self.remarks,
            "stars": self.stars,
        }
