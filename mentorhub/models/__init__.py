from ..extensions import db
from .user import User, Role
from .people import Mentor, Mentee
from .academic import Subject, AcademicRecord, SelfAssessment
from .messaging import Notification, Message, ErrorLog
from .meeting import Meeting, MeetingParticipant, MeetingType, MeetingStatus

__all__ = [
    "User", "Role", "Mentor", "Mentee", "Subject", "AcademicRecord", "SelfAssessment",
    "Notification", "Message", "ErrorLog",
    "Meeting", "MeetingParticipant", "MeetingType", "MeetingStatus",
]
