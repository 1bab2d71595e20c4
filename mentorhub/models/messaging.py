from ..extensions import db
from .user import TimestampMixin, utcnow


class Notification(db.Model):
    __tablename__ = "notifications"
    id = db.Column(db.Integer, primary_key=True)
    message = db.Column(db.Text, nullable=False)
    is_read = db.Column(db.Boolean, nullable=False, default=False)
    is_urgent = db.Column(db.Boolean, nullable=False, default=False)
    target_roles = db.Column(db.JSON, nullable=False, default=list)
    target_user_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def visible_to(self, user):
        if self.target_user_id is not None:
            return self.target_user_id == user.id
        roles = self.target_roles or []
        return user.role in roles or "all" in roles

    def to_dict(self):
        return {
            "id": self.id,
            "message": self.message,
            "is_read": self.is_read,
            "is_urgent": self.is_urgent,
            "target_roles": list(self.target_roles or []),
            "target_user_id": self.target_user_id,
            "created_at": self.created_at.isoformat(),
        }


class Message(TimestampMixin, db.Model):
    __tablename__ = "messages"
    id = db.Column(db.Integer, primary_key=True)
    sender_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    receiver_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    mentor_id = db.Column(db.Integer, db.ForeignKey("mentors.id"))   # group chat owner
    content = db.Column(db.Text, nullable=False)
    is_read = db.Column(db.Boolean, nullable=False, default=False)
    is_group_message = db.Column(db.Boolean, nullable=False, default=False)
    is_admin_mentor_message = db.Column(db.Boolean, nullable=False, default=False)

    sender = db.relationship("User", foreign_keys=[sender_id])
    receiver = db.relationship("User", foreign_keys=[receiver_id])

    def to_dict(self):
        return {
            "id": self.id,
            "sender_id": self.sender_id,
            "receiver_id": self.receiver_id,
            "mentor_id": self.mentor_id,
            "content": self.content,
            "is_read": self.is_read,
            "is_group_message": self.is_group_message,
            "is_admin_mentor_message": self.is_admin_mentor_message,
            "created_at": self.created_at.isoformat(),
            "sender": {
                "id": self.sender.id,
                "name": self.sender.display_name,
                "role": self.sender.role,
            } if self.sender else None,
        }


class ErrorLog(db.Model):
    __tablename__ = "error_logs"
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    action = db.Column(db.String(128), nullable=False)
    error_message = db.Column(db.Text, nullable=False)
    stack_trace = db.Column(db.Text)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    user = db.relationship("User")

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "username": self.user.username if self.user else None,
            "action": self.action,
            "error_message": self.error_message,
            "stack_trace": self.stack_trace,
            "created_at": self.created_at.isoformat(),
        }
