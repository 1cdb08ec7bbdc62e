from sqlalchemy import func, true, Index, UniqueConstraint
from muddiest.extensions import db
from muddiest.models.course import new_id
from muddiest.utils.helpers import iso, utcnow

class ClassSession(db.Model):
    """One course's feedback window for one calendar day.

    "One active session per course" is enforced by the registry (check before
    create under a course row lock), not by a unique index.
    """
    __tablename__ = "class_sessions"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    course_id = db.Column(
        db.String(36),
        db.ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    session_date = db.Column(db.Date, nullable=False)
    access_token = db.Column(db.String(64), nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True, server_default=true())

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, server_default=func.now())

    course = db.relationship("Course", back_populates="sessions")
    rate_limits = db.relationship(
        "SubmissionRateLimit", back_populates="session", cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint("access_token", name="uq_class_sessions_access_token"),
        Index("ix_class_sessions_course_active", "course_id", "is_active", "expires_at"),
    )

    def __repr__(self) -> str:
        return f"<ClassSession id={self.id} course_id={self.course_id} date={self.session_date} active={self.is_active}>"

    def is_live(self, now) -> bool:
        return bool(self.is_active) and self.expires_at >= now

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "courseId": self.course_id,
            "sessionDate": iso(self.session_date),
            "accessToken": self.access_token,
            "expiresAt": iso(self.expires_at),
            "isActive": bool(self.is_active),
            "createdAt": iso(self.created_at),
        }
