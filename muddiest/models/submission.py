from sqlalchemy import func, CheckConstraint, Index
from muddiest.extensions import db
from muddiest.models.course import new_id
from muddiest.utils.helpers import iso, utcnow

# Keep simple text+CHECK for the enumerated difficulty (no DB enum migration pain)
DIFFICULTY_SLIGHTLY = "slightly"
DIFFICULTY_VERY = "very"
DIFFICULTY_COMPLETELY = "completely"
DIFFICULTY_CHOICES = (DIFFICULTY_SLIGHTLY, DIFFICULTY_VERY, DIFFICULTY_COMPLETELY)

class Submission(db.Model):
    """Anonymous confusion report. No user column: the salted hash is the only correlation key."""
    __tablename__ = "submissions"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    course_id = db.Column(
        db.String(36),
        db.ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    session_id = db.Column(
        db.String(36),
        db.ForeignKey("class_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    topic = db.Column(db.String(200), nullable=False)
    confusion = db.Column(db.Text, nullable=False)
    difficulty_level = db.Column(db.String(16), nullable=False)
    ip_address_hash = db.Column(db.String(64), nullable=False)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, server_default=func.now())

    course = db.relationship("Course", back_populates="submissions")
    session = db.relationship("ClassSession")

    __table_args__ = (
        CheckConstraint(
            "difficulty_level IN ('slightly','very','completely')",
            name="ck_submissions_difficulty_valid",
        ),
        Index("ix_submissions_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Submission id={self.id} course_id={self.course_id} difficulty={self.difficulty_level!r}>"

    def to_dict(self, with_course: bool = False) -> dict:
        # ip_address_hash is deliberately never serialized
        data = {
            "id": self.id,
            "courseId": self.course_id,
            "sessionId": self.session_id,
            "topic": self.topic,
            "confusion": self.confusion,
            "difficultyLevel": self.difficulty_level,
            "createdAt": iso(self.created_at),
        }
        if with_course and self.course is not None:
            data["course"] = self.course.to_dict()
        return data
