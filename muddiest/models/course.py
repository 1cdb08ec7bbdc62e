import uuid

from sqlalchemy import func, UniqueConstraint
from muddiest.extensions import db
from muddiest.utils.helpers import iso, utcnow

def new_id() -> str:
    return str(uuid.uuid4())

class Course(db.Model):
    __tablename__ = "courses"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    name = db.Column(db.String(200), nullable=False)
    code = db.Column(db.String(32), nullable=False)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, server_default=func.now())

    # Deleting a course removes its sessions (and through them, submissions + rate rows)
    sessions = db.relationship(
        "ClassSession", back_populates="course", cascade="all, delete-orphan"
    )
    submissions = db.relationship(
        "Submission", back_populates="course", cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint("code", name="uq_courses_code"),
    )

    def __repr__(self) -> str:
        return f"<Course id={self.id} code={self.code!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "createdAt": iso(self.created_at),
        }
