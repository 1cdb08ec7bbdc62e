from sqlalchemy import func, CheckConstraint, UniqueConstraint
from muddiest.extensions import db
from muddiest.models.course import new_id
from muddiest.utils.helpers import iso, utcnow

# Workflow labels only; any status may follow any other.
STATUS_SUBMITTED = "submitted"
STATUS_IN_REVIEW = "in_review"
STATUS_ACCEPTED = "accepted"
STATUS_IN_PROGRESS = "in_progress"
STATUS_ON_HOLD = "on_hold"
STATUS_DONE = "done"
STATUS_CHOICES = (
    STATUS_SUBMITTED,
    STATUS_IN_REVIEW,
    STATUS_ACCEPTED,
    STATUS_IN_PROGRESS,
    STATUS_ON_HOLD,
    STATUS_DONE,
)

class UserStory(db.Model):
    __tablename__ = "user_stories"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False)
    submitted_by = db.Column(db.String(100), nullable=True)

    impact = db.Column(db.Integer, nullable=False)
    confidence = db.Column(db.Integer, nullable=False)
    ease = db.Column(db.Integer, nullable=False)

    status = db.Column(db.String(20), nullable=False, default=STATUS_SUBMITTED, server_default=STATUS_SUBMITTED)
    session_token = db.Column(db.String(64), nullable=True)

    # Set once when merged away; the story then stays inert but resolvable
    merged_into_id = db.Column(
        db.String(36),
        db.ForeignKey("user_stories.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, server_default=func.now())
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, server_default=func.now(), onupdate=utcnow)

    upvotes = db.relationship(
        "UserStoryUpvote", back_populates="story", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("impact BETWEEN 1 AND 10", name="ck_user_stories_impact_range"),
        CheckConstraint("confidence BETWEEN 1 AND 10", name="ck_user_stories_confidence_range"),
        CheckConstraint("ease BETWEEN 1 AND 10", name="ck_user_stories_ease_range"),
        CheckConstraint(
            "status IN ('submitted','in_review','accepted','in_progress','on_hold','done')",
            name="ck_user_stories_status_valid",
        ),
    )

    @property
    def ice_score(self) -> int:
        # Derived on read, never stored
        return self.impact + self.confidence + self.ease

    @property
    def is_merged(self) -> bool:
        return self.merged_into_id is not None

    def __repr__(self) -> str:
        return f"<UserStory id={self.id} title={self.title!r} status={self.status!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "submittedBy": self.submitted_by,
            "impact": self.impact,
            "confidence": self.confidence,
            "ease": self.ease,
            "iceScore": self.ice_score,
            "status": self.status,
            "mergedIntoId": self.merged_into_id,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }

class UserStoryUpvote(db.Model):
    __tablename__ = "user_story_upvotes"

    id = db.Column(db.Integer, primary_key=True)
    user_story_id = db.Column(
        db.String(36),
        db.ForeignKey("user_stories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    session_token = db.Column(db.String(64), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, server_default=func.now())

    story = db.relationship("UserStory", back_populates="upvotes")

    __table_args__ = (
        # Concurrent double-votes collapse on this constraint
        UniqueConstraint("user_story_id", "session_token", name="uq_user_story_upvotes_story_token"),
    )
