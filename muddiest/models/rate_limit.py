from sqlalchemy import UniqueConstraint
from muddiest.extensions import db

class SubmissionRateLimit(db.Model):
    __tablename__ = "submission_rate_limits"

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(
        db.String(36),
        db.ForeignKey("class_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    ip_address_hash = db.Column(db.String(64), nullable=False)

    submission_count = db.Column(db.Integer, nullable=False, default=0, server_default=db.text("0"))
    last_submission_at = db.Column(db.DateTime, nullable=False)

    session = db.relationship("ClassSession", back_populates="rate_limits")

    __table_args__ = (
        # Upsert target for record_admission()
        UniqueConstraint("session_id", "ip_address_hash", name="uq_submission_rate_limits_session_ip"),
    )

    def __repr__(self) -> str:
        return (
            f"<SubmissionRateLimit session_id={self.session_id} "
            f"count={self.submission_count} last={self.last_submission_at}>"
        )
