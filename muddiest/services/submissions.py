from __future__ import annotations

import hmac
from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy.orm import Session, joinedload

from muddiest.models.class_session import ClassSession
from muddiest.models.submission import Submission, DIFFICULTY_CHOICES
from muddiest.services.admission import ensure_admitted, record_admission
from muddiest.services.errors import NotFound, ValidationError
from muddiest.utils import helpers
from muddiest.utils.validators import clean_str, clean_text

TOPIC_MAX = 200
CONFUSION_MAX = 5000


def validate_fields(data: Any, *, partial: bool = False) -> dict:
    """
    Clean topic/confusion/difficultyLevel from a request body.
    Returns model-keyed values; raises ValidationError with per-field messages.
    """
    if not isinstance(data, dict):
        raise ValidationError({"__all__": "Body must be a JSON object."})

    errors = {}
    out = {}

    if not partial or "topic" in data:
        topic = clean_str(data.get("topic"), max_len=TOPIC_MAX)
        if not topic:
            errors["topic"] = "Topic is required."
        else:
            out["topic"] = topic

    if not partial or "confusion" in data:
        confusion = clean_text(data.get("confusion"), max_len=CONFUSION_MAX)
        if not confusion:
            errors["confusion"] = "Describe what was confusing."
        else:
            out["confusion"] = confusion

    if not partial or "difficultyLevel" in data:
        level = data.get("difficultyLevel")
        if level not in DIFFICULTY_CHOICES:
            errors["difficultyLevel"] = f"Must be one of: {', '.join(DIFFICULTY_CHOICES)}."
        else:
            out["difficulty_level"] = level

    if errors:
        raise ValidationError(errors)
    if partial and not out:
        raise ValidationError({"__all__": "Nothing to update (topic, confusion, difficultyLevel)."})
    return out


def create_submission(
    session: Session, data: Any, ip_hash: str, *, now: Optional[datetime] = None
) -> Submission:
    """
    Validate, resolve the class session, check admission, then persist and count.
    Every check runs before the first write.
    """
    now = now or helpers.utcnow()
    fields = validate_fields(data)

    course_id = clean_str(data.get("courseId"), max_len=36)
    session_id = clean_str(data.get("sessionId"), max_len=36)
    errors = {}
    if not course_id:
        errors["courseId"] = "Course is required."
    if not session_id:
        errors["sessionId"] = "Class session is required."
    if errors:
        raise ValidationError(errors)

    cs = session.get(ClassSession, session_id)
    if not cs or cs.course_id != course_id or not cs.is_live(now):
        raise NotFound("Class session not found or expired")

    ensure_admitted(session, cs.id, ip_hash, now=now)

    sub = Submission(
        course_id=cs.course_id,
        session_id=cs.id,
        ip_address_hash=ip_hash,
        created_at=now,
        **fields,
    )
    session.add(sub)
    session.flush()
    record_admission(session, cs.id, ip_hash, now=now)
    return sub


def _owned(session: Session, submission_id: str, caller_hash: str) -> Submission:
    sub = session.get(Submission, submission_id)
    # Same answer for "missing" and "not yours" so ids cannot be probed
    if not sub or not hmac.compare_digest(sub.ip_address_hash, caller_hash or ""):
        raise NotFound("Submission not found")
    return sub


def get_owned_submission(session: Session, submission_id: str, caller_hash: str) -> Submission:
    return _owned(session, submission_id, caller_hash)


def update_submission(
    session: Session,
    submission_id: str,
    patch: Any,
    caller_hash: str,
    *,
    now: Optional[datetime] = None,
) -> Submission:
    """
    Editable-window guard: only the original submitter (same hashed address),
    only while the submission's class session is still live, only the text fields.
    """
    now = now or helpers.utcnow()
    sub = _owned(session, submission_id, caller_hash)
    if not sub.session or not sub.session.is_live(now):
        raise NotFound("Submission not found")

    fields = validate_fields(patch, partial=True)
    for attr, value in fields.items():
        setattr(sub, attr, value)
    session.flush()
    return sub


def list_submissions(
    session: Session, *, course_id: Optional[str] = None, limit: int = 50
) -> List[Submission]:
    limit = max(1, min(int(limit or 50), 500))
    q = session.query(Submission).options(joinedload(Submission.course))
    if course_id:
        q = q.filter(Submission.course_id == course_id)
    return q.order_by(Submission.created_at.desc()).limit(limit).all()
