"""Class session registry: one token-addressable feedback window per course per day."""
from __future__ import annotations

import secrets
from datetime import datetime
from typing import List, Optional, Tuple

from flask import current_app
from sqlalchemy.orm import Session

from muddiest.models.class_session import ClassSession
from muddiest.models.course import Course
from muddiest.services.errors import NotFound
from muddiest.utils import helpers

_TOKEN_ATTEMPTS = 5


def generate_access_token(nbytes: Optional[int] = None) -> str:
    """URL/QR-friendly random token (9 bytes -> 12 chars by default)."""
    return secrets.token_urlsafe(nbytes or current_app.config.get("SESSION_TOKEN_BYTES", 9))


def _unique_token(session: Session) -> str:
    for _ in range(_TOKEN_ATTEMPTS):
        token = generate_access_token()
        taken = session.query(ClassSession.id).filter(ClassSession.access_token == token).first()
        if not taken:
            return token
    # Practically unreachable at a few tokens/course/day; treat as a hard failure
    raise RuntimeError("Could not generate a unique class session token")


def get_active_session(
    session: Session, course_id: str, as_of: Optional[datetime] = None
) -> Optional[ClassSession]:
    as_of = as_of or helpers.utcnow()
    return (
        session.query(ClassSession)
        .filter(ClassSession.course_id == course_id)
        .filter(ClassSession.is_active.is_(True))
        .filter(ClassSession.expires_at >= as_of)
        .order_by(ClassSession.session_date.desc(), ClassSession.created_at.desc())
        .first()
    )


def create_session(
    session: Session, course_id: str, *, now: Optional[datetime] = None
) -> Tuple[ClassSession, bool]:
    """
    Return today's live session for the course, creating it if needed.
    Returns (session, created).
    """
    now = now or helpers.utcnow()
    # Row lock on the course serializes concurrent creates for the same course (no-op on SQLite)
    course = session.query(Course).filter(Course.id == course_id).with_for_update().one_or_none()
    if not course:
        raise NotFound(f"Course {course_id} not found")

    existing = get_active_session(session, course_id, as_of=now)
    if existing:
        return existing, False

    tz_name = current_app.config.get("SESSION_TIMEZONE", "UTC")
    day = helpers.local_today(tz_name, now)
    cs = ClassSession(
        course_id=course.id,
        session_date=day,
        access_token=_unique_token(session),
        expires_at=helpers.end_of_day(day, tz_name),
        is_active=True,
        created_at=now,
    )
    session.add(cs)
    session.flush()
    return cs, True


def list_sessions(session: Session, course_id: str) -> List[ClassSession]:
    if not session.get(Course, course_id):
        raise NotFound(f"Course {course_id} not found")
    return (
        session.query(ClassSession)
        .filter(ClassSession.course_id == course_id)
        .order_by(ClassSession.session_date.desc(), ClassSession.created_at.desc())
        .all()
    )


def sweep_expired(session: Session, *, now: Optional[datetime] = None) -> int:
    """Flip is_active off for every session past expiry. Idempotent; returns rows changed."""
    now = now or helpers.utcnow()
    changed = (
        session.query(ClassSession)
        .filter(ClassSession.is_active.is_(True))
        .filter(ClassSession.expires_at < now)
        .update({ClassSession.is_active: False}, synchronize_session="fetch")
    )
    return changed or 0


def resolve_token(
    session: Session, token: str, *, now: Optional[datetime] = None
) -> Tuple[ClassSession, Course]:
    """Gate for shared links: live session + its course, else NotFound.

    Callers run sweep_expired() (and commit) first so the sweep survives a miss.
    """
    now = now or helpers.utcnow()
    if not token:
        raise NotFound("Missing class session token")
    cs = (
        session.query(ClassSession)
        .filter(ClassSession.access_token == token)
        .one_or_none()
    )
    if not cs or not cs.is_live(now):
        raise NotFound("Class session not found or expired")
    return cs, cs.course
