from __future__ import annotations

from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from muddiest.models.course import Course
from muddiest.models.submission import Submission, DIFFICULTY_CHOICES
from muddiest.utils import helpers

TOP_PATTERNS = 10


def submission_stats(session: Session, *, now: Optional[datetime] = None) -> dict:
    """Totals for the professor dashboard; "recent" means the last 7 days."""
    now = now or helpers.utcnow()
    since = now - timedelta(days=7)

    total = session.query(func.count(Submission.id)).scalar() or 0
    active_courses = session.query(func.count(func.distinct(Submission.course_id))).scalar() or 0
    recent = (
        session.query(func.count(Submission.id))
        .filter(Submission.created_at >= since)
        .scalar()
        or 0
    )
    return {
        "totalSubmissions": int(total),
        "activeCourses": int(active_courses),
        "recentSubmissions": int(recent),
    }


def confusion_patterns(
    session: Session, *, days: int = 7, now: Optional[datetime] = None
) -> List[dict]:
    """
    Top (topic, course) groups over the window, with a per-difficulty breakdown.
    Sorted by total count desc, capped at TOP_PATTERNS.
    """
    now = now or helpers.utcnow()
    since = now - timedelta(days=max(1, int(days)))

    rows = (
        session.query(
            Submission.topic,
            Course.id,
            Course.name,
            Course.code,
            Submission.difficulty_level,
            func.count(Submission.id),
        )
        .join(Course, Course.id == Submission.course_id)
        .filter(Submission.created_at >= since)
        .group_by(Submission.topic, Course.id, Course.name, Course.code, Submission.difficulty_level)
        .all()
    )

    patterns: dict = {}
    for topic, course_id, course_name, course_code, level, n in rows:
        key = (topic.lower(), course_id)
        p = patterns.get(key)
        if p is None:
            p = patterns[key] = {
                "topic": topic,
                "course": f"{course_name} ({course_code})",
                "courseId": course_id,
                "count": 0,
                "difficultyDistribution": {lvl: 0 for lvl in DIFFICULTY_CHOICES},
            }
        p["count"] += int(n)
        p["difficultyDistribution"][level] = p["difficultyDistribution"].get(level, 0) + int(n)

    ranked = sorted(patterns.values(), key=lambda p: (-p["count"], p["topic"].lower()))
    return ranked[:TOP_PATTERNS]
