from __future__ import annotations

from typing import Any, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from muddiest.models.course import Course
from muddiest.services.errors import NotFound, ValidationError
from muddiest.utils.validators import clean_str, is_valid_course_code


def list_courses(session: Session, *, code: Optional[str] = None) -> List[Course]:
    q = session.query(Course)
    if code:
        q = q.filter(func.lower(Course.code) == code.strip().lower())
    return q.order_by(Course.name.asc()).all()


def get_course(session: Session, course_id: str) -> Course:
    course = session.get(Course, course_id)
    if not course:
        raise NotFound(f"Course {course_id} not found")
    return course


def _clean(data: Any, *, partial: bool) -> dict:
    if not isinstance(data, dict):
        raise ValidationError({"__all__": "Body must be a JSON object."})
    errors, out = {}, {}
    if not partial or "name" in data:
        name = clean_str(data.get("name"), max_len=200)
        if not name:
            errors["name"] = "Course name is required."
        else:
            out["name"] = name
    if not partial or "code" in data:
        code = clean_str(data.get("code"), max_len=32)
        if not is_valid_course_code(code):
            errors["code"] = "Course code is required (letters, digits, spaces, . - _ /)."
        else:
            out["code"] = code
    if errors:
        raise ValidationError(errors)
    return out


def _flush_unique(session: Session) -> None:
    try:
        session.flush()  # enforce unique code early
    except IntegrityError as e:
        session.rollback()
        raise ValidationError({"code": "A course with this code already exists."}) from e


def create_course(session: Session, data: Any) -> Course:
    fields = _clean(data, partial=False)
    course = Course(**fields)
    session.add(course)
    _flush_unique(session)
    return course


def update_course(session: Session, course_id: str, data: Any) -> Course:
    course = get_course(session, course_id)
    fields = _clean(data, partial=True)
    for attr, value in fields.items():
        setattr(course, attr, value)
    _flush_unique(session)
    return course


def delete_course(session: Session, course_id: str) -> None:
    course = get_course(session, course_id)
    session.delete(course)
    session.flush()
