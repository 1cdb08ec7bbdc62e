from flask import current_app, g, jsonify, request

from . import bp
from muddiest.extensions import db
from muddiest.observability import log_event
from muddiest.services import courses as svc_courses
from muddiest.services import sessions as svc_sessions
from muddiest.services.errors import NotFound
from muddiest.services.policy import require_owner


@bp.get("/courses")
def courses_index():
    """All courses by name; `?code=` filters case-insensitively."""
    code = (request.args.get("code") or "").strip() or None
    rows = svc_courses.list_courses(db.session, code=code)
    return jsonify([c.to_dict() for c in rows]), 200


@bp.get("/courses/<course_id>")
def courses_show(course_id: str):
    course = svc_courses.get_course(db.session, course_id)
    return jsonify(course.to_dict()), 200


@bp.post("/courses")
@require_owner
def courses_create():
    data = request.get_json(silent=True)
    course = svc_courses.create_course(db.session, data)
    db.session.commit()
    log_event(current_app, "course_created", course_id=course.id, owner=g.owner)
    return jsonify(course.to_dict()), 201


@bp.put("/courses/<course_id>")
@require_owner
def courses_update(course_id: str):
    data = request.get_json(silent=True)
    course = svc_courses.update_course(db.session, course_id, data)
    db.session.commit()
    return jsonify(course.to_dict()), 200


@bp.delete("/courses/<course_id>")
@require_owner
def courses_delete(course_id: str):
    svc_courses.delete_course(db.session, course_id)
    db.session.commit()
    log_event(current_app, "course_deleted", course_id=course_id, owner=g.owner)
    return jsonify(ok=True), 200


# ----- Class sessions (daily links) -----
# Session rows carry the access token, so everything but token resolution is owner-only.

@bp.post("/courses/<course_id>/sessions")
@require_owner
def sessions_create(course_id: str):
    """Create today's session, or return the live one unchanged (200 vs 201)."""
    cs, created = svc_sessions.create_session(db.session, course_id)
    db.session.commit()
    if created:
        log_event(current_app, "class_session_created", course_id=course_id, session_id=cs.id, owner=g.owner)
    return jsonify(cs.to_dict()), (201 if created else 200)


@bp.get("/courses/<course_id>/sessions")
@require_owner
def sessions_index(course_id: str):
    rows = svc_sessions.list_sessions(db.session, course_id)
    return jsonify([cs.to_dict() for cs in rows]), 200


@bp.get("/courses/<course_id>/sessions/active")
@require_owner
def sessions_active(course_id: str):
    svc_courses.get_course(db.session, course_id)
    cs = svc_sessions.get_active_session(db.session, course_id)
    if not cs:
        raise NotFound("No active class session")
    return jsonify(cs.to_dict()), 200


@bp.get("/class-sessions/<token>")
def sessions_resolve(token: str):
    """JSON twin of /class/<token> for the submission UI."""
    svc_sessions.sweep_expired(db.session)
    db.session.commit()
    cs, course = svc_sessions.resolve_token(db.session, token)
    return jsonify(session=cs.to_dict(), course=course.to_dict()), 200
