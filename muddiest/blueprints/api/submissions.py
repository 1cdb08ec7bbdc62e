import logging

from flask import current_app, jsonify, request

from . import bp
from muddiest.extensions import db, limiter
from muddiest.observability import log_event
from muddiest.services import submissions as svc_submissions
from muddiest.services.admission import request_ip_hash
from muddiest.services.errors import AdmissionDenied
from muddiest.utils.helpers import safe_int


@bp.get("/submissions")
def submissions_index():
    course_id = (request.args.get("courseId") or "").strip() or None
    limit = safe_int(request.args.get("limit"), 50)
    rows = svc_submissions.list_submissions(db.session, course_id=course_id, limit=limit)
    return jsonify([s.to_dict(with_course=True) for s in rows]), 200


@bp.post("/submissions")
@limiter.limit("30 per minute")
def submissions_create():
    """
    Anonymous submission. Identity is the hashed peer address, derived here,
    never taken from the body.
    """
    data = request.get_json(silent=True)
    ip_hash = request_ip_hash()
    try:
        sub = svc_submissions.create_submission(db.session, data, ip_hash)
    except AdmissionDenied as denied:
        log_event(
            current_app,
            "submission_denied",
            level=logging.WARNING,
            session_id=data.get("sessionId"),
            client=ip_hash[:12],
            reason=denied.reason,
        )
        raise
    db.session.commit()
    log_event(
        current_app,
        "submission_created",
        submission_id=sub.id,
        course_id=sub.course_id,
        session_id=sub.session_id,
        client=ip_hash[:12],
    )
    return jsonify(sub.to_dict()), 201


@bp.get("/submissions/<submission_id>")
def submissions_show(submission_id: str):
    """Only the original submitter (same hashed address) can read a single submission back."""
    sub = svc_submissions.get_owned_submission(db.session, submission_id, request_ip_hash())
    return jsonify(sub.to_dict(with_course=True)), 200


@bp.put("/submissions/<submission_id>")
@limiter.limit("30 per minute")
def submissions_update(submission_id: str):
    patch = request.get_json(silent=True)
    sub = svc_submissions.update_submission(db.session, submission_id, patch, request_ip_hash())
    db.session.commit()
    log_event(current_app, "submission_updated", submission_id=sub.id)
    return jsonify(sub.to_dict()), 200
