from urllib.parse import urlencode

from flask import current_app, jsonify, redirect

from . import bp
from muddiest.extensions import db
from muddiest.services import sessions as svc_sessions
from muddiest.services.errors import NotFound


@bp.get("/class/<token>")
def open_class_link(token: str):
    """
    Shared link / QR target. Sweeps expired sessions, then sends the student
    into the submission UI for the live session, or 404s.
    """
    svc_sessions.sweep_expired(db.session)
    db.session.commit()
    try:
        cs, course = svc_sessions.resolve_token(db.session, token)
    except NotFound:
        return jsonify({"error": "Class session not found or expired"}), 404

    target = current_app.config.get("SUBMISSION_UI_PATH", "/class-session")
    query = urlencode({"courseId": course.id, "sessionId": cs.id, "token": cs.access_token})
    return redirect(f"{target}?{query}", code=302)
