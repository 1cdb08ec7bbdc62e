import uuid

from flask import current_app, g, jsonify, request

from . import bp
from muddiest.extensions import db, limiter
from muddiest.observability import log_event
from muddiest.services import user_stories as svc_stories
from muddiest.services.policy import require_owner
from muddiest.utils.validators import clean_str

SESSION_HEADER = "X-Session-Token"


def _session_token():
    """Anonymous voter token from the header (opaque, client-kept)."""
    return clean_str(request.headers.get(SESSION_HEADER), max_len=64)


@bp.get("/user-stories")
def stories_index():
    """Primary board listing. Issues a voter token when the caller has none yet."""
    token = _session_token()
    views = svc_stories.list_stories(db.session, token)
    payload = {"stories": [v.to_dict() for v in views]}
    if not token:
        payload["sessionToken"] = str(uuid.uuid4())
    return jsonify(payload), 200


@bp.get("/user-stories/<story_id>")
def stories_show(story_id: str):
    view = svc_stories.get_story(db.session, story_id, _session_token())
    return jsonify(view.to_dict()), 200


@bp.post("/user-stories")
@limiter.limit("20 per minute")
def stories_create():
    token = _session_token() or str(uuid.uuid4())
    story = svc_stories.create_story(db.session, request.get_json(silent=True), token)
    db.session.commit()
    data = story.to_dict()
    data["sessionToken"] = token
    return jsonify(data), 201


@bp.put("/user-stories/<story_id>")
@require_owner
def stories_update(story_id: str):
    story = svc_stories.update_story(db.session, story_id, request.get_json(silent=True))
    db.session.commit()
    return jsonify(story.to_dict()), 200


@bp.delete("/user-stories/<story_id>")
@require_owner
def stories_delete(story_id: str):
    svc_stories.delete_story(db.session, story_id)
    db.session.commit()
    log_event(current_app, "story_deleted", story_id=story_id, owner=g.owner)
    return jsonify(ok=True), 200


@bp.post("/user-stories/<story_id>/upvote")
@limiter.limit("60 per minute")
def stories_upvote(story_id: str):
    added = svc_stories.upvote(db.session, story_id, _session_token())
    if not added:
        return jsonify({"error": "already_upvoted"}), 400
    db.session.commit()
    log_event(current_app, "story_upvoted", story_id=story_id)
    return jsonify(ok=True), 200


@bp.delete("/user-stories/<story_id>/upvote")
@limiter.limit("60 per minute")
def stories_remove_upvote(story_id: str):
    removed = svc_stories.remove_upvote(db.session, story_id, _session_token())
    if not removed:
        return jsonify({"error": "not_upvoted"}), 400
    db.session.commit()
    return jsonify(ok=True), 200


@bp.post("/user-stories/merge")
@require_owner
def stories_merge():
    data = request.get_json(silent=True) or {}
    keep_id = clean_str(data.get("keepId"), max_len=36) if isinstance(data, dict) else None
    merge_id = clean_str(data.get("mergeId"), max_len=36) if isinstance(data, dict) else None
    svc_stories.merge_stories(db.session, keep_id, merge_id)
    db.session.commit()
    log_event(current_app, "stories_merged", keep_id=keep_id, merge_id=merge_id, owner=g.owner)
    view = svc_stories.get_story(db.session, keep_id)
    return jsonify(view.to_dict()), 200
