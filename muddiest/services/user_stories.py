"""
Feature board: user stories, the upvote ledger, and merges.

Ledger rules
  - one upvote per (story, session token); the unique constraint is the arbiter
  - merge copies the merged story's voters that the kept story lacks, then marks
    the merged story with merged_into_id; it is never deleted
  - a story that others were merged into cannot be deleted
  - ICE score is derived on read (impact + confidence + ease)
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from muddiest.models.user_story import UserStory, UserStoryUpvote, STATUS_CHOICES, STATUS_SUBMITTED
from muddiest.services.errors import NotFound, ValidationError
from muddiest.utils import helpers
from muddiest.utils.validators import clean_str, clean_text, score_1_to_10

SCORE_FIELDS = ("impact", "confidence", "ease")


@dataclass(frozen=True)
class StoryView:
    story: UserStory
    upvote_count: int
    has_upvoted: bool

    def to_dict(self) -> dict:
        data = self.story.to_dict()
        data["upvoteCount"] = self.upvote_count
        data["hasUpvoted"] = self.has_upvoted
        return data


def _vote_counts(session: Session, story_ids: List[str]) -> Dict[str, int]:
    if not story_ids:
        return {}
    rows = (
        session.query(UserStoryUpvote.user_story_id, func.count(UserStoryUpvote.id))
        .filter(UserStoryUpvote.user_story_id.in_(story_ids))
        .group_by(UserStoryUpvote.user_story_id)
        .all()
    )
    return {sid: int(n) for sid, n in rows}


def _voted_by(session: Session, story_ids: List[str], session_token: Optional[str]) -> set:
    if not story_ids or not session_token:
        return set()
    rows = (
        session.query(UserStoryUpvote.user_story_id)
        .filter(UserStoryUpvote.user_story_id.in_(story_ids))
        .filter(UserStoryUpvote.session_token == session_token)
        .all()
    )
    return {r[0] for r in rows}


def _views(session: Session, stories: List[UserStory], session_token: Optional[str]) -> List[StoryView]:
    ids = [s.id for s in stories]
    counts = _vote_counts(session, ids)
    voted = _voted_by(session, ids, session_token)
    return [StoryView(s, counts.get(s.id, 0), s.id in voted) for s in stories]


def list_stories(session: Session, session_token: Optional[str] = None) -> List[StoryView]:
    """Primary listing: merged-away stories are excluded. Newest first."""
    stories = (
        session.query(UserStory)
        .filter(UserStory.merged_into_id.is_(None))
        .order_by(UserStory.created_at.desc())
        .all()
    )
    return _views(session, stories, session_token)


def _get(session: Session, story_id: str, *, lock: bool = False) -> UserStory:
    q = session.query(UserStory).filter(UserStory.id == story_id)
    if lock:
        q = q.with_for_update()
    story = q.one_or_none()
    if not story:
        raise NotFound(f"User story {story_id} not found")
    return story


def get_story(session: Session, story_id: str, session_token: Optional[str] = None) -> StoryView:
    """Resolves merged stories too (audit / historical links)."""
    return _views(session, [_get(session, story_id)], session_token)[0]


def _clean(data: Any, *, partial: bool) -> dict:
    if not isinstance(data, dict):
        raise ValidationError({"__all__": "Body must be a JSON object."})
    errors, out = {}, {}

    if not partial or "title" in data:
        title = clean_str(data.get("title"), max_len=200)
        if not title:
            errors["title"] = "Title is required."
        else:
            out["title"] = title
    if not partial or "description" in data:
        desc = clean_text(data.get("description"), max_len=5000)
        if not desc:
            errors["description"] = "Description is required."
        else:
            out["description"] = desc
    if "submittedBy" in data:
        out["submitted_by"] = clean_str(data.get("submittedBy"), max_len=100)
    for field in SCORE_FIELDS:
        if not partial or field in data:
            score = score_1_to_10(data.get(field))
            if score is None:
                errors[field] = "Must be a whole number from 1 to 10."
            else:
                out[field] = score
    if "status" in data:
        status = data.get("status")
        if status not in STATUS_CHOICES:
            errors["status"] = f"Must be one of: {', '.join(STATUS_CHOICES)}."
        else:
            out["status"] = status

    if errors:
        raise ValidationError(errors)
    return out


def create_story(session: Session, data: Any, session_token: Optional[str]) -> UserStory:
    fields = _clean(data, partial=False)
    # New proposals always enter the board as "submitted"
    fields["status"] = STATUS_SUBMITTED
    story = UserStory(session_token=session_token, **fields)
    session.add(story)
    session.flush()
    return story


def update_story(session: Session, story_id: str, data: Any) -> UserStory:
    """Any status may be set from any other; labels are not a guarded state machine."""
    story = _get(session, story_id)
    fields = _clean(data, partial=True)
    if not fields:
        raise ValidationError({"__all__": "Nothing to update."})
    for attr, value in fields.items():
        setattr(story, attr, value)
    story.updated_at = helpers.utcnow()
    session.flush()
    return story


def delete_story(session: Session, story_id: str) -> None:
    """Stories that others were merged into are kept; their merged-away stories stay inert."""
    story = _get(session, story_id)
    absorbed = session.query(UserStory.id).filter(UserStory.merged_into_id == story.id).first()
    if absorbed:
        raise ValidationError({"__all__": "Other stories were merged into this one; it cannot be deleted."})
    session.delete(story)
    session.flush()


def _has_voted(session: Session, story_id: str, session_token: str) -> bool:
    return (
        session.query(UserStoryUpvote.id)
        .filter_by(user_story_id=story_id, session_token=session_token)
        .first()
        is not None
    )


def upvote(session: Session, story_id: str, session_token: str) -> bool:
    """Insert-if-absent. True when added, False when the token already voted."""
    if not session_token:
        raise ValidationError({"sessionToken": "X-Session-Token header is required."})
    story = _get(session, story_id)
    if story.is_merged:
        raise ValidationError({"__all__": "This story was merged; vote on the surviving story."})

    if _has_voted(session, story.id, session_token):
        return False

    try:
        # Savepoint: a lost race only undoes this insert, not the caller's transaction
        with session.begin_nested():
            session.add(UserStoryUpvote(user_story_id=story.id, session_token=session_token))
    except IntegrityError:
        return False
    return True


def remove_upvote(session: Session, story_id: str, session_token: str) -> bool:
    """True when a vote was removed, False when there was none."""
    if not session_token:
        raise ValidationError({"sessionToken": "X-Session-Token header is required."})
    deleted = (
        session.query(UserStoryUpvote)
        .filter_by(user_story_id=story_id, session_token=session_token)
        .delete(synchronize_session="fetch")
    )
    return bool(deleted)


def merge_stories(session: Session, keep_id: str, merge_id: str) -> UserStory:
    """
    Merge `merge_id` into `keep_id` inside the caller's transaction.
    The caller commits on success and rolls back on any error, so a half-merge is never visible.
    """
    if not keep_id or not merge_id:
        raise ValidationError({"__all__": "keepId and mergeId are required."})
    if keep_id == merge_id:
        raise ValidationError({"__all__": "A story cannot be merged into itself."})

    # Lock in a stable order so two opposite merges cannot deadlock
    first, second = sorted((keep_id, merge_id))
    locked = {first: _get(session, first, lock=True), second: _get(session, second, lock=True)}
    keep, merged = locked[keep_id], locked[merge_id]

    if merged.is_merged:
        raise ValidationError({"mergeId": "Story was already merged."})
    if keep.is_merged:
        raise ValidationError({"keepId": "Cannot merge into a story that was itself merged."})

    keep_tokens = {
        t for (t,) in session.query(UserStoryUpvote.session_token).filter_by(user_story_id=keep.id)
    }
    merge_tokens = [
        t for (t,) in session.query(UserStoryUpvote.session_token).filter_by(user_story_id=merged.id)
    ]
    for token in merge_tokens:
        if token not in keep_tokens:
            session.add(UserStoryUpvote(user_story_id=keep.id, session_token=token))
            keep_tokens.add(token)

    now = helpers.utcnow()
    merged.merged_into_id = keep.id
    merged.updated_at = now
    # Earlier merges into the merged story now point at the survivor
    session.query(UserStory).filter(UserStory.merged_into_id == merged.id).filter(
        UserStory.id != merged.id
    ).update({UserStory.merged_into_id: keep.id}, synchronize_session="fetch")
    keep.updated_at = now
    session.flush()
    return keep
