"""
Admission control for anonymous submissions.

Policy (per class session, per hashed client address):
  - at most SUBMISSION_MAX_PER_SESSION submissions (default 3)
  - at least SUBMISSION_COOLDOWN_MINUTES between two submissions (default 15)
The count rule is checked first, then the cooldown.
"""
from __future__ import annotations

import hashlib
import hmac
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from flask import current_app, request
from flask_limiter.util import get_remote_address
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from muddiest.models.class_session import ClassSession
from muddiest.models.rate_limit import SubmissionRateLimit
from muddiest.services.errors import AdmissionDenied
from muddiest.utils import helpers


@dataclass(frozen=True)
class AdmissionDecision:
    allowed: bool
    reason: Optional[str] = None
    retry_after_minutes: Optional[int] = None


ALLOWED = AdmissionDecision(allowed=True)


def hash_ip(ip_address: str, secret: str) -> str:
    """Keyed one-way digest of a client address (HMAC-SHA256, hex)."""
    return hmac.new(
        secret.encode("utf-8"), (ip_address or "").encode("utf-8"), hashlib.sha256
    ).hexdigest()


def request_ip_hash() -> str:
    """Hashed identity of the connecting peer for the current request."""
    secret = current_app.config.get("IP_HASH_SECRET") or current_app.config["SECRET_KEY"]
    return hash_ip(get_remote_address() or request.remote_addr or "", secret)


def _limits() -> tuple[int, int]:
    cfg = current_app.config
    return int(cfg.get("SUBMISSION_MAX_PER_SESSION", 3)), int(cfg.get("SUBMISSION_COOLDOWN_MINUTES", 15))


def _rate_row_query(session: Session, session_id: str, ip_hash: str, *, lock: bool = False):
    q = (
        session.query(SubmissionRateLimit)
        .filter_by(session_id=session_id, ip_address_hash=ip_hash)
        .populate_existing()
    )
    # Held until the caller commits, so a parallel request waits for the increment
    return q.with_for_update() if lock else q


def check_admission(
    session: Session,
    session_id: str,
    ip_hash: str,
    *,
    now: Optional[datetime] = None,
    lock: bool = False,
) -> AdmissionDecision:
    now = now or helpers.utcnow()
    max_count, cooldown_minutes = _limits()

    record = _rate_row_query(session, session_id, ip_hash, lock=lock).one_or_none()
    if record is None:
        return ALLOWED

    if record.submission_count >= max_count:
        return AdmissionDecision(
            allowed=False,
            reason=f"Maximum of {max_count} submissions allowed per session",
        )

    cooldown = timedelta(minutes=cooldown_minutes)
    if now - record.last_submission_at < cooldown:
        remaining = (record.last_submission_at + cooldown) - now
        minutes = math.ceil(remaining.total_seconds() / 60)
        return AdmissionDecision(
            allowed=False,
            reason=f"Please wait {minutes} more minutes before submitting again",
            retry_after_minutes=minutes,
        )

    return ALLOWED


def ensure_admitted(
    session: Session, session_id: str, ip_hash: str, *, now: Optional[datetime] = None
) -> None:
    decision = check_admission(session, session_id, ip_hash, now=now, lock=True)
    if not decision.allowed:
        raise AdmissionDenied(decision.reason, decision.retry_after_minutes)


def record_admission(
    session: Session, session_id: str, ip_hash: str, *, now: Optional[datetime] = None
) -> None:
    """Increment the (session, ip) counter in one atomic upsert."""
    now = now or helpers.utcnow()
    dialect = session.get_bind().dialect.name

    if dialect in ("postgresql", "sqlite"):
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        else:
            from sqlalchemy.dialects.sqlite import insert
        stmt = insert(SubmissionRateLimit).values(
            session_id=session_id,
            ip_address_hash=ip_hash,
            submission_count=1,
            last_submission_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["session_id", "ip_address_hash"],
            set_={
                "submission_count": SubmissionRateLimit.submission_count + 1,
                "last_submission_at": now,
            },
        )
        session.execute(stmt)
        return

    # Other backends: row lock, then update-or-insert inside the caller's transaction
    record = (
        session.query(SubmissionRateLimit)
        .filter_by(session_id=session_id, ip_address_hash=ip_hash)
        .with_for_update()
        .one_or_none()
    )
    if record is None:
        session.add(
            SubmissionRateLimit(
                session_id=session_id,
                ip_address_hash=ip_hash,
                submission_count=1,
                last_submission_at=now,
            )
        )
    else:
        record.submission_count = SubmissionRateLimit.submission_count + 1
        record.last_submission_at = now
    session.flush()


def prune_stale_rate_limits(session: Session, *, now: Optional[datetime] = None) -> int:
    """Delete rate rows whose class session is inactive or expired. Live sessions are untouched."""
    now = now or helpers.utcnow()
    stale_sessions = select(ClassSession.id).where(
        or_(ClassSession.is_active.is_(False), ClassSession.expires_at < now)
    )
    deleted = (
        session.query(SubmissionRateLimit)
        .filter(SubmissionRateLimit.session_id.in_(stale_sessions))
        .delete(synchronize_session=False)
    )
    return deleted or 0
