import pytest
from sqlalchemy.dialects import postgresql
from muddiest.extensions import db
from muddiest.models import SubmissionRateLimit
from muddiest.services import admission
from muddiest.services import sessions as svc_sessions
from muddiest.services import submissions as svc_submissions
from muddiest.services.admission import (
    check_admission,
    hash_ip,
    prune_stale_rate_limits,
    record_admission,
)
from muddiest.services.errors import AdmissionDenied

IP_A = hash_ip("10.0.0.1", "test-ip-secret")
IP_B = hash_ip("10.0.0.2", "test-ip-secret")


def _body(s, topic="Recursion"):
    return {
        "courseId": s.course_id,
        "sessionId": s.id,
        "topic": topic,
        "confusion": "Base case vs recursive case",
        "difficultyLevel": "very",
    }


def _submit(s, ip_hash, **kw):
    sub = svc_submissions.create_submission(db.session, _body(s, **kw), ip_hash)
    db.session.commit()
    return sub


def test_hash_ip_is_keyed_and_deterministic():
    assert hash_ip("10.0.0.1", "k1") == hash_ip("10.0.0.1", "k1")
    assert hash_ip("10.0.0.1", "k1") != hash_ip("10.0.0.1", "k2")
    assert hash_ip("10.0.0.1", "k1") != hash_ip("10.0.0.2", "k1")
    assert len(hash_ip("10.0.0.1", "k1")) == 64
    assert "10.0.0.1" not in hash_ip("10.0.0.1", "k1")


def test_first_submission_allowed(app, live_session):
    with app.app_context():
        assert check_admission(db.session, live_session.id, IP_A).allowed is True


def test_cooldown_reports_remaining_minutes(app, live_session, clock):
    with app.app_context():
        _submit(live_session, IP_A)
        clock.advance(minutes=10)
        decision = check_admission(db.session, live_session.id, IP_A)
        assert decision.allowed is False
        assert decision.reason == "Please wait 5 more minutes before submitting again"
        assert decision.retry_after_minutes == 5


def test_cooldown_boundary_is_inclusive(app, live_session, clock):
    with app.app_context():
        _submit(live_session, IP_A)
        clock.advance(minutes=15)
        assert check_admission(db.session, live_session.id, IP_A).allowed is True
        _submit(live_session, IP_A)


def test_rapid_fire_submissions_hit_cooldown(app, live_session, clock):
    with app.app_context():
        _submit(live_session, IP_A)
        for _ in range(2):
            clock.advance(seconds=1)
            with pytest.raises(AdmissionDenied) as exc:
                _submit(live_session, IP_A)
            db.session.rollback()
            assert exc.value.reason == "Please wait 15 more minutes before submitting again"
        row = db.session.query(SubmissionRateLimit).one()
        assert row.submission_count == 1


def test_count_cap_after_three(app, live_session, clock):
    with app.app_context():
        for _ in range(3):
            _submit(live_session, IP_A)
            clock.advance(minutes=15)
        with pytest.raises(AdmissionDenied) as exc:
            _submit(live_session, IP_A)
        db.session.rollback()
        assert exc.value.reason == "Maximum of 3 submissions allowed per session"
        assert exc.value.retry_after_minutes is None


def test_count_rule_is_checked_before_cooldown(app, live_session, clock):
    with app.app_context():
        for _ in range(3):
            _submit(live_session, IP_A)
            clock.advance(minutes=15)
        clock.advance(minutes=-14)
        decision = check_admission(db.session, live_session.id, IP_A)
        assert decision.reason == "Maximum of 3 submissions allowed per session"


def test_limits_are_per_address(app, live_session, clock):
    with app.app_context():
        _submit(live_session, IP_A)
        _submit(live_session, IP_B)
        assert db.session.query(SubmissionRateLimit).count() == 2


def test_limits_are_per_session(app, course, live_session, clock):
    with app.app_context():
        _submit(live_session, IP_A)
        clock.advance(days=1)
        cs, _ = svc_sessions.create_session(db.session, course.id)
        db.session.commit()
        assert check_admission(db.session, cs.id, IP_A).allowed is True


def test_record_admission_upserts(app, live_session, clock):
    with app.app_context():
        record_admission(db.session, live_session.id, IP_A)
        clock.advance(minutes=20)
        record_admission(db.session, live_session.id, IP_A)
        db.session.commit()
        row = db.session.query(SubmissionRateLimit).one()
        assert row.submission_count == 2
        assert row.last_submission_at == clock.now


def test_rejected_submission_leaves_no_trace(app, live_session, clock):
    with app.app_context():
        _submit(live_session, IP_A)
        clock.advance(minutes=1)
        with pytest.raises(AdmissionDenied):
            _submit(live_session, IP_A, topic="Pointers")
        db.session.rollback()
        assert db.session.query(SubmissionRateLimit).one().submission_count == 1
        assert [s.topic for s in svc_submissions.list_submissions(db.session)] == ["Recursion"]


def test_prune_only_touches_dead_sessions(app, course, live_session, clock):
    with app.app_context():
        _submit(live_session, IP_A)
        assert prune_stale_rate_limits(db.session) == 0

        clock.advance(days=1)
        cs, _ = svc_sessions.create_session(db.session, course.id)
        db.session.commit()
        _submit(cs, IP_A)

        assert prune_stale_rate_limits(db.session) == 1
        db.session.commit()
        rows = db.session.query(SubmissionRateLimit).all()
        assert [r.session_id for r in rows] == [cs.id]


def test_submission_path_locks_the_counter_row(app, live_session, monkeypatch):
    seen = []
    real = admission._rate_row_query

    def spy(session, session_id, ip_hash, *, lock=False):
        seen.append(lock)
        return real(session, session_id, ip_hash, lock=lock)

    monkeypatch.setattr(admission, "_rate_row_query", spy)
    with app.app_context():
        _submit(live_session, IP_A)
        assert seen == [True]

        q = real(db.session, live_session.id, IP_A, lock=True)
        sql = str(q.statement.compile(dialect=postgresql.dialect()))
        assert "FOR UPDATE" in sql
        plain = real(db.session, live_session.id, IP_A)
        assert "FOR UPDATE" not in str(plain.statement.compile(dialect=postgresql.dialect()))
